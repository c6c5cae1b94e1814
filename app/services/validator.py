"""
Response validation for assistant answers.

Combines cheap local checks on code blocks, a keyword grounding check against
course materials and two model-graded passes (a weighted rubric and a
self-evaluation) into a single verdict. The verdict
is a plain dict; callers pass it through without interpreting it.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.services.chat_service import ChatService
from app.services.llm_service import LLMService

logger = logging.getLogger(__name__)

_CODE_BLOCK = re.compile(r"```(\w+)?\n([\s\S]*?)```")
_PAIRS = {"(": ")", "[": "]", "{": "}"}
_JS_ERROR_PATTERNS = (
    re.compile(r"function\s*\(\s*\)\s*{[^}]*$"),
    re.compile(r"if\s*\([^)]+\)\s*{[^}]*$"),
    re.compile(r"=\s*;"),
)
_PY_COMPOUND = re.compile(r"^(if|elif|else|for|while|def|class|try|except|finally|with)\b")
_SENTENCE_END = re.compile(r"[.!?]+")
_FACTUAL_PATTERNS = (
    re.compile(r"\b(is|are|was|were|has|have|can|will|should|must)\b", re.IGNORECASE),
    re.compile(r"\b(defined as|means|refers to|consists of|includes)\b", re.IGNORECASE),
    re.compile(r"\b(therefore|because|since|thus|hence)\b", re.IGNORECASE),
)
MAX_STATEMENTS = 10
MAX_CHECKED_STATEMENTS = 5

RUBRIC_WEIGHTS = {"accuracy": 30, "completeness": 25, "clarity": 20, "relevance": 25}
SCORE_WEIGHTS = {"code": 15, "grounding": 35, "rubric": 30, "selfEval": 20}
DEFAULT_RUBRIC_SCORE = 75

RUBRIC_PROMPT = """You are an expert academic evaluator. Rate the following AI response based on the student's query.

Query: "{query}"

Response:
"{response}"

Evaluate on these 4 criteria (0-100 score):
1. Accuracy: Is the information factually correct and precise?
2. Completeness: Does it fully answer the query with necessary details?
3. Clarity: Is it well-structured, easy to read, and clear?
4. Relevance: Is it directly addressing the user's intent?

Format EXACTLY as:
ACCURACY: [score]
COMPLETENESS: [score]
CLARITY: [score]
RELEVANCE: [score]"""

SELF_EVAL_PROMPT = """You are evaluating an AI-generated response for quality and accuracy.

Original Question: {query}

AI Response to evaluate:
{response}

Rate this response on a scale of 1-10 and provide brief feedback.
Format your response EXACTLY as:
SCORE: [1-10]
CONFIDENCE: [low/medium/high]
ISSUES: [list any potential inaccuracies or issues, or "none"]
SUGGESTION: [one improvement suggestion]"""


# =============================================================================
# CODE CHECKS
# =============================================================================


def extract_code_blocks(text: str) -> list[dict[str, str]]:
    return [
        {"language": match.group(1) or "unknown", "code": match.group(2).strip()}
        for match in _CODE_BLOCK.finditer(text)
    ]


def _brackets_nest(code: str) -> bool:
    stack: list[str] = []
    closers = set(_PAIRS.values())
    for char in code:
        if char in _PAIRS:
            stack.append(_PAIRS[char])
        elif char in closers:
            if not stack or stack.pop() != char:
                return False
    return not stack


def _brackets_balance(code: str) -> bool:
    return all(code.count(opener) == code.count(closer) for opener, closer in _PAIRS.items())


def _valid_js(code: str) -> bool:
    if not _brackets_nest(code):
        return False
    return not any(pattern.search(code) for pattern in _JS_ERROR_PATTERNS)


def _valid_python(code: str) -> bool:
    for line in code.split("\n"):
        stripped = line.lstrip()
        if not stripped or stripped.startswith("#"):
            continue
        if _PY_COMPOUND.match(stripped) and ":" not in stripped:
            return False
    return _brackets_balance(code)


_LANGUAGE_CHECKS = {
    "javascript": _valid_js,
    "js": _valid_js,
    "typescript": _valid_js,
    "ts": _valid_js,
    "python": _valid_python,
    "py": _valid_python,
    "c": _brackets_balance,
    "cpp": _brackets_balance,
    "c++": _brackets_balance,
}


def check_code_blocks(blocks: list[dict[str, str]]) -> dict[str, Any]:
    """Heuristic syntax check per block; unknown languages pass."""
    if not blocks:
        return {"hasCode": False, "valid": True, "errors": []}

    details = []
    for block in blocks:
        check = _LANGUAGE_CHECKS.get(block["language"].lower())
        valid = check(block["code"]) if check else True
        details.append({"language": block["language"], "valid": valid})

    return {
        "hasCode": True,
        "valid": all(d["valid"] for d in details),
        "errors": [f"Syntax issue in {d['language']} block" for d in details if not d["valid"]],
        "details": details,
    }


# =============================================================================
# GENERATED CONTENT CHECKS
# =============================================================================

_LANGUAGE_MARKERS = {
    "python": ("def ", "import ", "class ", "print("),
    "javascript": ("function ", "const ", "let ", "console.log"),
    "java": ("public class", "public static", "System.out"),
    "c": ("#include", "int main", "printf"),
    "cpp": ("#include", "int main", "cout"),
}


def _content_verdict(score: int, issues: list[str]) -> dict[str, Any]:
    score = max(0, score)
    return {"valid": score >= 60, "score": score, "issues": issues}


def check_theory_content(content: str, source_count: int) -> dict[str, Any]:
    """Length, structure and grounding deductions for generated notes."""
    issues = []
    score = 100
    if len(content) < 200:
        issues.append("Content may be too brief")
        score -= 20
    if "#" not in content and "**" not in content:
        issues.append("Content lacks clear structure")
        score -= 15
    if source_count == 0:
        issues.append("No source materials available for grounding")
        score -= 25
    return {**_content_verdict(score, issues), "grounded": source_count > 0}


def check_lab_content(content: str, language: str) -> dict[str, Any]:
    """Code presence, explanation length and language marker deductions for lab content."""
    issues = []
    score = 100
    has_code = "```" in content
    if not has_code:
        issues.append("No code blocks found")
        score -= 30
    if len(content) <= 300:
        issues.append("Explanation may be too brief")
        score -= 15
    lowered = content.lower()
    markers = _LANGUAGE_MARKERS.get(language.lower(), ())
    if has_code and not any(marker.lower() in lowered for marker in markers):
        issues.append(f"Code may not be valid {language}")
        score -= 20
    return {**_content_verdict(score, issues), "syntaxChecked": has_code, "language": language}


# =============================================================================
# GROUNDING
# =============================================================================


def extract_key_statements(text: str) -> list[str]:
    """Sentences over 20 chars that read like factual claims."""
    sentences = [s.strip() for s in _SENTENCE_END.split(text) if len(s.strip()) > 20]
    return [s for s in sentences if any(p.search(s) for p in _FACTUAL_PATTERNS)][:MAX_STATEMENTS]


async def check_grounding(chat: ChatService, db: AsyncSession, response: str) -> dict[str, Any]:
    """
    Share of the first few claims that match at least one course material.

    A response with no claims counts as fully grounded.
    """
    statements = extract_key_statements(response)
    if not statements:
        return {"score": 100, "grounded": True, "reason": "No factual claims to verify"}

    checked = statements[:MAX_CHECKED_STATEMENTS]
    details = []
    for statement in checked:
        matches = await chat.find_materials(db, statement, limit=1)
        detail: dict[str, Any] = {"statement": statement[:100], "grounded": bool(matches)}
        if matches:
            detail["source"] = matches[0].title
        details.append(detail)

    grounded_count = sum(1 for d in details if d["grounded"])
    score = round(grounded_count / len(checked) * 100)
    return {
        "score": score,
        "grounded": score >= 50,
        "totalStatements": len(statements),
        "groundedStatements": grounded_count,
        "details": details,
    }


# =============================================================================
# MODEL-GRADED CHECKS
# =============================================================================


def _parse_int(text: str, key: str, default: int) -> int:
    match = re.search(rf"{key}:\s*(\d+)", text, re.IGNORECASE)
    return int(match.group(1)) if match else default


def _parse_line(text: str, key: str) -> str | None:
    match = re.search(rf"{key}:\s*([^\n]+)", text, re.IGNORECASE)
    return match.group(1).strip() if match else None


async def evaluate_rubric(llm: LLMService, response: str, query: str) -> dict[str, Any]:
    text = await llm.complete(
        RUBRIC_PROMPT.format(query=query, response=response[:2000]), max_tokens=200
    )
    breakdown = {
        name: {"weight": weight, "score": _parse_int(text, name.upper(), DEFAULT_RUBRIC_SCORE)}
        for name, weight in RUBRIC_WEIGHTS.items()
    }
    total = sum(item["score"] * item["weight"] / 100 for item in breakdown.values())
    return {"totalScore": round(total), "breakdown": breakdown}


async def self_evaluate(llm: LLMService, response: str, query: str) -> dict[str, Any]:
    text = await llm.complete(
        SELF_EVAL_PROMPT.format(query=query, response=response[:1500]), max_tokens=300
    )
    confidence = _parse_line(text, "CONFIDENCE")
    return {
        "score": _parse_int(text, "SCORE", 7),
        "confidence": confidence.split()[0].lower() if confidence else "medium",
        "issues": _parse_line(text, "ISSUES") or "none",
        "suggestion": _parse_line(text, "SUGGESTION") or "",
    }


def _status_for(score: int) -> str:
    if score >= 80:
        return "verified"
    if score >= 60:
        return "acceptable"
    return "needs_review"


async def validate_response(
    chat: ChatService, db: AsyncSession, response: str, query: str
) -> dict[str, Any]:
    """
    Critique an assistant answer against the question that prompted it.

    Model and database errors are not caught here; the caller decides how to
    report them.
    """
    llm = chat.llm
    checks: dict[str, Any] = {"code": check_code_blocks(extract_code_blocks(response))}
    checks["grounding"] = await check_grounding(chat, db, response)
    checks["rubric"] = await evaluate_rubric(llm, response, query)
    checks["selfEval"] = await self_evaluate(llm, response, query)

    weighted_sum = 0.0
    total_weight = 0
    if checks["code"]["hasCode"]:
        weighted_sum += (100 if checks["code"]["valid"] else 30) * SCORE_WEIGHTS["code"]
        total_weight += SCORE_WEIGHTS["code"]
    weighted_sum += checks["grounding"]["score"] * SCORE_WEIGHTS["grounding"]
    total_weight += SCORE_WEIGHTS["grounding"]
    weighted_sum += checks["rubric"]["totalScore"] * SCORE_WEIGHTS["rubric"]
    total_weight += SCORE_WEIGHTS["rubric"]
    weighted_sum += checks["selfEval"]["score"] * 10 * SCORE_WEIGHTS["selfEval"]
    total_weight += SCORE_WEIGHTS["selfEval"]

    overall = round(weighted_sum / total_weight)
    logger.info("Validated response: overall=%d", overall)
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "overallScore": overall,
        "status": _status_for(overall),
        "checks": checks,
    }
