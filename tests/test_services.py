"""Unit tests for the service layer: OCR formatting, intents, validation, model client."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from app.config import get_settings
from app.db.models import ChatIntent, Material
from app.services.chat_service import ChatService, build_generation_prompt, detect_intent
from app.services.document_parser import document_parser
from app.services.handwriting import format_transcript
from app.services.llm_service import LLMService, SafetyBlockedError
from app.services.validator import (
    check_code_blocks,
    check_grounding,
    extract_code_blocks,
    extract_key_statements,
    validate_response,
)


# =============================================================================
# HANDWRITING
# =============================================================================


def test_format_transcript_marks_headers_and_bullets():
    raw = "WEEK 3 NOTES\n\n\n• stacks\n* queues\n2) deque\nThe END.\n  A stack is LIFO  "

    assert format_transcript(raw) == (
        "## WEEK 3 NOTES\n\n- stacks\n\n- queues\n\n2) deque\n\nThe END.\n\nA stack is LIFO"
    )


def test_format_transcript_leaves_long_or_punctuated_caps_alone():
    shouting = "THIS LINE IS IN CAPITALS BUT IT IS FAR TOO LONG TO BE A HEADER"

    assert format_transcript(shouting) == shouting
    assert format_transcript("DONE!") == "DONE!"
    assert format_transcript("123") == "123"


def test_format_transcript_empty():
    assert format_transcript("\n \n") == ""


# =============================================================================
# INTENTS
# =============================================================================


@pytest.mark.parametrize(
    "message,intent",
    [
        ("Generate study notes on recursion", ChatIntent.GENERATE_THEORY),
        ("write a program example for linked lists", ChatIntent.GENERATE_LAB),
        ("Give me a summary of week 2", ChatIntent.SUMMARIZE),
        ("What is a hash table?", ChatIntent.EXPLAIN),
        ("find the sorting slides", ChatIntent.SEARCH),
        ("thanks!", ChatIntent.CHITCHAT),
        ("binary trees", ChatIntent.EXPLAIN),
    ],
)
def test_detect_intent(message, intent):
    assert detect_intent(message) == intent


def test_generation_prompt_includes_customization():
    prompt = build_generation_prompt(
        "code-guide",
        title="Queues",
        topic="Data Structures",
        source_content="A queue is FIFO.",
        customization="use Python",
    )

    assert "A queue is FIFO." in prompt
    assert "Focus on: use Python" in prompt


# =============================================================================
# VALIDATION
# =============================================================================


def test_code_checks_flag_unbalanced_blocks():
    text = (
        "```python\ndef f(x)\n    return x\n```\n"
        "```js\nconst a = [1, 2;\n```\n"
        "```c\nint main() { return 0; }\n```\n"
        "```\nanything goes (\n```"
    )

    result = check_code_blocks(extract_code_blocks(text))

    assert result["hasCode"] is True
    assert result["valid"] is False
    assert [d["valid"] for d in result["details"]] == [False, False, True, True]
    assert result["errors"] == ["Syntax issue in python block", "Syntax issue in js block"]


def test_code_checks_without_code():
    assert check_code_blocks(extract_code_blocks("no code here")) == {
        "hasCode": False,
        "valid": True,
        "errors": [],
    }


def _chat_with_replies(replies) -> ChatService:
    llm = SimpleNamespace(complete=AsyncMock(side_effect=replies))
    return ChatService(llm, get_settings())


@pytest.mark.parametrize(
    "rubric,self_score,status",
    [
        ("ACCURACY: 100\nCOMPLETENESS: 100\nCLARITY: 100\nRELEVANCE: 100", "SCORE: 10", "verified"),
        ("ACCURACY: 50\nCOMPLETENESS: 50\nCLARITY: 50\nRELEVANCE: 50", "SCORE: 5", "acceptable"),
        ("ACCURACY: 0\nCOMPLETENESS: 0\nCLARITY: 0\nRELEVANCE: 0", "SCORE: 1", "needs_review"),
    ],
)
async def test_validation_status_thresholds(db_session, rubric, self_score, status):
    chat = _chat_with_replies([rubric, self_score])

    result = await validate_response(chat, db_session, "```python\nx = 1\n```", "question")

    # code 100 * 15 and grounding 100 * 35 are fixed; rubric and self-eval vary
    assert result["checks"]["code"]["valid"] is True
    assert result["checks"]["grounding"]["score"] == 100
    assert result["status"] == status


async def test_validation_defaults_when_grades_are_unparseable(db_session):
    chat = _chat_with_replies(["no idea", "also no idea"])

    result = await validate_response(chat, db_session, "plain answer", "question")

    assert result["checks"]["rubric"]["totalScore"] == 75
    assert result["checks"]["selfEval"]["score"] == 7
    assert result["checks"]["selfEval"]["confidence"] == "medium"
    assert result["overallScore"] == 84
    assert result["status"] == "verified"


def test_key_statements_keep_factual_sentences_only():
    text = (
        "Short one. A stack is a last-in first-out collection! "
        "Look at this lovely picture over here? "
        "Recursion terminates because each call shrinks the input"
    )

    assert extract_key_statements(text) == [
        "A stack is a last-in first-out collection",
        "Recursion terminates because each call shrinks the input",
    ]


async def test_grounding_counts_claims_backed_by_materials(db_session):
    db_session.add(
        Material(
            title="Binary Search Trees",
            category="lab",
            type="pdf",
            topic="Trees",
            week=2,
            content="BST notes",
            uploaded_by="admin-user",
        )
    )
    await db_session.commit()
    chat = ChatService(SimpleNamespace(), get_settings())
    response = (
        "A binary search tree is ordered by key. "
        "Quantum chromodynamics is about quarks and gluons."
    )

    result = await check_grounding(chat, db_session, response)

    assert result["score"] == 50
    assert result["grounded"] is True
    assert result["details"][0] == {
        "statement": "A binary search tree is ordered by key",
        "grounded": True,
        "source": "Binary Search Trees",
    }
    assert result["details"][1]["grounded"] is False


async def test_grounding_checks_at_most_five_claims(db_session):
    chat = ChatService(SimpleNamespace(), get_settings())
    response = " ".join(f"Claim number {i} is entirely unsupported." for i in range(7))

    result = await check_grounding(chat, db_session, response)

    assert result["totalStatements"] == 7
    assert len(result["details"]) == 5
    assert result["score"] == 0
    assert result["grounded"] is False


# =============================================================================
# MODEL CLIENT
# =============================================================================


def _llm_returning(message) -> tuple[LLMService, AsyncMock]:
    service = LLMService(get_settings())
    create = AsyncMock(return_value=message)
    service.client = SimpleNamespace(messages=SimpleNamespace(create=create))
    return service, create


async def test_refusal_raises_safety_blocked():
    service, _ = _llm_returning(SimpleNamespace(stop_reason="refusal", content=[]))

    with pytest.raises(SafetyBlockedError):
        await service.complete("something unsafe")


async def test_complete_joins_text_blocks_and_passes_system():
    message = SimpleNamespace(
        stop_reason="end_turn",
        content=[
            SimpleNamespace(type="text", text="Hello "),
            SimpleNamespace(type="tool_use"),
            SimpleNamespace(type="text", text="world"),
        ],
    )
    service, create = _llm_returning(message)

    assert await service.complete("hi", system="be brief", max_tokens=10) == "Hello world"
    kwargs = create.await_args.kwargs
    assert kwargs["system"] == "be brief"
    assert kwargs["max_tokens"] == 10
    assert kwargs["messages"] == [{"role": "user", "content": "hi"}]


async def test_transcribe_rejects_unsupported_type():
    service, create = _llm_returning(None)

    with pytest.raises(ValueError):
        await service.transcribe_image(b"GIF89a", "image/tiff")
    create.assert_not_awaited()


# =============================================================================
# DOCUMENT PARSER
# =============================================================================


def test_extract_text_decodes_text_and_strips_control_chars():
    assert document_parser.extract_text(b"hello\x00 world\n", "text/plain") == "hello world\n"


def test_extract_text_ignores_unknown_types():
    assert document_parser.extract_text(b"\x00\x01", "application/octet-stream", "blob.bin") == ""


def test_extract_text_survives_broken_pdf():
    assert document_parser.extract_text(b"not a pdf", "application/pdf", "broken.pdf") == ""
