"""Study assistant: intent detection, material grounding and prompt building."""

import asyncio
import logging
import re
from typing import Annotated

from fastapi import Depends
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.db.models import AiMaterial, ChatIntent, ChatMessage, Material
from app.services.llm_service import LLMService, LLMServiceError, get_llm_service

logger = logging.getLogger(__name__)

BOT_AUTHOR_NAME = "Skooly Bot"
NO_MATERIALS_FOUND = (
    "I couldn't find any materials matching your search. "
    "Try different keywords or check the materials page."
)
FOCUS_INSTRUCTION = (
    "IMPORTANT: If the student mentions a specific file or document name, "
    "focus ONLY on that specific file. Do not include content from other files."
)
MATERIAL_CHAT_ACK = "Understood. I am ready to help you study this material."
NO_CONTEXT_FOUND = (
    "I couldn't find any relevant information in the course materials. "
    "Please try a different query or check if materials have been uploaded."
)
VIDEO_SOURCE_MAX_CHARS = 2000


# =============================================================================
# INTENT DETECTION
# =============================================================================

_INTENT_RULES: list[tuple[ChatIntent, list[re.Pattern]]] = [
    (
        ChatIntent.GENERATE_THEORY,
        [
            re.compile(r"\b(generate|create|make|write).*(theory|notes|study guide|flashcards|revision|concept)\b"),
            re.compile(r"\b(theory|notes|study guide|flashcards|revision).*(generate|create|make|write)\b"),
        ],
    ),
    (
        ChatIntent.GENERATE_LAB,
        [
            re.compile(r"\b(generate|create|make|write).*(lab|code|program|example|practice|implementation)\b"),
            re.compile(r"\b(lab|code|program|example|practice).*(generate|create|make|write)\b"),
        ],
    ),
    (
        ChatIntent.SUMMARIZE,
        [re.compile(r"\b(summarize|summary|give me a summary|tldr|tl;dr|brief|overview|key points)\b")],
    ),
    (
        ChatIntent.EXPLAIN,
        [
            re.compile(
                r"\b(explain|what is|what are|how does|how do|why does|why do|tell me about"
                r"|describe|definition|meaning)\b"
            )
        ],
    ),
]
_SEARCH_WORDS = re.compile(
    r"\b(find|search|show|give|get|list|any|where|materials?|files?|documents?|pdfs?"
    r"|slides?|notes?|lectures?|resources?)\b"
)
_NOT_SEARCH_WORDS = re.compile(r"\b(explain|summary|summarize|what is|how does|generate|create)\b")
_CHITCHAT = re.compile(r"^(hi|hello|hey|thanks|thank you|bye|goodbye)")


def detect_intent(message: str) -> ChatIntent:
    """
    Classify a chat message with fixed rules, first match wins.

    Order: generate-theory, generate-lab, summarize, explain, search, chitchat.
    Anything unmatched is answered as an explanation.
    """
    lowered = message.lower()

    for intent, patterns in _INTENT_RULES:
        if any(p.search(lowered) for p in patterns):
            return intent

    if _SEARCH_WORDS.search(lowered) and not _NOT_SEARCH_WORDS.search(lowered):
        return ChatIntent.SEARCH

    if _CHITCHAT.match(lowered.strip()):
        return ChatIntent.CHITCHAT

    return ChatIntent.EXPLAIN


_SYSTEM_PROMPTS = {
    ChatIntent.GENERATE_THEORY: """You are Skooly, an expert AI learning assistant.
Your task is to GENERATE comprehensive study notes/theory content.

Guidelines:
- Create well-structured study notes with clear headings
- Include key definitions and concepts
- Add bullet points for important facts
- Include examples where helpful
- Make it exam-ready and easy to revise
- Use markdown formatting for clarity""",
    ChatIntent.GENERATE_LAB: """You are Skooly, an expert AI coding assistant.
Your task is to GENERATE practical code examples and lab content.

Guidelines:
- Provide working code examples with comments
- Explain the logic step by step
- Include input/output examples
- Add common pitfalls to avoid
- Make code beginner-friendly
- Use proper code formatting with language tags""",
    ChatIntent.SUMMARIZE: """You are Skooly, an expert AI learning assistant.
Your task is to SUMMARIZE the content concisely and clearly.

Guidelines:
- Use bullet points for key concepts
- Keep it structured with clear sections
- Highlight the most important takeaways
- Be brief but comprehensive
- Include only essential information""",
    ChatIntent.EXPLAIN: """You are Skooly, an expert AI learning assistant.
Your task is to EXPLAIN the concept clearly and thoroughly.

Guidelines:
- Start with a simple definition or overview
- Break down complex ideas step by step
- Use analogies and examples where helpful
- Make it easy to understand for students
- Connect it to related concepts if relevant""",
}
_DEFAULT_SYSTEM_PROMPT = """You are Skooly, an expert AI learning assistant.
Answer the student's question accurately and helpfully using the course materials."""


def system_prompt_for(intent: ChatIntent) -> str:
    return _SYSTEM_PROMPTS.get(intent, _DEFAULT_SYSTEM_PROMPT)


# =============================================================================
# GENERATION PROMPTS
# =============================================================================


def build_generation_prompt(
    material_type: str,
    *,
    title: str,
    topic: str | None,
    source_content: str,
    customization: str | None = None,
) -> str:
    """Prompt for one AI material; unknown types fall back to plain analysis."""
    focus = f"Focus on: {customization}" if customization else ""

    if material_type == "notes":
        return f"""You are an expert tutor. Create comprehensive reading notes.
The user wants notes on: {title} (Topic: {topic}).

Context/Content provided:
{source_content}

Use Markdown formatting. Include a summary, key concepts, and detailed explanations.
{focus}"""
    if material_type == "slides":
        return f"""You are a presentation expert. Create content for a slide deck.
Topic: {title}.

Context/Content provided:
{source_content}

Separate each slide with a horizontal rule '---'.
For each slide, provide a '# Title' and bullet points.
The first slide should be a Title Slide.
{focus}"""
    if material_type == "pdf":
        return f"""You are a professional technical writer. Create a well-structured document.
Topic: {title}.

Context/Content provided:
{source_content}

Use Markdown. Include a Title, Table of Contents (if long), and clear sections.
{focus}"""
    if material_type == "code-guide":
        return f"""You are a senior developer. Create a code guide/tutorial.
Topic: {title}.

Context/Content provided:
{source_content}

Explain functionality, break it down, and provide usage examples.
Use Markdown with code blocks.
{focus}"""
    return f"Analyze the following content: {source_content}"


def file_fallback_content(file_url: str, *, title: str, topic: str | None, course: str | None) -> str:
    """Stand-in source text when only a file reference is available."""
    return f"""The user provided a file at: {file_url}.
Title: {title}
Topic: {topic}
Course: {course}

(Note: The file content could not be extracted. Please generate content based on the Title and Topic provided, as if you were teaching this subject.)"""


def build_theory_prompt(topic: str, context: str = "") -> str:
    reference = f"Use this course material as reference:\n{context}\n\n" if context else ""
    return f"""Generate comprehensive study notes on: "{topic}"

{reference}Format the notes with:
- Clear headings and subheadings
- Bullet points for key concepts
- Examples where applicable
- Summary at the end

Output in clean Markdown format."""


def build_lab_prompt(topic: str, language: str = "python", context: str = "") -> str:
    reference = f"Reference material:\n{context}\n\n" if context else ""
    return f"""Generate a complete code example for: "{topic}" in {language}

{reference}Include:
1. Brief explanation of the concept
2. Complete, working code with comments
3. Example usage/output
4. Common pitfalls to avoid

Output in Markdown with proper code blocks."""


def build_video_prompt_request(
    content: str, topic: str, *, style: str = "educational", include_audio: bool = True
) -> str:
    """Ask the model to turn course text into a short cinematic prompt for the renderer."""
    excerpt = content[:VIDEO_SOURCE_MAX_CHARS]
    if len(content) > VIDEO_SOURCE_MAX_CHARS:
        excerpt += "..."
    audio = (
        "Include audio cues: dialogue, sound effects, or ambient sounds"
        if include_audio
        else "Focus on visual elements only"
    )
    return f"""You are an expert video script writer for educational content.

Convert the following course material into a detailed, cinematic prompt for a text-to-video model.

Topic: {topic}

Content:
{excerpt}

Requirements:
- Create a vivid, visual description suitable for an {style} video
- Include specific camera movements (e.g., "close-up", "wide shot", "panning")
- Describe visual elements clearly (colors, lighting, composition)
- {audio}
- Make it engaging and educational
- Keep it concise but descriptive (aim for 2-3 sentences)
- Use present tense and active voice

Return ONLY the video prompt, nothing else."""


def fallback_video_prompt(topic: str, *, include_audio: bool = True) -> str:
    prompt = (
        f"An educational video explaining {topic}. "
        "Clear, professional presentation with visual aids and diagrams."
    )
    if include_audio:
        prompt += " Narrated with clear, engaging voiceover."
    return prompt


class ChatService:
    """Grounded conversations over course materials."""

    def __init__(self, llm: LLMService, settings: Settings):
        self.llm = llm
        self.settings = settings

    # -------------------------------------------------------------------------
    # Grounding
    # -------------------------------------------------------------------------

    async def find_materials(
        self, db: AsyncSession, query: str, limit: int = 5, category: str | None = None
    ) -> list[Material]:
        """Materials whose title, topic or category contains any query word longer than 2 chars."""
        words = [w for w in re.split(r"\s+", query.lower()) if len(w) > 2]
        if not words:
            return []

        conditions = []
        for word in words:
            pattern = f"%{word}%"
            conditions.extend(
                [
                    Material.title.ilike(pattern),
                    Material.topic.ilike(pattern),
                    Material.category.ilike(pattern),
                ]
            )

        statement = select(Material).where(or_(*conditions))
        if category:
            statement = statement.where(Material.category == category)
        result = await db.execute(
            statement
            .order_by(Material.week.asc(), Material.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    def build_material_context(self, materials: list[Material]) -> str:
        max_chars = self.settings.material_context_max_chars
        parts = []
        for material in materials:
            if not material.content:
                continue
            text = material.content[:max_chars]
            if len(material.content) > max_chars:
                text += "\n\n[... content truncated ...]"
            parts.append(f"# Material: {material.title} (Week {material.week}, {material.topic})\n{text}")
        return "\n\n".join(parts)

    def _recent_conversation(self, messages: list[ChatMessage]) -> str:
        recent = messages[-self.settings.chat_history_window :]
        if not recent:
            return ""
        lines = [
            f"{'Student' if m.role == 'user' else 'Assistant'}: {m.content[:300]}" for m in recent
        ]
        return "\nRecent conversation:\n" + "\n".join(lines) + "\n\n"

    # -------------------------------------------------------------------------
    # Replies
    # -------------------------------------------------------------------------

    async def chitchat(self, message: str) -> str:
        return await self.llm.complete(
            f"You are Skooly, a friendly AI learning assistant. Respond briefly to: {message}",
            max_tokens=self.settings.llm_short_max_tokens,
        )

    async def grounded_answer(
        self,
        message: str,
        intent: ChatIntent,
        history: list[ChatMessage],
        materials: list[Material],
    ) -> str:
        """Answer with the intent's system prompt, recent turns and material excerpts."""
        context = self.build_material_context(materials)
        system = system_prompt_for(intent)
        if context:
            system += f"\n\n---\n\n## Course Materials\n\n{context}"

        prompt = f"{FOCUS_INSTRUCTION}{self._recent_conversation(history)}Student's current question: {message}"
        return await self.llm.complete(prompt, system=system)

    async def material_chat(
        self, material: AiMaterial, message: str, history: list[dict]
    ) -> str:
        """
        One turn of conversation about a single AI material.

        The material is embedded in a fixed priming exchange; only the last
        `material_chat_history_window` non-empty history entries are replayed.
        """
        priming = f"""You are a helpful study assistant.
The user is studying the following material:

Title: {material.title}
Content: {material.content}

Answer questions specifically about this material."""

        messages = [
            {"role": "user", "content": priming},
            {"role": "assistant", "content": MATERIAL_CHAT_ACK},
        ]
        turns = [t for t in history if t.get("content")]
        for turn in turns[-self.settings.material_chat_history_window :]:
            role = "user" if turn.get("role") == "user" else "assistant"
            messages.append({"role": role, "content": turn["content"]})
        messages.append({"role": "user", "content": message})

        return await self.llm.converse(messages)

    async def community_bot_reply(self, title: str, body: str) -> str:
        query = "\n\n".join(part for part in (title, body) if part)
        reply = await self.llm.complete(
            f'A student asked in a discussion:\n\n"{query}"\n\n'
            "Provide a helpful, concise direct reply to the student."
        )
        return reply.strip()

    async def rag_answer(self, query: str, context: str) -> str:
        """Answer a free-form question from retrieved material excerpts."""
        system = f"""You are Skooly, an AI learning assistant for university courses.
You help students understand course materials, answer questions, and generate learning content.
Always be helpful, accurate, and cite sources when using provided context.

CONTEXT FROM COURSE MATERIALS:
{context}

Use the context above to answer the student's question. If the answer isn't in the context, say so."""
        return await self.llm.complete(query, system=system)

    async def video_prompt(self, content: str, topic: str, *, style: str = "educational") -> str:
        """
        Renderer prompt for a video about `topic`.

        Model failures fall back to a generic prompt so the record can still be queued.
        """
        try:
            prompt = await self.llm.complete(
                build_video_prompt_request(content, topic, style=style),
                max_tokens=self.settings.llm_short_max_tokens,
            )
        except LLMServiceError as e:
            logger.warning("Video prompt generation failed for %r: %s", topic, str(e))
            return fallback_video_prompt(topic)
        return prompt.strip() or fallback_video_prompt(topic)

    async def generate_material(self, prompt: str) -> str:
        """
        Run a generation prompt bounded by `generation_timeout_seconds`.

        Raises:
            asyncio.TimeoutError: The model did not answer in time
        """
        return await asyncio.wait_for(
            self.llm.complete(prompt), timeout=self.settings.generation_timeout_seconds
        )


def get_chat_service(
    llm: Annotated[LLMService, Depends(get_llm_service)],
) -> ChatService:
    """FastAPI dependency; the model client is resolved separately so tests can swap it."""
    return ChatService(llm, get_settings())
