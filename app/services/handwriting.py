"""OCR pipeline for handwritten notes: vision transcription plus Markdown tidy-up."""

import logging
import re
from dataclasses import dataclass

from app.services.llm_service import LLMService

logger = logging.getLogger(__name__)

_BULLET = re.compile(r"^[-*•]\s*")
_NUMBERED = re.compile(r"^\d+[.)]")
_SENTENCE_END = re.compile(r"[.!?]$")
_MAX_HEADER_LENGTH = 50


@dataclass
class Transcript:
    raw_text: str
    text: str


def _is_header(line: str) -> bool:
    return (
        len(line) < _MAX_HEADER_LENGTH
        and any(ch.isalpha() for ch in line)
        and line == line.upper()
        and not _SENTENCE_END.search(line)
    )


def format_transcript(raw_text: str) -> str:
    """
    Turn a raw transcription into light Markdown.

    Short all-caps lines become `##` headers, bullet glyphs become `-` items,
    numbered items are kept as-is, and blank lines are dropped. Blocks are
    separated by one empty line.
    """
    formatted: list[str] = []
    for line in raw_text.split("\n"):
        line = line.strip()
        if not line:
            continue

        if _BULLET.match(line):
            formatted.append(f"- {_BULLET.sub('', line, count=1)}")
        elif _NUMBERED.match(line):
            formatted.append(line)
        elif _is_header(line):
            formatted.append(f"## {line}")
        else:
            formatted.append(line)

    return "\n\n".join(formatted)


async def transcribe_note(llm: LLMService, image_bytes: bytes, media_type: str) -> Transcript:
    """Run the vision model on an image and format the result."""
    raw_text = await llm.transcribe_image(image_bytes, media_type)
    logger.info("Transcribed %d bytes of image into %d chars", len(image_bytes), len(raw_text))
    return Transcript(raw_text=raw_text, text=format_transcript(raw_text))
