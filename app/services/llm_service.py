"""Anthropic Messages API wrapper used by every AI feature."""

import base64
import logging
from functools import lru_cache

from anthropic import APIError, AsyncAnthropic

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)

SUPPORTED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}

TRANSCRIPTION_PROMPT = (
    "Transcribe all handwritten and printed text in this image exactly as written. "
    "Preserve line breaks, headings, bullet points and numbered lists. "
    "Do not add commentary, explanations or a preamble; output only the transcribed text."
)


class LLMServiceError(Exception):
    """The model host rejected or failed the request."""


class SafetyBlockedError(LLMServiceError):
    """The model declined to answer for safety reasons."""


class LLMService:
    """Thin async client over the Anthropic Messages API."""

    def __init__(self, settings: Settings):
        """Initialize Anthropic client."""
        self.client = AsyncAnthropic(api_key=settings.anthropic_api_key)
        self.model = settings.llm_model
        self.max_tokens = settings.llm_max_tokens

    async def converse(
        self,
        messages: list[dict],
        *,
        system: str | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """
        Send a full message list and return the assistant's text.

        Args:
            messages: Alternating user/assistant turns ({'role', 'content'})
            system: Optional system prompt
            max_tokens: Override for the configured response budget

        Raises:
            SafetyBlockedError: The model refused the request
            LLMServiceError: Any other API failure
        """
        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens or self.max_tokens,
            "messages": messages,
        }
        if system:
            kwargs["system"] = system

        try:
            message = await self.client.messages.create(**kwargs)
        except APIError as e:
            logger.error("Anthropic API error: %s", str(e))
            raise LLMServiceError(str(e)) from e

        if message.stop_reason == "refusal":
            logger.warning("Model refused request (model=%s)", self.model)
            raise SafetyBlockedError("SAFETY: response blocked by the model")

        return "".join(block.text for block in message.content if block.type == "text")

    async def complete(
        self,
        prompt: str,
        *,
        system: str | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Single-turn completion."""
        return await self.converse(
            [{"role": "user", "content": prompt}], system=system, max_tokens=max_tokens
        )

    async def transcribe_image(self, image_bytes: bytes, media_type: str) -> str:
        """
        Transcribe the text in an image with the vision model.

        Raises:
            ValueError: Unsupported image type or empty file
        """
        if not image_bytes:
            raise ValueError("Empty image")
        if media_type not in SUPPORTED_IMAGE_TYPES:
            raise ValueError(f"Unsupported image type: {media_type}")

        encoded = base64.standard_b64encode(image_bytes).decode("ascii")
        return await self.converse(
            [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {"type": "base64", "media_type": media_type, "data": encoded},
                        },
                        {"type": "text", "text": TRANSCRIPTION_PROMPT},
                    ],
                }
            ]
        )


@lru_cache
def get_llm_service() -> LLMService:
    """FastAPI dependency returning the shared model client."""
    return LLMService(get_settings())
