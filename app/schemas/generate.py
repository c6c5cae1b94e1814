"""Grounded theory/lab generation schemas."""

from datetime import datetime
from typing import Any

from app.schemas.base import BaseSchema
from app.schemas.search import SourceRef


class GenerateRequest(BaseSchema):
    topic: str | None = None
    type: str = "theory"
    language: str = "python"
    use_context: bool = True


class GenerateMetadata(BaseSchema):
    topic: str
    type: str
    language: str | None
    generated_at: datetime


class GenerateResponse(BaseSchema):
    success: bool = True
    content: str
    sources: list[SourceRef]
    validation: dict[str, Any]
    metadata: GenerateMetadata
