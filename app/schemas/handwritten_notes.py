"""Handwritten note schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from app.schemas.base import BaseSchema, IDMixin


class HandwrittenNoteRead(IDMixin, BaseSchema):
    title: str
    content: str
    raw_content: str | None
    image_url: str | None
    course: str | None
    topic: str | None
    uploaded_by: str
    created_at: datetime


class TranscriptionResult(BaseSchema):
    """Returned right after upload: formatted text, raw text and the new note's id."""

    text: str
    raw_text: str
    id: UUID = Field(alias="_id")
