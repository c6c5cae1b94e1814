"""AI-generated material schemas."""

from datetime import datetime
from typing import Annotated, Literal
from uuid import UUID

from pydantic import Field

from app.db.models import AiMaterialType
from app.schemas.base import BaseSchema, IDMixin, TimestampMixin


class AiMaterialGenerate(BaseSchema):
    """Generation request.

    Either `source_content` or `file_url` must be supplied; the route checks
    this so it can answer with a specific message.
    """

    type: AiMaterialType | None = None
    category: str | None = Field(None, max_length=20)
    title: str | None = Field(None, max_length=255)
    source_content: str | None = None
    file_url: str | None = None
    customization: str | None = None
    course: str | None = Field(None, max_length=255)
    week: int | None = Field(None, ge=1, le=20)
    topic: str | None = Field(None, max_length=255)
    source_material_id: UUID | None = None


class AiMaterialRead(IDMixin, TimestampMixin, BaseSchema):
    title: str
    type: str
    category: str
    course: str
    week: int
    topic: str
    content: str
    customization: str | None
    source_material_id: UUID | None
    uploaded_by: str


class ChatTurn(BaseSchema):
    role: str
    content: str = ""


class MaterialChatRequest(BaseSchema):
    material_id: UUID
    message: str = Field(..., min_length=1)
    history: list[ChatTurn] = Field(default_factory=list)


class MaterialChatResponse(BaseSchema):
    response: str


class UnifiedMaterialMetadata(BaseSchema):
    course: str | None
    topic: str | None


class _UnifiedMaterialBase(IDMixin, BaseSchema):
    title: str
    sub_type: str
    created_at: datetime
    metadata: UnifiedMaterialMetadata


class AiNoteItem(_UnifiedMaterialBase):
    kind: Literal["ai-note"] = "ai-note"
    type: Literal["ai-note"] = "ai-note"
    category: str


class HandwrittenItem(_UnifiedMaterialBase):
    kind: Literal["handwritten"] = "handwritten"
    type: Literal["handwritten"] = "handwritten"
    sub_type: str = "handwritten"


UnifiedMaterial = Annotated[AiNoteItem | HandwrittenItem, Field(discriminator="kind")]
