"""Study assistant chat schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from app.schemas.base import BaseSchema, IDMixin, TimestampMixin


class ChatRequest(BaseSchema):
    message: str | None = None
    chat_id: UUID | None = None


class RelevantFile(BaseSchema):
    id: UUID
    title: str
    course: str | None
    category: str
    topic: str
    week: int
    type: str
    file_url: str


class ChatTurnResult(BaseSchema):
    success: bool = True
    chat_id: UUID
    response: str
    intent: str
    relevant_files: list[RelevantFile] | None = None


class ChatMessageRead(BaseSchema):
    role: str
    content: str
    sources: list[str]
    intent: str | None
    validation: dict[str, Any] | None
    timestamp: datetime


class ChatSummary(IDMixin, TimestampMixin, BaseSchema):
    title: str


class ChatRead(ChatSummary):
    user_id: str
    messages: list[ChatMessageRead] = Field(default_factory=list)


class ChatListResponse(BaseSchema):
    chats: list[ChatSummary]


class ChatDetailResponse(BaseSchema):
    chat: ChatRead


class EvaluateRequest(BaseSchema):
    user_message: str | None = None
    assistant_content: str | None = None


class EvaluateResponse(BaseSchema):
    validation: dict[str, Any]
