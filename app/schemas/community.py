"""Community discussion schemas."""

from uuid import UUID

from pydantic import Field

from app.schemas.base import BaseSchema, IDMixin, TimestampMixin
from app.schemas.materials import MaterialReference


class PostCreate(BaseSchema):
    """Schema for creating a post. Title and body presence is checked by the route."""

    title: str | None = Field(None, max_length=255)
    post_body: str | None = None
    material_id: UUID | None = None
    mentions: list[str] = Field(default_factory=list)
    course: str | None = Field(None, max_length=255)
    author_name: str | None = Field(None, max_length=255)


class ReplyCreate(BaseSchema):
    content: str | None = None
    author_name: str | None = Field(None, max_length=255)


class PostRead(IDMixin, TimestampMixin, BaseSchema):
    title: str
    body: str
    author_id: str
    author_name: str
    material_id: UUID | None
    mentions: list[str]
    course: str | None


class ReplyRead(IDMixin, TimestampMixin, BaseSchema):
    post_id: UUID
    author_id: str | None
    author_name: str
    content: str
    is_bot: bool
    sources: list[str]


class PostDetail(PostRead):
    """Post with its replies (oldest first) and the linked material, if any."""

    replies: list[ReplyRead]
    material: MaterialReference | None = None


class BotReplyResponse(BaseSchema):
    data: ReplyRead
    message: str | None = None
