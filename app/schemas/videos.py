"""Video material schemas."""

from typing import Literal
from uuid import UUID

from pydantic import Field

from app.schemas.base import BaseSchema, IDMixin, TimestampMixin


class VideoRead(IDMixin, TimestampMixin, BaseSchema):
    title: str
    topic: str
    course: str
    week: int
    category: str
    source_content: str
    video_prompt: str
    video_url: str
    duration: int
    resolution: str
    aspect_ratio: str
    source_material_id: UUID | None
    source_ai_material_id: UUID | None
    generated_by: str
    status: str
    error_message: str | None


class VideoListResponse(BaseSchema):
    videos: list[VideoRead]


class VideoStatusMetadata(BaseSchema):
    title: str
    duration: int
    resolution: str
    aspect_ratio: str


class VideoStatusRead(BaseSchema):
    """Polling payload; the id is plain `id` here."""

    id: UUID
    status: str
    video_url: str | None
    error: str | None
    metadata: VideoStatusMetadata


class VideoDeleteResponse(BaseSchema):
    success: bool
    message: str


class VideoGenerateRequest(BaseSchema):
    """Queue a video; `content` is the course text the renderer prompt is written from."""

    content: str | None = None
    topic: str | None = Field(None, max_length=255)
    title: str | None = Field(None, max_length=255)
    course: str | None = Field(None, max_length=255)
    week: int | None = Field(None, ge=1, le=20)
    category: str | None = Field(None, max_length=20)
    source_material_id: UUID | None = None
    source_ai_material_id: UUID | None = None
    aspect_ratio: Literal["16:9", "9:16"] = "16:9"
    resolution: Literal["720p", "1080p", "4k"] = "720p"
    duration_seconds: int = Field(8, ge=1, le=60)
    style: str = "educational"


class VideoGenerateResponse(BaseSchema):
    success: bool = True
    video: VideoRead
    message: str
