"""
SQLAlchemy 2.0 Models for Skooly.

Uses modern declarative syntax with Mapped[] type annotations.
Owner columns hold the identity provider's subject string; there is no local
user table, so every per-user query must filter on the owner column itself.
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _created_at() -> Mapped[datetime]:
    return mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


def _updated_at() -> Mapped[datetime]:
    return mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )


# =============================================================================
# ENUMS
# =============================================================================


class MaterialCategory(str, PyEnum):
    """Official material category."""

    THEORY = "theory"
    LAB = "lab"


class MaterialType(str, PyEnum):
    """Kind of official material."""

    LECTURE = "lecture"
    PDF = "pdf"
    CODE = "code"
    NOTES = "notes"
    REFERENCE = "reference"


class AiMaterialType(str, PyEnum):
    """Kind of AI-generated study artifact."""

    NOTES = "notes"
    SLIDES = "slides"
    PDF = "pdf"
    CODE_GUIDE = "code-guide"


class ChatRole(str, PyEnum):
    """Role in chat conversation."""

    USER = "user"
    ASSISTANT = "assistant"


class ChatIntent(str, PyEnum):
    """What the student is asking the assistant to do."""

    SEARCH = "search"
    SUMMARIZE = "summarize"
    EXPLAIN = "explain"
    GENERATE_THEORY = "generate-theory"
    GENERATE_LAB = "generate-lab"
    CHITCHAT = "chitchat"


class VideoStatus(str, PyEnum):
    """Lifecycle of a generated video."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# =============================================================================
# MODELS
# =============================================================================


class Material(Base):
    """
    Official course material shared with every student.

    File bytes live in object storage; extracted text is kept in `content`
    so the assistant can ground answers on it.
    """

    __tablename__ = "materials"
    __table_args__ = (
        Index("idx_materials_category_type", "category", "type"),
        Index("idx_materials_topic", "topic"),
        Index("idx_materials_week", "week"),
        Index("idx_materials_course", "course"),
        Index("idx_materials_uploaded_by", "uploaded_by"),
        CheckConstraint("week >= 1 AND week <= 20", name="valid_week"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=MaterialType.PDF.value)
    course: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    topic: Mapped[str] = mapped_column(String(255), nullable=False)
    week: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    tags: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    file_url: Mapped[str] = mapped_column(String(), nullable=False, default="")
    storage_key: Mapped[Optional[str]] = mapped_column(String(), nullable=True)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    uploaded_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class AiMaterial(Base):
    """Study artifact generated by the model for one user."""

    __tablename__ = "ai_materials"
    __table_args__ = (Index("idx_ai_materials_owner_created", "uploaded_by", "created_at"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    course: Mapped[str] = mapped_column(String(255), nullable=False, default="AI Generated")
    week: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    topic: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    customization: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source_material_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    uploaded_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class HandwrittenNote(Base):
    """
    OCR-transcribed personal note.

    `raw_content` is the model transcription; `content` is its Markdown
    rendering, produced once at creation.
    """

    __tablename__ = "handwritten_notes"
    __table_args__ = (Index("idx_handwritten_notes_owner_created", "uploaded_by", "created_at"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="Untitled Note")
    content: Mapped[str] = mapped_column(Text, nullable=False)
    raw_content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(), nullable=True)
    course: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    topic: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    uploaded_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = _created_at()


class ChatHistory(Base):
    """Assistant conversation owned by one user."""

    __tablename__ = "chat_histories"
    __table_args__ = (Index("idx_chat_histories_user_updated", "user_id", "updated_at"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="New Chat")
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    # Relationships
    messages: Mapped[list["ChatMessage"]] = relationship(
        "ChatMessage",
        back_populates="chat",
        cascade="all, delete-orphan",
        order_by="ChatMessage.timestamp",
    )


class ChatMessage(Base):
    """Single turn in a ChatHistory."""

    __tablename__ = "chat_messages"
    __table_args__ = (
        Index("idx_chat_messages_chat_timestamp", "chat_id", "timestamp"),
        CheckConstraint("role IN ('user', 'assistant')", name="valid_chat_role"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    chat_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("chat_histories.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False)  # 'user' or 'assistant'
    content: Mapped[str] = mapped_column(Text, nullable=False)
    sources: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)  # Material ids
    intent: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    validation: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    timestamp: Mapped[datetime] = _created_at()

    # Relationships
    chat: Mapped["ChatHistory"] = relationship("ChatHistory", back_populates="messages")


class CommunityPost(Base):
    """
    Discussion post.

    `mentions` are free-form tags such as "instructor" or "TA"; they are not
    checked against real accounts.
    """

    __tablename__ = "community_posts"
    __table_args__ = (
        Index("idx_community_posts_created", "created_at"),
        Index("idx_community_posts_author_created", "author_id", "created_at"),
        Index("idx_community_posts_material", "material_id"),
        Index("idx_community_posts_course_created", "course", "created_at"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[str] = mapped_column(String(255), nullable=False)
    author_name: Mapped[str] = mapped_column(String(255), nullable=False)
    material_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("materials.id", ondelete="SET NULL"), nullable=True
    )
    mentions: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    course: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    # Relationships
    replies: Mapped[list["CommunityReply"]] = relationship(
        "CommunityReply", back_populates="post", cascade="all, delete-orphan"
    )


class CommunityReply(Base):
    """Reply to a post. Bot replies have no author_id."""

    __tablename__ = "community_replies"
    __table_args__ = (
        Index("idx_community_replies_post_created", "post_id", "created_at"),
        CheckConstraint("(author_id IS NULL) = is_bot", name="bot_replies_have_no_author"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    post_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("community_posts.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    author_name: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_bot: Mapped[bool] = mapped_column(default=False, nullable=False)
    sources: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    # Relationships
    post: Mapped["CommunityPost"] = relationship("CommunityPost", back_populates="replies")


class VideoMaterial(Base):
    """
    Record of an AI-generated video.

    Rendering happens outside this service; the worker updates `status`,
    `video_url` and `storage_key` as it progresses.
    """

    __tablename__ = "video_materials"
    __table_args__ = (
        Index("idx_video_materials_owner_created", "generated_by", "created_at"),
        Index("idx_video_materials_course_week", "course", "week"),
        Index("idx_video_materials_source_material", "source_material_id"),
        Index("idx_video_materials_source_ai_material", "source_ai_material_id"),
        CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed')",
            name="valid_video_status",
        ),
        CheckConstraint("resolution IN ('720p', '1080p', '4k')", name="valid_resolution"),
        CheckConstraint("aspect_ratio IN ('16:9', '9:16')", name="valid_aspect_ratio"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    topic: Mapped[str] = mapped_column(String(255), nullable=False)
    course: Mapped[str] = mapped_column(String(255), nullable=False)
    week: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    category: Mapped[str] = mapped_column(String(20), nullable=False, default="Theory")
    source_content: Mapped[str] = mapped_column(Text, nullable=False)
    video_prompt: Mapped[str] = mapped_column(Text, nullable=False, default="")
    video_url: Mapped[str] = mapped_column(String(), nullable=False, default="")
    storage_key: Mapped[Optional[str]] = mapped_column(String(), nullable=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=8)  # seconds
    resolution: Mapped[str] = mapped_column(String(10), nullable=False, default="720p")
    aspect_ratio: Mapped[str] = mapped_column(String(10), nullable=False, default="16:9")
    source_material_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    source_ai_material_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    generated_by: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=VideoStatus.PENDING.value
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    operation_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()
