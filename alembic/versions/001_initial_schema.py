"""Initial schema with all tables.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

This migration creates the complete Skooly database schema:
- Tables: materials, ai_materials, handwritten_notes, chat_histories,
  chat_messages, community_posts, community_replies, video_materials
- Indexes: owner/created lookups and material filters
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("updated_at", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    ]


def upgrade() -> None:
    # ==========================================================================
    # MATERIALS TABLE
    # ==========================================================================
    op.create_table(
        "materials",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("type", sa.String(20), nullable=False, server_default="pdf"),
        sa.Column("course", sa.String(255), nullable=True),
        sa.Column("topic", sa.String(255), nullable=False),
        sa.Column("week", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("tags", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("file_url", sa.String(), nullable=False, server_default=""),
        sa.Column("storage_key", sa.String(), nullable=True),
        sa.Column("mime_type", sa.String(255), nullable=False, server_default=""),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("uploaded_by", sa.String(255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("week >= 1 AND week <= 20", name="valid_week"),
    )
    op.create_index("idx_materials_category_type", "materials", ["category", "type"])
    op.create_index("idx_materials_topic", "materials", ["topic"])
    op.create_index("idx_materials_week", "materials", ["week"])
    op.create_index("idx_materials_course", "materials", ["course"])
    op.create_index("idx_materials_uploaded_by", "materials", ["uploaded_by"])

    # ==========================================================================
    # AI_MATERIALS TABLE
    # ==========================================================================
    op.create_table(
        "ai_materials",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("course", sa.String(255), nullable=False, server_default="AI Generated"),
        sa.Column("week", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("topic", sa.String(255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("customization", sa.Text(), nullable=True),
        sa.Column("source_material_id", sa.Uuid(), nullable=True),
        sa.Column("uploaded_by", sa.String(255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_ai_materials_owner_created", "ai_materials", ["uploaded_by", "created_at"])

    # ==========================================================================
    # HANDWRITTEN_NOTES TABLE
    # ==========================================================================
    op.create_table(
        "handwritten_notes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False, server_default="Untitled Note"),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("raw_content", sa.Text(), nullable=True),
        sa.Column("image_url", sa.String(), nullable=True),
        sa.Column("course", sa.String(255), nullable=True),
        sa.Column("topic", sa.String(255), nullable=True),
        sa.Column("uploaded_by", sa.String(255), nullable=False),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_handwritten_notes_owner_created", "handwritten_notes", ["uploaded_by", "created_at"])

    # ==========================================================================
    # CHAT TABLES
    # ==========================================================================
    op.create_table(
        "chat_histories",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("title", sa.String(255), nullable=False, server_default="New Chat"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_chat_histories_user_updated", "chat_histories", ["user_id", "updated_at"])

    op.create_table(
        "chat_messages",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("chat_id", sa.Uuid(), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("sources", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("intent", sa.String(30), nullable=True),
        sa.Column("validation", postgresql.JSONB(), nullable=True),
        sa.Column("timestamp", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["chat_id"], ["chat_histories.id"], ondelete="CASCADE"),
        sa.CheckConstraint("role IN ('user', 'assistant')", name="valid_chat_role"),
    )
    op.create_index("idx_chat_messages_chat_timestamp", "chat_messages", ["chat_id", "timestamp"])

    # ==========================================================================
    # COMMUNITY TABLES
    # ==========================================================================
    op.create_table(
        "community_posts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("author_id", sa.String(255), nullable=False),
        sa.Column("author_name", sa.String(255), nullable=False),
        sa.Column("material_id", sa.Uuid(), nullable=True),
        sa.Column("mentions", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("course", sa.String(255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["material_id"], ["materials.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_community_posts_created", "community_posts", ["created_at"])
    op.create_index("idx_community_posts_author_created", "community_posts", ["author_id", "created_at"])
    op.create_index("idx_community_posts_material", "community_posts", ["material_id"])
    op.create_index("idx_community_posts_course_created", "community_posts", ["course", "created_at"])

    op.create_table(
        "community_replies",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("post_id", sa.Uuid(), nullable=False),
        sa.Column("author_id", sa.String(255), nullable=True),
        sa.Column("author_name", sa.String(255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_bot", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sources", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["post_id"], ["community_posts.id"], ondelete="CASCADE"),
        sa.CheckConstraint("(author_id IS NULL) = is_bot", name="bot_replies_have_no_author"),
    )
    op.create_index("idx_community_replies_post_created", "community_replies", ["post_id", "created_at"])

    # ==========================================================================
    # VIDEO_MATERIALS TABLE
    # ==========================================================================
    op.create_table(
        "video_materials",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("topic", sa.String(255), nullable=False),
        sa.Column("course", sa.String(255), nullable=False),
        sa.Column("week", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("category", sa.String(20), nullable=False, server_default="Theory"),
        sa.Column("source_content", sa.Text(), nullable=False),
        sa.Column("video_prompt", sa.Text(), nullable=False, server_default=""),
        sa.Column("video_url", sa.String(), nullable=False, server_default=""),
        sa.Column("storage_key", sa.String(), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=False, server_default="8"),
        sa.Column("resolution", sa.String(10), nullable=False, server_default="720p"),
        sa.Column("aspect_ratio", sa.String(10), nullable=False, server_default="16:9"),
        sa.Column("source_material_id", sa.Uuid(), nullable=True),
        sa.Column("source_ai_material_id", sa.Uuid(), nullable=True),
        sa.Column("generated_by", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("operation_name", sa.String(255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed')", name="valid_video_status"
        ),
        sa.CheckConstraint("resolution IN ('720p', '1080p', '4k')", name="valid_resolution"),
        sa.CheckConstraint("aspect_ratio IN ('16:9', '9:16')", name="valid_aspect_ratio"),
    )
    op.create_index("idx_video_materials_owner_created", "video_materials", ["generated_by", "created_at"])
    op.create_index("idx_video_materials_course_week", "video_materials", ["course", "week"])
    op.create_index("idx_video_materials_source_material", "video_materials", ["source_material_id"])
    op.create_index("idx_video_materials_source_ai_material", "video_materials", ["source_ai_material_id"])


def downgrade() -> None:
    op.drop_table("video_materials")
    op.drop_table("community_replies")
    op.drop_table("community_posts")
    op.drop_table("chat_messages")
    op.drop_table("chat_histories")
    op.drop_table("handwritten_notes")
    op.drop_table("ai_materials")
    op.drop_table("materials")
