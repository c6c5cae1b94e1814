"""Community discussion threads and bot replies."""

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import ChatServiceDep, CurrentIdentity, DbSession
from app.db.models import CommunityPost, CommunityReply, Material
from app.schemas.base import DataResponse
from app.schemas.community import (
    BotReplyResponse,
    PostCreate,
    PostDetail,
    PostRead,
    ReplyCreate,
    ReplyRead,
)
from app.schemas.materials import MaterialReference
from app.services.chat_service import BOT_AUTHOR_NAME
from app.services.llm_service import LLMServiceError, SafetyBlockedError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/community", tags=["community"])


async def _get_post_or_404(db: AsyncSession, post_id: UUID) -> CommunityPost:
    post = await db.get(CommunityPost, post_id)
    if post is None:
        logger.warning("Community post not found: %s", post_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


# =============================================================================
# POSTS
# =============================================================================


@router.get("", response_model=DataResponse[list[PostRead]])
async def list_posts(
    identity: CurrentIdentity,
    db: DbSession,
    course: str | None = None,
    material_id: UUID | None = Query(None, alias="materialId"),
    limit: int = Query(50, ge=1),
) -> DataResponse[list[PostRead]]:
    """Newest posts first; `limit` is capped at 100."""
    query = select(CommunityPost)
    if course:
        query = query.where(CommunityPost.course == course)
    if material_id:
        query = query.where(CommunityPost.material_id == material_id)

    result = await db.execute(query.order_by(CommunityPost.created_at.desc()).limit(min(limit, 100)))
    posts = [PostRead.model_validate(p) for p in result.scalars()]
    logger.info("Returning %d community posts to %s", len(posts), identity.user_id)
    return DataResponse(data=posts)


@router.post("", response_model=DataResponse[PostRead])
async def create_post(
    identity: CurrentIdentity,
    data: PostCreate,
    db: DbSession,
) -> DataResponse[PostRead]:
    if not data.title or not data.post_body:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Title and body are required",
        )

    post = CommunityPost(
        title=data.title,
        body=data.post_body,
        author_id=identity.user_id,
        author_name=data.author_name or identity.display_name,
        material_id=data.material_id,
        mentions=data.mentions,
        course=data.course,
    )
    db.add(post)
    await db.commit()
    await db.refresh(post)

    logger.info("Community post %s created by %s", post.id, identity.user_id)
    return DataResponse(data=PostRead.model_validate(post))


@router.get("/{post_id}", response_model=DataResponse[PostDetail])
async def get_post(
    post_id: UUID,
    identity: CurrentIdentity,
    db: DbSession,
) -> DataResponse[PostDetail]:
    """Post with replies (oldest first) and a reduced view of the linked material."""
    post = await _get_post_or_404(db, post_id)

    result = await db.execute(
        select(CommunityReply)
        .where(CommunityReply.post_id == post_id)
        .order_by(CommunityReply.created_at.asc())
    )
    replies = [ReplyRead.model_validate(r) for r in result.scalars()]

    material = None
    if post.material_id:
        linked = await db.get(Material, post.material_id)
        if linked is not None:
            material = MaterialReference.model_validate(linked)

    detail = PostDetail(
        **PostRead.model_validate(post).model_dump(),
        replies=replies,
        material=material,
    )
    return DataResponse(data=detail)


# =============================================================================
# REPLIES
# =============================================================================


@router.post("/{post_id}/replies", response_model=DataResponse[ReplyRead])
async def create_reply(
    post_id: UUID,
    identity: CurrentIdentity,
    data: ReplyCreate,
    db: DbSession,
) -> DataResponse[ReplyRead]:
    await _get_post_or_404(db, post_id)

    if not data.content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Reply content is required",
        )

    reply = CommunityReply(
        post_id=post_id,
        author_id=identity.user_id,
        author_name=data.author_name or "Anonymous",
        content=data.content,
        is_bot=False,
    )
    db.add(reply)
    await db.commit()
    await db.refresh(reply)

    logger.info("Reply %s added to post %s by %s", reply.id, post_id, identity.user_id)
    return DataResponse(data=ReplyRead.model_validate(reply))


@router.post("/{post_id}/bot-reply", response_model=BotReplyResponse)
async def create_bot_reply(
    post_id: UUID,
    identity: CurrentIdentity,
    db: DbSession,
    chat: ChatServiceDep,
) -> BotReplyResponse:
    """
    Ask the assistant to answer a post.

    At most one bot reply exists per post; a repeat call returns it unchanged.
    """
    post = await _get_post_or_404(db, post_id)

    result = await db.execute(
        select(CommunityReply).where(
            CommunityReply.post_id == post_id, CommunityReply.is_bot.is_(True)
        )
    )
    existing = result.scalars().first()
    if existing is not None:
        logger.info("Bot reply already exists for post %s", post_id)
        return BotReplyResponse(
            data=ReplyRead.model_validate(existing),
            message="Bot reply already present",
        )

    try:
        content = await chat.community_bot_reply(post.title, post.body)
    except SafetyBlockedError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Response blocked by safety filters.",
        )
    except LLMServiceError as e:
        logger.error("Bot reply failed for post %s: %s", post_id, str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate response. {e}",
        )

    reply = CommunityReply(
        post_id=post_id,
        author_id=None,
        author_name=BOT_AUTHOR_NAME,
        content=content,
        is_bot=True,
        sources=[],
    )
    db.add(reply)
    await db.commit()
    await db.refresh(reply)

    logger.info("Bot reply %s created for post %s (requested by %s)", reply.id, post_id, identity.user_id)
    return BotReplyResponse(data=ReplyRead.model_validate(reply))
