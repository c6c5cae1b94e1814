"""Generated video records: queueing, listing, status polling and deletion."""

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import ChatServiceDep, CurrentIdentity, DbSession, Identity, Storage, require_owner
from app.db.models import VideoMaterial, VideoStatus
from app.schemas.videos import (
    VideoDeleteResponse,
    VideoGenerateRequest,
    VideoGenerateResponse,
    VideoListResponse,
    VideoRead,
    VideoStatusMetadata,
    VideoStatusRead,
)
from app.services.storage import StorageError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/videos", tags=["videos"])

MAX_VIDEOS = 50
MIN_VIDEO_CONTENT_CHARS = 50


async def _get_owned_video(db: AsyncSession, video_id: UUID, identity: Identity) -> VideoMaterial:
    """Videos are looked up by id alone, so a foreign owner is a 403 rather than a 404."""
    video = await db.get(VideoMaterial, video_id)
    if video is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
    require_owner(video.generated_by, identity)
    return video


@router.get("", response_model=VideoListResponse)
async def list_videos(
    identity: CurrentIdentity,
    db: DbSession,
    source_material_id: UUID | None = Query(None, alias="sourceMaterialId"),
    source_ai_material_id: UUID | None = Query(None, alias="sourceAiMaterialId"),
) -> VideoListResponse:
    query = select(VideoMaterial).where(VideoMaterial.generated_by == identity.user_id)
    if source_material_id:
        query = query.where(VideoMaterial.source_material_id == source_material_id)
    if source_ai_material_id:
        query = query.where(VideoMaterial.source_ai_material_id == source_ai_material_id)

    result = await db.execute(query.order_by(VideoMaterial.created_at.desc()).limit(MAX_VIDEOS))
    return VideoListResponse(videos=[VideoRead.model_validate(v) for v in result.scalars()])


@router.post("/generate", response_model=VideoGenerateResponse)
async def generate_video(
    identity: CurrentIdentity,
    data: VideoGenerateRequest,
    db: DbSession,
    chat: ChatServiceDep,
) -> VideoGenerateResponse:
    """
    Write the renderer prompt and queue a `pending` video record.

    Rendering is done by the external worker, which picks up pending records.
    """
    if not data.content or not data.topic or not data.title or not data.course:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields: content, topic, title, and course are required",
        )
    if len(data.content) < MIN_VIDEO_CONTENT_CHARS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Content is too short. Please provide at least {MIN_VIDEO_CONTENT_CHARS} characters.",
        )

    video_prompt = await chat.video_prompt(data.content, data.topic, style=data.style)

    video = VideoMaterial(
        title=data.title,
        topic=data.topic,
        course=data.course,
        week=data.week or 1,
        category=data.category or "Theory",
        source_content=data.content,
        video_prompt=video_prompt,
        duration=data.duration_seconds,
        resolution=data.resolution,
        aspect_ratio=data.aspect_ratio,
        source_material_id=data.source_material_id,
        source_ai_material_id=data.source_ai_material_id,
        generated_by=identity.user_id,
        status=VideoStatus.PENDING.value,
    )
    db.add(video)
    await db.commit()
    await db.refresh(video)

    logger.info("Queued video %s for %s", video.id, identity.user_id)
    return VideoGenerateResponse(
        video=VideoRead.model_validate(video),
        message="Video generation queued",
    )


@router.get("/{video_id}", response_model=VideoRead)
async def get_video(video_id: UUID, identity: CurrentIdentity, db: DbSession) -> VideoRead:
    video = await _get_owned_video(db, video_id, identity)
    return VideoRead.model_validate(video)


@router.get("/{video_id}/status", response_model=VideoStatusRead)
async def get_video_status(
    video_id: UUID,
    identity: CurrentIdentity,
    db: DbSession,
) -> VideoStatusRead:
    """Polling endpoint. `videoUrl` is only set once the video has completed."""
    video = await _get_owned_video(db, video_id, identity)
    completed = video.status == VideoStatus.COMPLETED.value
    return VideoStatusRead(
        id=video.id,
        status=video.status,
        video_url=video.video_url if completed and video.video_url else None,
        error=video.error_message if video.status == VideoStatus.FAILED.value else None,
        metadata=VideoStatusMetadata(
            title=video.title,
            duration=video.duration,
            resolution=video.resolution,
            aspect_ratio=video.aspect_ratio,
        ),
    )


@router.delete("/{video_id}", response_model=VideoDeleteResponse)
async def delete_video(
    video_id: UUID,
    identity: CurrentIdentity,
    db: DbSession,
    storage: Storage,
) -> VideoDeleteResponse:
    video = await _get_owned_video(db, video_id, identity)

    if video.storage_key:
        try:
            await storage.delete(video.storage_key)
        except StorageError as e:
            logger.warning("Storage cleanup failed for video %s: %s", video_id, str(e))

    await db.delete(video)
    await db.commit()
    return VideoDeleteResponse(success=True, message="Video deleted successfully")
