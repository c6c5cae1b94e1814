"""Unified list of the caller's own study artifacts."""

from fastapi import APIRouter
from sqlalchemy import select

from app.api.deps import CurrentIdentity, DbSession
from app.db.models import AiMaterial, HandwrittenNote
from app.schemas.ai_materials import (
    AiNoteItem,
    HandwrittenItem,
    UnifiedMaterial,
    UnifiedMaterialMetadata,
)

router = APIRouter(prefix="/my-materials", tags=["my-materials"])


@router.get("", response_model=list[UnifiedMaterial])
async def list_my_materials(identity: CurrentIdentity, db: DbSession) -> list[UnifiedMaterial]:
    """AI materials and handwritten notes owned by the caller, newest first."""
    ai_result = await db.execute(
        select(AiMaterial).where(AiMaterial.uploaded_by == identity.user_id)
    )
    note_result = await db.execute(
        select(HandwrittenNote).where(HandwrittenNote.uploaded_by == identity.user_id)
    )

    items: list[UnifiedMaterial] = [
        AiNoteItem(
            id=m.id,
            title=m.title,
            sub_type=m.type,
            category=m.category,
            created_at=m.created_at,
            metadata=UnifiedMaterialMetadata(course=m.course, topic=m.topic),
        )
        for m in ai_result.scalars()
    ]
    items.extend(
        HandwrittenItem(
            id=n.id,
            title=n.title,
            created_at=n.created_at,
            metadata=UnifiedMaterialMetadata(course=n.course, topic=n.topic),
        )
        for n in note_result.scalars()
    )

    items.sort(key=lambda item: item.created_at, reverse=True)
    return items
