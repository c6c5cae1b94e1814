"""Official course material routes."""

import logging
import math
from uuid import UUID, uuid4

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy import func, select, type_coerce
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import AdminIdentity, CurrentIdentity, DbSession, Storage, ensure_database_reachable
from app.config import get_settings
from app.db.models import Material, MaterialCategory, MaterialType
from app.schemas.base import DataResponse, MessageResponse
from app.schemas.materials import MaterialCreate, MaterialPage, MaterialRead, MaterialSummary, Pagination
from app.services.document_parser import document_parser
from app.services.storage import StorageError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/materials", tags=["materials"])


def _has_tag(db: AsyncSession, tag: str):
    """Exact element match on the JSON `tags` array."""
    if db.bind.dialect.name == "postgresql":
        return type_coerce(Material.tags, JSONB).contains([tag])
    elements = func.json_each(Material.tags).table_valued("value")
    return select(elements.c.value).where(elements.c.value == tag).exists()


# =============================================================================
# READ (public)
# =============================================================================


@router.get("", response_model=MaterialPage)
async def list_materials(
    db: DbSession,
    category: MaterialCategory | None = None,
    type: MaterialType | None = None,
    topic: str | None = None,
    week: int | None = None,
    tag: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
) -> MaterialPage:
    """
    List materials without their extracted content.

    Filters:
    - topic: case-insensitive substring
    - tag: materials carrying this exact tag
    Ordered by week, then newest first.
    """
    await ensure_database_reachable(db, generic_message="Failed to fetch materials")

    query = select(Material)
    if category:
        query = query.where(Material.category == category.value)
    if type:
        query = query.where(Material.type == type.value)
    if topic:
        query = query.where(Material.topic.ilike(f"%{topic}%"))
    if week is not None:
        query = query.where(Material.week == week)
    if tag:
        query = query.where(_has_tag(db, tag))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()

    result = await db.execute(
        query.order_by(Material.week.asc(), Material.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return MaterialPage(
        data=[MaterialSummary.model_validate(m) for m in result.scalars()],
        pagination=Pagination(total=total, page=page, limit=limit, pages=math.ceil(total / limit)),
    )


@router.get("/courses", response_model=DataResponse[list[str]])
async def list_courses(db: DbSession) -> DataResponse[list[str]]:
    """Distinct course names, sorted."""
    await ensure_database_reachable(db, generic_message="Failed to fetch courses")

    result = await db.execute(
        select(Material.course).where(Material.course.is_not(None)).distinct()
    )
    return DataResponse(data=sorted(c for c in result.scalars() if c))


@router.get("/{material_id}", response_model=DataResponse[MaterialRead])
async def get_material(material_id: UUID, db: DbSession) -> DataResponse[MaterialRead]:
    material = await db.get(Material, material_id)
    if material is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Material not found")
    return DataResponse(data=MaterialRead.model_validate(material))


# =============================================================================
# WRITE
# =============================================================================


@router.post("", response_model=DataResponse[MaterialRead], status_code=status.HTTP_201_CREATED)
async def create_material(
    identity: CurrentIdentity,
    data: MaterialCreate,
    db: DbSession,
) -> DataResponse[MaterialRead]:
    """Create a text-only material (no file)."""
    material = Material(uploaded_by=identity.user_id, **data.model_dump(mode="json"))
    db.add(material)
    await db.commit()
    await db.refresh(material)
    return DataResponse(data=MaterialRead.model_validate(material))


@router.post("/upload", response_model=DataResponse[MaterialRead], status_code=status.HTTP_201_CREATED)
async def upload_material(
    identity: AdminIdentity,
    db: DbSession,
    storage: Storage,
    file: UploadFile | None = File(None),
    title: str | None = Form(None),
    course: str | None = Form(None),
    description: str = Form(""),
    category: MaterialCategory = Form(MaterialCategory.THEORY),
    type: MaterialType = Form(MaterialType.PDF),
    topic: str | None = Form(None),
    week: int | None = Form(None, ge=1, le=20),
    tags: str = Form(""),
) -> DataResponse[MaterialRead]:
    """
    Upload a course file (admin only).

    The file is stored in S3 and its text extracted for grounding. Tags are
    comma-separated.
    """
    if file is None or not title or not course or not topic or week is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")

    file_bytes = await file.read()
    if len(file_bytes) > get_settings().max_upload_size_bytes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File is too large")

    filename = file.filename or "upload"
    mime_type = file.content_type or "application/octet-stream"
    storage_key = f"course_materials/{course}/{uuid4()}_{filename}"

    try:
        file_url = await storage.upload(storage_key, file_bytes, mime_type)
    except StorageError as e:
        logger.error("Material upload to storage failed: %s", str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to upload file",
        )

    material = Material(
        title=title,
        course=course,
        description=description,
        category=category.value,
        type=type.value,
        topic=topic,
        week=week,
        tags=[t.strip() for t in tags.split(",") if t.strip()],
        file_url=file_url,
        storage_key=storage_key,
        mime_type=mime_type,
        content=document_parser.extract_text(file_bytes, mime_type, filename),
        uploaded_by=identity.user_id,
    )
    db.add(material)
    await db.commit()
    await db.refresh(material)

    logger.info("Material %s uploaded by %s (%d bytes)", material.id, identity.user_id, len(file_bytes))
    return DataResponse(data=MaterialRead.model_validate(material))


@router.delete("/{material_id}", response_model=MessageResponse)
async def delete_material(
    material_id: UUID,
    identity: AdminIdentity,
    db: DbSession,
    storage: Storage,
) -> MessageResponse:
    """Delete a material (admin only). Storage cleanup failures are logged and ignored."""
    material = await db.get(Material, material_id)
    if material is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Material not found")

    if material.storage_key:
        try:
            await storage.delete(material.storage_key)
        except StorageError as e:
            logger.warning("Storage cleanup failed for material %s: %s", material_id, str(e))

    await db.delete(material)
    await db.commit()
    logger.info("Material %s deleted by %s", material_id, identity.user_id)
    return MessageResponse(message="Material deleted successfully")
