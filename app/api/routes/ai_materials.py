"""AI-generated study materials: listing, generation and grounded chat."""

import asyncio
import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select

from app.api.deps import ChatServiceDep, CurrentIdentity, DbSession, get_owned_resource_or_404
from app.db.models import AiMaterial
from app.schemas.ai_materials import (
    AiMaterialGenerate,
    AiMaterialRead,
    MaterialChatRequest,
    MaterialChatResponse,
)
from app.services.chat_service import build_generation_prompt, file_fallback_content
from app.services.llm_service import LLMServiceError, SafetyBlockedError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai-materials", tags=["ai-materials"])

MIN_SOURCE_CHARS = 50
# Below this, a supplied file reference is preferred over the pasted text
MIN_USABLE_SOURCE_CHARS = 100


@router.get("", response_model=list[AiMaterialRead])
async def list_ai_materials(identity: CurrentIdentity, db: DbSession) -> list[AiMaterialRead]:
    result = await db.execute(
        select(AiMaterial)
        .where(AiMaterial.uploaded_by == identity.user_id)
        .order_by(AiMaterial.created_at.desc())
    )
    return [AiMaterialRead.model_validate(m) for m in result.scalars()]


@router.get("/{material_id}", response_model=AiMaterialRead)
async def get_ai_material(
    material_id: UUID,
    identity: CurrentIdentity,
    db: DbSession,
) -> AiMaterialRead:
    material = await get_owned_resource_or_404(
        db, AiMaterial, material_id, AiMaterial.uploaded_by, identity
    )
    return AiMaterialRead.model_validate(material)


# =============================================================================
# GENERATION
# =============================================================================


@router.post("/generate", response_model=AiMaterialRead)
async def generate_ai_material(
    identity: CurrentIdentity,
    data: AiMaterialGenerate,
    db: DbSession,
    chat: ChatServiceDep,
) -> AiMaterialRead:
    """
    Generate a study artifact from pasted text or a file reference.

    Timeouts map to 504 and safety refusals to 400.
    """
    if not data.type or not data.category or not data.title or not (data.source_content or data.file_url):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields: source content or file is required.",
        )
    if not data.file_url and len(data.source_content) < MIN_SOURCE_CHARS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Source content is too short for meaningful generation.",
        )

    source_content = data.source_content or ""
    if data.file_url and (
        len(source_content) < MIN_USABLE_SOURCE_CHARS
        or "Content extraction failed" in source_content
    ):
        source_content = file_fallback_content(
            data.file_url, title=data.title, topic=data.topic, course=data.course
        )

    prompt = build_generation_prompt(
        data.type.value,
        title=data.title,
        topic=data.topic,
        source_content=source_content,
        customization=data.customization,
    )

    try:
        content = await chat.generate_material(prompt)
    except asyncio.TimeoutError:
        logger.error("Generation timed out for %s (%s)", identity.user_id, data.type.value)
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail="Generation timed out. Please try with smaller content or try again later.",
        )
    except SafetyBlockedError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Content generation blocked by safety filters.",
        )
    except LLMServiceError as e:
        logger.error("Generation failed: %s", str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate content. {e}",
        )

    material = AiMaterial(
        title=data.title,
        type=data.type.value,
        category=data.category.capitalize(),
        content=content,
        course=data.course or "AI Generated",
        week=data.week or 1,
        topic=data.topic or data.title,
        customization=data.customization,
        source_material_id=data.source_material_id,
        uploaded_by=identity.user_id,
    )
    db.add(material)
    await db.commit()
    await db.refresh(material)

    logger.info("Generated %s material %s for %s", material.type, material.id, identity.user_id)
    return AiMaterialRead.model_validate(material)


# =============================================================================
# CHAT
# =============================================================================


@router.post("/chat", response_model=MaterialChatResponse)
async def chat_about_material(
    identity: CurrentIdentity,
    data: MaterialChatRequest,
    db: DbSession,
    chat: ChatServiceDep,
) -> MaterialChatResponse:
    """Answer a question about one of the caller's materials. Turns are not stored."""
    material = await get_owned_resource_or_404(
        db, AiMaterial, data.material_id, AiMaterial.uploaded_by, identity,
        detail="Material not found",
    )

    try:
        response = await chat.material_chat(
            material, data.message, [turn.model_dump() for turn in data.history]
        )
    except SafetyBlockedError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Response blocked by safety filters.",
        )
    except LLMServiceError as e:
        logger.error("Material chat failed for %s: %s", material.id, str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate response. {e}",
        )

    return MaterialChatResponse(response=response)
