"""Theory notes and lab code generated on demand, grounded on course materials."""

import asyncio
import logging

from fastapi import APIRouter, HTTPException, status

from app.api.deps import ChatServiceDep, CurrentIdentity, DbSession
from app.api.routes.search import source_refs
from app.db.models import utcnow
from app.schemas.generate import GenerateMetadata, GenerateRequest, GenerateResponse
from app.services.chat_service import build_lab_prompt, build_theory_prompt
from app.services.llm_service import LLMServiceError, SafetyBlockedError
from app.services.validator import check_lab_content, check_theory_content

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/generate", tags=["generate"])

MAX_CONTEXT_SOURCES = 5


@router.post("", response_model=GenerateResponse)
async def generate_content(
    identity: CurrentIdentity,
    data: GenerateRequest,
    db: DbSession,
    chat: ChatServiceDep,
) -> GenerateResponse:
    """Nothing is stored; the content comes back with quick structural checks."""
    if not data.topic:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Topic is required")
    if data.type not in ("theory", "lab"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid type")

    materials = []
    context = ""
    if data.use_context:
        materials = await chat.find_materials(db, data.topic, limit=MAX_CONTEXT_SOURCES)
        context = chat.build_material_context(materials)

    if data.type == "theory":
        prompt = build_theory_prompt(data.topic, context)
    else:
        prompt = build_lab_prompt(data.topic, data.language, context)

    try:
        content = await chat.generate_material(prompt)
    except asyncio.TimeoutError:
        logger.error("%s generation timed out for %s", data.type, identity.user_id)
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail="Generation timed out. Please try again later.",
        )
    except SafetyBlockedError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Content generation blocked by safety filters.",
        )
    except LLMServiceError as e:
        logger.error("%s generation failed: %s", data.type, str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate content",
        )

    if data.type == "theory":
        validation = check_theory_content(content, len(materials))
    else:
        validation = check_lab_content(content, data.language)

    return GenerateResponse(
        content=content,
        sources=source_refs(materials),
        validation=validation,
        metadata=GenerateMetadata(
            topic=data.topic,
            type=data.type,
            language=data.language if data.type == "lab" else None,
            generated_at=utcnow(),
        ),
    )
