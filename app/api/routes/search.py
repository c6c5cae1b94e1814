"""Keyword search over course materials, with an optional model-written answer."""

import logging

from fastapi import APIRouter, HTTPException, status

from app.api.deps import ChatServiceDep, CurrentIdentity, DbSession
from app.db.models import Material
from app.schemas.search import (
    RagResponse,
    SearchHit,
    SearchMaterial,
    SearchRequest,
    SearchResponse,
    SourceRef,
)
from app.services.chat_service import NO_CONTEXT_FOUND
from app.services.llm_service import LLMServiceError, SafetyBlockedError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["search"])

MAX_SEARCH_RESULTS = 10
MAX_RAG_SOURCES = 5
EXCERPT_CHARS = 500


def _hit(material: Material) -> SearchHit:
    return SearchHit(
        id=material.id,
        content=(material.content or "")[:EXCERPT_CHARS],
        material=SearchMaterial.model_validate(material),
    )


def source_refs(materials: list[Material]) -> list[SourceRef]:
    return [SourceRef.model_validate(m) for m in materials]


@router.post("", response_model=RagResponse | SearchResponse)
async def search_materials(
    identity: CurrentIdentity,
    data: SearchRequest,
    db: DbSession,
    chat: ChatServiceDep,
) -> RagResponse | SearchResponse:
    """
    `search` mode lists matching materials; `rag` mode answers from them.

    A RAG query with no matching material text gets a fixed reply and no model call.
    """
    if not data.query:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Query is required")

    if data.mode == "search":
        materials = await chat.find_materials(
            db, data.query, limit=MAX_SEARCH_RESULTS, category=data.category
        )
        return SearchResponse(results=[_hit(m) for m in materials])

    materials = await chat.find_materials(
        db, data.query, limit=MAX_RAG_SOURCES, category=data.category
    )
    context = chat.build_material_context(materials)
    if not context:
        return RagResponse(response=NO_CONTEXT_FOUND, sources=[])

    try:
        response = await chat.rag_answer(data.query, context)
    except SafetyBlockedError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Response blocked by safety filters.",
        )
    except LLMServiceError as e:
        logger.error("RAG answer failed for %s: %s", identity.user_id, str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Search failed",
        )

    return RagResponse(
        response=response,
        sources=source_refs([m for m in materials if m.content]),
    )
