"""Study assistant chat routes with persisted history."""

import logging
from uuid import UUID, uuid4

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy import delete, select
from sqlalchemy.orm import selectinload

from app.api.deps import ChatServiceDep, CurrentIdentity, DbSession
from app.db.models import ChatHistory, ChatIntent, ChatMessage, ChatRole, utcnow
from app.schemas.chat import (
    ChatDetailResponse,
    ChatListResponse,
    ChatRead,
    ChatRequest,
    ChatSummary,
    ChatTurnResult,
    EvaluateRequest,
    EvaluateResponse,
    RelevantFile,
)
from app.services.chat_service import NO_MATERIALS_FOUND, detect_intent
from app.services.llm_service import SafetyBlockedError
from app.services.validator import validate_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

TITLE_LENGTH = 50
MAX_CHATS = 50
MAX_SEARCH_RESULTS = 5
MAX_SOURCES = 3


def _chat_title(message: str) -> str:
    if len(message) > TITLE_LENGTH:
        return message[:TITLE_LENGTH] + "..."
    return message


# =============================================================================
# CHAT TURN
# =============================================================================


@router.post("", response_model=ChatTurnResult, response_model_exclude_none=True)
async def send_message(
    identity: CurrentIdentity,
    data: ChatRequest,
    db: DbSession,
    chat_service: ChatServiceDep,
) -> ChatTurnResult:
    """
    Run one assistant turn and append both sides to the caller's chat.

    An unknown or foreign `chatId` starts a new chat.
    """
    if not data.message:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message is required")
    message = data.message

    chat = None
    history: list[ChatMessage] = []
    if data.chat_id:
        result = await db.execute(
            select(ChatHistory).where(
                ChatHistory.id == data.chat_id, ChatHistory.user_id == identity.user_id
            )
        )
        chat = result.scalar_one_or_none()
        if chat is not None:
            result = await db.execute(
                select(ChatMessage)
                .where(ChatMessage.chat_id == chat.id)
                .order_by(ChatMessage.timestamp.asc())
            )
            history = list(result.scalars().all())

    if chat is None:
        chat = ChatHistory(id=uuid4(), user_id=identity.user_id, title=_chat_title(message))
        db.add(chat)

    intent = detect_intent(message)
    logger.info("Chat %s: intent detected: %s", chat.id, intent.value)

    materials = []
    try:
        if intent == ChatIntent.SEARCH:
            materials = await chat_service.find_materials(db, message, limit=MAX_SEARCH_RESULTS)
            if materials:
                titles = ", ".join(m.title for m in materials)
                plural = "s" if len(materials) > 1 else ""
                response = f"Found {len(materials)} relevant material{plural}: {titles}"
            else:
                response = NO_MATERIALS_FOUND
        elif intent == ChatIntent.CHITCHAT:
            response = await chat_service.chitchat(message)
        else:
            materials = await chat_service.find_materials(db, message, limit=MAX_SOURCES)
            response = await chat_service.grounded_answer(message, intent, history, materials)
    except SafetyBlockedError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Response blocked by safety filters.",
        )

    sources = [str(m.id) for m in materials]
    db.add_all(
        [
            ChatMessage(chat_id=chat.id, role=ChatRole.USER.value, content=message, intent=intent.value),
            ChatMessage(
                chat_id=chat.id,
                role=ChatRole.ASSISTANT.value,
                content=response,
                sources=sources,
                intent=intent.value,
            ),
        ]
    )
    chat.updated_at = utcnow()
    await db.commit()

    relevant_files = None
    if materials:
        relevant_files = [
            RelevantFile(
                id=m.id,
                title=m.title,
                course=m.course,
                category=m.category,
                topic=m.topic,
                week=m.week,
                type=m.type,
                file_url=m.file_url,
            )
            for m in materials
        ]

    return ChatTurnResult(
        chat_id=chat.id,
        response=response,
        intent=intent.value,
        relevant_files=relevant_files,
    )


# =============================================================================
# HISTORY
# =============================================================================


@router.get("", response_model=ChatListResponse | ChatDetailResponse)
async def get_chats(
    identity: CurrentIdentity,
    db: DbSession,
    chat_id: UUID | None = Query(None, alias="chatId"),
) -> ChatListResponse | ChatDetailResponse:
    """One chat with its messages when `chatId` is given, otherwise the caller's recent chats."""
    if chat_id:
        result = await db.execute(
            select(ChatHistory)
            .options(selectinload(ChatHistory.messages))
            .where(ChatHistory.id == chat_id, ChatHistory.user_id == identity.user_id)
        )
        chat = result.scalar_one_or_none()
        if chat is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chat not found")
        return ChatDetailResponse(chat=ChatRead.model_validate(chat))

    result = await db.execute(
        select(ChatHistory)
        .where(ChatHistory.user_id == identity.user_id)
        .order_by(ChatHistory.updated_at.desc())
        .limit(MAX_CHATS)
    )
    return ChatListResponse(chats=[ChatSummary.model_validate(c) for c in result.scalars()])


@router.delete("")
async def delete_chat(
    identity: CurrentIdentity,
    db: DbSession,
    chat_id: UUID | None = Query(None, alias="chatId"),
) -> dict[str, bool]:
    if chat_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Chat ID required")

    owned = await db.execute(
        select(ChatHistory.id).where(ChatHistory.id == chat_id, ChatHistory.user_id == identity.user_id)
    )
    if owned.scalar_one_or_none() is not None:
        await db.execute(delete(ChatMessage).where(ChatMessage.chat_id == chat_id))
        await db.execute(delete(ChatHistory).where(ChatHistory.id == chat_id))
        await db.commit()
        logger.info("Chat %s deleted by %s", chat_id, identity.user_id)

    return {"success": True}


# =============================================================================
# EVALUATION
# =============================================================================


@router.post("/evaluate", response_model=EvaluateResponse)
async def evaluate_response(
    identity: CurrentIdentity,
    data: EvaluateRequest,
    db: DbSession,
    chat_service: ChatServiceDep,
) -> EvaluateResponse:
    """Score an assistant answer on demand. Nothing is stored."""
    if not data.user_message or not data.assistant_content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="userMessage and assistantContent are required",
        )

    try:
        validation = await validate_response(
            chat_service, db, data.assistant_content, data.user_message
        )
    except Exception as e:
        logger.exception("Evaluation failed for %s", identity.user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e) or "Evaluation failed",
        )

    return EvaluateResponse(validation=validation)
