"""Handwritten note upload (OCR) and retrieval."""

import logging
from datetime import date
from uuid import UUID

from fastapi import APIRouter, File, Form, HTTPException, UploadFile, status

from app.api.deps import LLM, CurrentIdentity, DbSession, get_owned_resource_or_404
from app.db.models import HandwrittenNote
from app.schemas.handwritten_notes import HandwrittenNoteRead, TranscriptionResult
from app.services.handwriting import transcribe_note

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/handwritten-notes", tags=["handwritten-notes"])

OCR_FAILURE_MESSAGE = "Failed to process image. Make sure it is a clear image."


@router.post("", response_model=TranscriptionResult)
async def upload_handwritten_note(
    identity: CurrentIdentity,
    db: DbSession,
    llm: LLM,
    file: UploadFile | None = File(None),
    course: str | None = Form(None),
    topic: str | None = Form(None),
) -> TranscriptionResult:
    """
    Transcribe an uploaded photo of notes and store it.

    Nothing is persisted when transcription fails.
    """
    if file is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")

    try:
        image_bytes = await file.read()
        transcript = await transcribe_note(llm, image_bytes, file.content_type or "")

        note = HandwrittenNote(
            title=f"Handwritten Note - {date.today().isoformat()}",
            content=transcript.text,
            raw_content=transcript.raw_text,
            course=course,
            topic=topic,
            uploaded_by=identity.user_id,
        )
        db.add(note)
        await db.commit()
        await db.refresh(note)
    except Exception:
        logger.exception("OCR failed for upload from %s", identity.user_id)
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=OCR_FAILURE_MESSAGE,
        )

    return TranscriptionResult(text=note.content, raw_text=transcript.raw_text, id=note.id)


@router.get("/{note_id}", response_model=HandwrittenNoteRead)
async def get_handwritten_note(
    note_id: UUID,
    identity: CurrentIdentity,
    db: DbSession,
) -> HandwrittenNoteRead:
    note = await get_owned_resource_or_404(
        db, HandwrittenNote, note_id, HandwrittenNote.uploaded_by, identity,
        detail="Note not found",
    )
    return HandwrittenNoteRead.model_validate(note)
