"""Pydantic schemas for API request/response validation."""

from app.schemas.base import DataResponse, MessageResponse
from app.schemas.materials import MaterialCreate, MaterialRead, MaterialSummary, MaterialPage
from app.schemas.ai_materials import (
    AiMaterialGenerate,
    AiMaterialRead,
    MaterialChatRequest,
    MaterialChatResponse,
    UnifiedMaterial,
)
from app.schemas.handwritten_notes import HandwrittenNoteRead, TranscriptionResult
from app.schemas.community import PostCreate, PostRead, PostDetail, ReplyCreate, ReplyRead
from app.schemas.chat import ChatRequest, ChatTurnResult, ChatRead, EvaluateRequest, EvaluateResponse
from app.schemas.videos import VideoGenerateRequest, VideoRead, VideoStatusRead
from app.schemas.search import RagResponse, SearchRequest, SearchResponse
from app.schemas.generate import GenerateRequest, GenerateResponse

__all__ = [
    # Envelopes
    "DataResponse",
    "MessageResponse",
    # Materials
    "MaterialCreate",
    "MaterialRead",
    "MaterialSummary",
    "MaterialPage",
    # AI materials
    "AiMaterialGenerate",
    "AiMaterialRead",
    "MaterialChatRequest",
    "MaterialChatResponse",
    "UnifiedMaterial",
    # Handwritten notes
    "HandwrittenNoteRead",
    "TranscriptionResult",
    # Community
    "PostCreate",
    "PostRead",
    "PostDetail",
    "ReplyCreate",
    "ReplyRead",
    # Chat
    "ChatRequest",
    "ChatTurnResult",
    "ChatRead",
    "EvaluateRequest",
    "EvaluateResponse",
    # Videos
    "VideoGenerateRequest",
    "VideoRead",
    "VideoStatusRead",
    # Search and generation
    "SearchRequest",
    "SearchResponse",
    "RagResponse",
    "GenerateRequest",
    "GenerateResponse",
]
