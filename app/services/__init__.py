"""Services for external integrations and AI features."""

from app.services.document_parser import document_parser
from app.services.llm_service import LLMService, LLMServiceError, SafetyBlockedError
from app.services.storage import StorageError, StorageService

__all__ = [
    "document_parser",
    "LLMService",
    "LLMServiceError",
    "SafetyBlockedError",
    "StorageError",
    "StorageService",
]
