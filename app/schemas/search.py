"""Material search and retrieval-augmented answer schemas."""

from typing import Literal
from uuid import UUID

from pydantic import Field

from app.schemas.base import BaseSchema


class SearchRequest(BaseSchema):
    query: str | None = None
    category: str | None = None
    mode: Literal["search", "rag"] = "search"


class SearchMaterial(BaseSchema):
    id: UUID
    title: str
    category: str
    topic: str
    type: str
    week: int
    file_url: str


class SearchHit(BaseSchema):
    """One matching material with a leading excerpt of its text."""

    id: UUID
    content: str
    material: SearchMaterial


class SearchResponse(BaseSchema):
    success: bool = True
    results: list[SearchHit]


class SourceRef(BaseSchema):
    id: UUID
    title: str
    topic: str
    week: int


class RagResponse(BaseSchema):
    success: bool = True
    response: str
    sources: list[SourceRef] = Field(default_factory=list)
