"""Course material schemas."""

from pydantic import BaseModel, Field

from app.db.models import MaterialCategory, MaterialType
from app.schemas.base import BaseSchema, IDMixin, TimestampMixin


class MaterialCreate(BaseSchema):
    """Schema for creating a text-only material."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    category: MaterialCategory = MaterialCategory.THEORY
    type: MaterialType = MaterialType.NOTES
    course: str | None = Field(None, max_length=255)
    topic: str = Field(default="General", min_length=1, max_length=255)
    week: int = Field(default=1, ge=1, le=20)
    tags: list[str] = Field(default_factory=list)
    content: str = ""


class MaterialSummary(IDMixin, TimestampMixin, BaseSchema):
    """Material as listed; large text fields are omitted."""

    title: str
    description: str
    category: str
    type: str
    course: str | None
    topic: str
    week: int
    tags: list[str]
    file_url: str
    mime_type: str
    uploaded_by: str


class MaterialRead(MaterialSummary):
    """Full material including extracted content."""

    content: str


class MaterialReference(IDMixin, BaseSchema):
    """Reduced projection embedded in other payloads."""

    title: str
    topic: str
    week: int
    category: str
    course: str | None
    file_url: str


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class MaterialPage(BaseModel):
    data: list[MaterialSummary]
    pagination: Pagination
