"""Base schema configuration."""

from datetime import datetime
from typing import Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class BaseSchema(BaseModel):
    """Base schema with common configuration.

    Fields are snake_case in Python and camelCase on the wire; request bodies
    accept either spelling.
    """

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode
        str_strip_whitespace=True,
        validate_assignment=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class IDMixin(BaseModel):
    """Mixin for UUID primary key, exposed as `_id`."""

    id: UUID = Field(alias="_id")


class TimestampMixin(BaseModel):
    """Mixin for createdAt/updatedAt timestamps."""

    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")


class DataResponse(BaseModel, Generic[T]):
    """`{ "data": ... }` envelope."""

    data: T


class MessageResponse(BaseModel):
    message: str
