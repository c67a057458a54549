"""Post Pydantic schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.schemas.user import UserSummary


def _not_blank(value: str | None) -> str | None:
    if value is not None and not value.strip():
        raise ValueError("must not be blank")
    return value


class PostCreate(BaseModel):
    """Schema for creating a post."""

    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    is_published: bool = False

    _check_blank = field_validator("title", "content")(_not_blank)


class PostUpdate(BaseModel):
    """Schema for partial post update."""

    title: str | None = Field(None, min_length=1, max_length=200)
    content: str | None = Field(None, min_length=1)
    is_published: bool | None = None

    _check_blank = field_validator("title", "content")(_not_blank)


class PostRead(BaseModel):
    """Post schema for API responses."""

    id: uuid.UUID
    title: str
    content: str
    author_id: uuid.UUID
    is_published: bool
    created_at: datetime
    updated_at: datetime
    author: UserSummary | None = None

    model_config = {"from_attributes": True}
