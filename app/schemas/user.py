"""User Pydantic schemas for request/response validation."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


# Properties to receive via API on registration. Shape and password policy
# are enforced by the auth service so callers get the policy's message.
class UserCreate(BaseModel):
    """Schema for user registration."""

    username: str = Field(..., max_length=255)
    email: str = Field(..., max_length=255)
    password: str = Field(..., max_length=1024)


class UserLogin(BaseModel):
    """Schema for login credentials."""

    email: str = Field(..., max_length=255)
    password: str = Field(..., max_length=1024)


# Properties to receive via API on profile update
class UserUpdate(BaseModel):
    """Schema for profile update."""

    username: str | None = Field(None, max_length=255)
    email: str | None = Field(None, max_length=255)


# Additional properties to return via API
class UserRead(BaseModel):
    """User schema for API responses. Never carries the password hash."""

    id: uuid.UUID
    username: str
    email: str
    is_active: bool
    is_superuser: bool = False
    last_login: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserSummary(BaseModel):
    """Author information embedded in post responses."""

    id: uuid.UUID
    username: str

    model_config = {"from_attributes": True}


class PasswordStrengthRequest(BaseModel):
    password: str = Field(..., max_length=1024)


class PasswordStrengthResponse(BaseModel):
    score: int = Field(..., ge=0, le=100)
    valid: bool
    reason: str | None = None
    message: str | None = None
