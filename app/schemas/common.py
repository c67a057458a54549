"""Response envelopes shared by all endpoints."""

import math
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope: ``{"success": true, "message"?, "data"}``."""

    success: bool = True
    message: str | None = None
    data: T | None = None


class PaginationMeta(BaseModel):
    page: int
    per_page: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, per_page: int, total: int) -> "PaginationMeta":
        return cls(
            page=page,
            per_page=per_page,
            total=total,
            total_pages=math.ceil(total / per_page) if per_page else 0,
        )


class PaginatedResponse(BaseModel, Generic[T]):
    """Paginated success envelope with a ``meta`` block."""

    success: bool = True
    data: list[T]
    meta: PaginationMeta


class ErrorBody(BaseModel):
    code: str
    message: str
    details: Any = None


class ErrorResponse(BaseModel):
    """Error envelope, documented for OpenAPI."""

    success: bool = False
    error: ErrorBody
