"""SQLAlchemy database models."""

from app.models.user import User
from app.models.post import Post
from app.models.refresh_token import RefreshToken

__all__ = [
    "User",
    "Post",
    "RefreshToken",
]
