"""Rate limiting configuration using SlowAPI."""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings


def get_user_identifier(request: Request) -> str:
    """
    Get rate limit identifier from request.

    Priority order:
    1. User ID from the access token (if authenticated)
    2. IP address (for non-authenticated requests)

    Args:
        request: FastAPI request object

    Returns:
        Unique identifier string for rate limiting
    """
    # Set by the auth dependency once the access token has been validated
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return f"user:{user_id}"

    return f"ip:{get_remote_address(request)}"


def get_ip_identifier(request: Request) -> str:
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_user_identifier,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=settings.RATE_LIMIT_ENABLED,
    default_limits=[settings.RATE_LIMIT_API_DEFAULT],
    headers_enabled=True,  # Add X-RateLimit-* headers to responses
)

# Authentication endpoints are keyed by IP: the caller is not authenticated yet
auth_login_limit = limiter.limit(settings.RATE_LIMIT_AUTH_LOGIN, key_func=get_ip_identifier)
auth_register_limit = limiter.limit(settings.RATE_LIMIT_AUTH_REGISTER, key_func=get_ip_identifier)
auth_refresh_limit = limiter.limit(settings.RATE_LIMIT_AUTH_REFRESH, key_func=get_ip_identifier)
