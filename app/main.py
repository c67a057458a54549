"""FastAPI Application Entry Point."""

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api.v1 import api_router
from app.core.config import settings
from app.core.database import init_db
from app.core.errors import register_exception_handlers
from app.core.logging import configure_logging
from app.core.rate_limit import limiter
from app.middleware import RequestLoggingMiddleware

configure_logging()
logger = structlog.get_logger(__name__)

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="Postboard - users, sessions and posts",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

# Configure rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

register_exception_handlers(app)

# Configure CORS with strict security rules
# - allow_origins: Validated whitelist from settings (no wildcards)
# - allow_methods / allow_headers: Explicit lists
# - max_age: Cache preflight responses
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "Accept",
        "Origin",
        "X-Requested-With",
        "X-Request-ID",
    ],
    expose_headers=["X-Request-ID"],
    max_age=settings.CORS_MAX_AGE,
)

# Outermost: every response, including CORS rejections, gets a request id
app.add_middleware(RequestLoggingMiddleware)


@app.on_event("startup")
async def startup_event() -> None:
    """Create tables when configured to and announce the environment."""
    if settings.DB_AUTO_CREATE:
        await init_db()
        logger.info("app.database_initialized")
    logger.info(
        "app.startup",
        app_name=settings.APP_NAME,
        environment=settings.APP_ENV,
        rate_limit_enabled=settings.RATE_LIMIT_ENABLED,
    )


@app.get(f"{settings.API_V1_PREFIX}/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "environment": settings.APP_ENV,
    }


@app.get("/", tags=["root"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.APP_NAME} API",
        "docs": "/api/docs",
        "health": f"{settings.API_V1_PREFIX}/health",
    }


app.include_router(api_router, prefix=settings.API_V1_PREFIX)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
