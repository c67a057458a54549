"""API v1 router configuration."""

from fastapi import APIRouter

from app.api.v1 import auth, posts, users

api_router = APIRouter()

# Include all v1 routers
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(users.me_router, tags=["users"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(posts.router, prefix="/posts", tags=["posts"])
