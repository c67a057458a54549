"""Post endpoints."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_current_claims, get_post_service
from app.core.tokens import TokenClaims
from app.schemas.common import ApiResponse, PaginatedResponse, PaginationMeta
from app.schemas.post import PostCreate, PostRead, PostUpdate
from app.services.post_service import PostService

router = APIRouter()


@router.post("", response_model=ApiResponse[PostRead], status_code=status.HTTP_201_CREATED)
async def create_post(
    post_in: PostCreate,
    claims: Annotated[TokenClaims, Depends(get_current_claims)],
    post_service: Annotated[PostService, Depends(get_post_service)],
) -> ApiResponse[PostRead]:
    """Create a post authored by the current user."""
    post = await post_service.create_post(
        claims.user_id,
        post_in.title,
        post_in.content,
        post_in.is_published,
    )
    return ApiResponse(message="Post created successfully", data=PostRead.model_validate(post))


@router.get("", response_model=PaginatedResponse[PostRead])
async def list_posts(
    claims: Annotated[TokenClaims, Depends(get_current_claims)],
    post_service: Annotated[PostService, Depends(get_post_service)],
    page: Annotated[int, Query(description="Page number, starting at 1")] = 1,
    per_page: Annotated[int, Query(description="Posts per page, 1-100")] = 10,
    author_id: Annotated[uuid.UUID | None, Query()] = None,
    published_only: Annotated[bool, Query()] = False,
) -> PaginatedResponse[PostRead]:
    """
    List posts, newest first.

    Out-of-range page or per_page values fall back to 1 and 10.
    """
    posts, total, page, per_page = await post_service.list_posts(
        page=page,
        per_page=per_page,
        author_id=author_id,
        published_only=published_only,
    )
    return PaginatedResponse(
        data=[PostRead.model_validate(post) for post in posts],
        meta=PaginationMeta.build(page, per_page, total),
    )


@router.get("/{post_id}", response_model=ApiResponse[PostRead])
async def get_post(
    post_id: uuid.UUID,
    claims: Annotated[TokenClaims, Depends(get_current_claims)],
    post_service: Annotated[PostService, Depends(get_post_service)],
) -> ApiResponse[PostRead]:
    post = await post_service.get_post(post_id)
    return ApiResponse(data=PostRead.model_validate(post))


@router.put("/{post_id}", response_model=ApiResponse[PostRead])
async def update_post(
    post_id: uuid.UUID,
    post_in: PostUpdate,
    claims: Annotated[TokenClaims, Depends(get_current_claims)],
    post_service: Annotated[PostService, Depends(get_post_service)],
) -> ApiResponse[PostRead]:
    """
    Update a post.

    Raises:
        NotFoundError: Unknown post
        ForbiddenError: Current user is not the author
    """
    post = await post_service.update_post(
        post_id,
        claims.user_id,
        title=post_in.title,
        content=post_in.content,
        is_published=post_in.is_published,
    )
    return ApiResponse(message="Post updated successfully", data=PostRead.model_validate(post))


@router.delete("/{post_id}", response_model=ApiResponse[None])
async def delete_post(
    post_id: uuid.UUID,
    claims: Annotated[TokenClaims, Depends(get_current_claims)],
    post_service: Annotated[PostService, Depends(get_post_service)],
) -> ApiResponse[None]:
    await post_service.delete_post(post_id, claims.user_id)
    return ApiResponse(message="Post deleted successfully")


@router.post("/{post_id}/publish", response_model=ApiResponse[PostRead])
async def publish_post(
    post_id: uuid.UUID,
    claims: Annotated[TokenClaims, Depends(get_current_claims)],
    post_service: Annotated[PostService, Depends(get_post_service)],
) -> ApiResponse[PostRead]:
    post = await post_service.publish_post(post_id, claims.user_id)
    return ApiResponse(message="Post published successfully", data=PostRead.model_validate(post))


@router.post("/{post_id}/unpublish", response_model=ApiResponse[PostRead])
async def unpublish_post(
    post_id: uuid.UUID,
    claims: Annotated[TokenClaims, Depends(get_current_claims)],
    post_service: Annotated[PostService, Depends(get_post_service)],
) -> ApiResponse[PostRead]:
    post = await post_service.unpublish_post(post_id, claims.user_id)
    return ApiResponse(message="Post unpublished successfully", data=PostRead.model_validate(post))
