"""
Post read and delete routes.

Reads carry the post's redirect decision; deletes consult the deletion guard.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status

from inkwell.api.deps import get_current_user_id, get_post_service
from inkwell.api.schemas import PostResponse, ValidationResponse
from inkwell.components.posts import (
    PostDeletionBlockedError,
    PostNotFoundError,
    PostPermissionError,
    PostService,
)
from inkwell.components.redirects import TransientStoreError

router = APIRouter()


@router.get(
    "/{post_id}",
    response_model=PostResponse,
    responses={404: {"description": "Post not found"}},
)
def get_post(
    post_id: UUID,
    service: PostService = Depends(get_post_service),
) -> PostResponse:
    """Get a post with its redirect metadata (null when not redirected)."""
    try:
        view = service.get(post_id)
    except PostNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Post not found") from exc
    except TransientStoreError as exc:
        raise HTTPException(status_code=503, detail="Post store unavailable") from exc
    return PostResponse.model_validate(view.to_dict())


@router.get("/{post_id}/redirect")
def get_post_redirect(
    post_id: UUID,
    service: PostService = Depends(get_post_service),
) -> dict[str, Any] | None:
    """
    Resolve a post's redirect.

    Works for deleted posts too, so old links to a removed post still find
    their tombstone redirect.
    """
    decision = service.get_redirect(post_id)
    return decision.to_metadata() if decision else None


@router.get(
    "/{post_id}/deletion-check",
    response_model=ValidationResponse,
    dependencies=[Depends(get_current_user_id)],
)
def check_post_deletion(
    post_id: UUID,
    service: PostService = Depends(get_post_service),
) -> ValidationResponse:
    """Report whether the post can be deleted without breaking redirects."""
    result = service.check_delete(post_id)
    return ValidationResponse(valid=result.valid, errors=result.errors, warnings=result.warnings)


@router.delete(
    "/{post_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={
        403: {"description": "Post belongs to another user"},
        404: {"description": "Post not found"},
        409: {"description": "Redirects still point at this post"},
    },
)
def delete_post(
    post_id: UUID,
    force: bool = False,
    user_id: UUID = Depends(get_current_user_id),
    service: PostService = Depends(get_post_service),
) -> Response:
    """
    Delete one of the caller's posts.

    Blocked while redirects point at it unless force=true.
    """
    try:
        service.delete(post_id, user_id=user_id, force=force)
    except PostNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Post not found") from exc
    except PostPermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except PostDeletionBlockedError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"errors": exc.result.errors, "warnings": exc.result.warnings},
        ) from exc
    except TransientStoreError as exc:
        raise HTTPException(status_code=503, detail="Post store unavailable") from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
