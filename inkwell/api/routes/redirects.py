"""
Redirects API Routes.

Endpoints for managing post redirects. Every route acts on behalf of the
caller identified by the X-User-Id header and only sees that caller's
redirects.
"""

from __future__ import annotations

from typing import Annotated, NoReturn
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from inkwell.api.deps import get_current_user_id, get_redirect_service
from inkwell.api.schemas import (
    CreateRedirectRequest,
    MessageResponse,
    Pagination,
    PostSummary,
    RedirectListItem,
    RedirectListResponse,
    RedirectResponse,
    RedirectWriteResponse,
    UpdateRedirectRequest,
    ValidationResponse,
)
from inkwell.components.redirects import (
    RedirectConflictError,
    RedirectError,
    RedirectNotFoundError,
    RedirectPermissionError,
    RedirectService,
    RedirectValidationError,
    TransientStoreError,
)
from inkwell.domain.entities import RedirectType

router = APIRouter()


# --- Helper Functions ---


def _raise_http(exc: RedirectError) -> NoReturn:
    """Map a component error onto an HTTP error."""
    if isinstance(exc, RedirectValidationError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"errors": exc.errors, "warnings": exc.warnings},
        ) from exc
    if isinstance(exc, RedirectNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, RedirectPermissionError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    if isinstance(exc, RedirectConflictError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    if isinstance(exc, TransientStoreError):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Redirect store unavailable, try again later",
        ) from exc
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


# --- Routes ---


@router.post(
    "",
    response_model=RedirectWriteResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Validation failed"},
        403: {"description": "Source post belongs to another user"},
        404: {"description": "Source post not found"},
        409: {"description": "Source post already has a redirect"},
    },
)
def create_redirect(
    request: CreateRedirectRequest,
    user_id: UUID = Depends(get_current_user_id),
    service: RedirectService = Depends(get_redirect_service),
) -> RedirectWriteResponse:
    """Create a redirect for one of the caller's posts."""
    try:
        redirect, warnings = service.create(
            request.source_post_id,
            request.redirect_type,
            created_by=user_id,
            target_post_id=request.target_post_id,
            target_url=request.target_url,
            http_status_code=request.http_status_code,
            notes=request.notes,
        )
    except RedirectError as exc:
        _raise_http(exc)

    return RedirectWriteResponse(redirect=RedirectResponse.from_entity(redirect), warnings=warnings)


@router.get("", response_model=RedirectListResponse)
def list_redirects(
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    redirect_type: Annotated[RedirectType | None, Query(alias="type")] = None,
    search: str | None = None,
    user_id: UUID = Depends(get_current_user_id),
    service: RedirectService = Depends(get_redirect_service),
) -> RedirectListResponse:
    """List the caller's redirects, newest first, with source and target post summaries."""
    try:
        result = service.list_for_user(
            user_id, redirect_type=redirect_type, search=search, page=page, limit=limit
        )
    except RedirectError as exc:
        _raise_http(exc)

    return RedirectListResponse(
        redirects=[
            RedirectListItem(
                **RedirectResponse.from_entity(r).model_dump(),
                source_post=PostSummary.from_projection(result.post(r.source_post_id)),
                target_post=PostSummary.from_projection(result.post(r.target_post_id)),
            )
            for r in result.redirects
        ],
        pagination=Pagination(
            page=result.page,
            limit=result.limit,
            total=result.total,
            total_pages=result.total_pages,
            has_next_page=result.has_next_page,
            has_prev_page=result.has_prev_page,
        ),
    )


# Declared before /{redirect_id} so "validate" isn't parsed as an id
@router.get(
    "/validate",
    response_model=ValidationResponse,
    dependencies=[Depends(get_current_user_id)],
)
def validate_redirect(
    source_post_id: Annotated[UUID, Query(alias="sourcePostId")],
    redirect_type: Annotated[RedirectType, Query(alias="redirectType")],
    target_post_id: Annotated[UUID | None, Query(alias="targetPostId")] = None,
    target_url: Annotated[str | None, Query(alias="targetUrl")] = None,
    existing_redirect_id: Annotated[UUID | None, Query(alias="existingRedirectId")] = None,
    service: RedirectService = Depends(get_redirect_service),
) -> ValidationResponse:
    """Dry-run validation of a proposed redirect."""
    try:
        result = service.validate(
            source_post_id, redirect_type, target_post_id, target_url, existing_redirect_id
        )
    except RedirectError as exc:
        _raise_http(exc)

    return ValidationResponse(valid=result.valid, errors=result.errors, warnings=result.warnings)


@router.get(
    "/{redirect_id}",
    response_model=RedirectResponse,
    responses={404: {"description": "Redirect not found"}},
)
def get_redirect(
    redirect_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    service: RedirectService = Depends(get_redirect_service),
) -> RedirectResponse:
    """Get a redirect by ID."""
    try:
        redirect = service.get(redirect_id, user_id=user_id)
    except RedirectError as exc:
        _raise_http(exc)
    return RedirectResponse.from_entity(redirect)


@router.put(
    "/{redirect_id}",
    response_model=RedirectWriteResponse,
    responses={
        400: {"description": "Validation failed"},
        404: {"description": "Redirect not found"},
    },
)
def update_redirect(
    redirect_id: UUID,
    request: UpdateRedirectRequest,
    user_id: UUID = Depends(get_current_user_id),
    service: RedirectService = Depends(get_redirect_service),
) -> RedirectWriteResponse:
    """
    Update a redirect.

    Validates same constraints as create.
    """
    updates = request.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No updates provided")

    try:
        redirect, warnings = service.update(redirect_id, updates, user_id=user_id)
    except RedirectError as exc:
        _raise_http(exc)

    return RedirectWriteResponse(redirect=RedirectResponse.from_entity(redirect), warnings=warnings)


@router.delete(
    "/{redirect_id}",
    response_model=MessageResponse,
    responses={404: {"description": "Redirect not found"}},
)
def delete_redirect(
    redirect_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    service: RedirectService = Depends(get_redirect_service),
) -> MessageResponse:
    """Delete a redirect."""
    try:
        service.delete(redirect_id, user_id=user_id)
    except RedirectError as exc:
        _raise_http(exc)
    return MessageResponse(message="Redirect deleted successfully")
