"""
Redirects component - post redirect management and resolution.

Entry points take an input dataclass plus ports and return an output
dataclass; errors come back in the output instead of being raised.

Rules enforced on every write:
- at most one redirect per source post
- no circular post-to-post redirects
- status code must be 301, 302, 307 or 308
- URL targets must be absolute http(s) URLs
- a post cannot redirect to itself
"""

from __future__ import annotations

from ._impl import (
    DeletionGuard,
    RedirectConfig,
    RedirectResolver,
    RedirectService,
)
from .models import (
    AuditOutput,
    AuditRedirectsInput,
    CanDeletePostInput,
    CreateRedirectInput,
    DeleteRedirectInput,
    GetRedirectInput,
    ListRedirectsInput,
    RedirectConflictError,
    RedirectError,
    RedirectListOutput,
    RedirectNotFoundError,
    RedirectOperationOutput,
    RedirectPermissionError,
    RedirectValidationError,
    ResolveOutput,
    ResolveRedirectInput,
    TransientStoreError,
    UpdateRedirectInput,
    ValidateRedirectInput,
    ValidationResult,
)
from .ports import CacheInvalidatorPort, PostLookupPort, RedirectStorePort, TimePort


def _error_code(exc: RedirectError) -> str:
    if isinstance(exc, RedirectValidationError):
        return "validation"
    if isinstance(exc, RedirectNotFoundError):
        return "not_found"
    if isinstance(exc, RedirectPermissionError):
        return "forbidden"
    if isinstance(exc, RedirectConflictError):
        return "conflict"
    if isinstance(exc, TransientStoreError):
        return "store_unavailable"
    return "error"


def _error_messages(exc: RedirectError) -> list[str]:
    if isinstance(exc, RedirectValidationError):
        return exc.errors
    return [str(exc)]


def _failed_operation(exc: RedirectError) -> RedirectOperationOutput:
    warnings = exc.warnings if isinstance(exc, RedirectValidationError) else []
    return RedirectOperationOutput(
        redirect=None,
        errors=_error_messages(exc),
        warnings=warnings,
        error_code=_error_code(exc),
        success=False,
    )


def _create_service(
    store: RedirectStorePort,
    posts: PostLookupPort,
    config: RedirectConfig | None,
    cache: CacheInvalidatorPort | None = None,
    time: TimePort | None = None,
) -> RedirectService:
    return RedirectService(store=store, posts=posts, time_port=time, cache=cache, config=config)


# --- Component Entry Points ---


def run_create(
    inp: CreateRedirectInput,
    *,
    store: RedirectStorePort,
    posts: PostLookupPort,
    config: RedirectConfig | None = None,
    cache: CacheInvalidatorPort | None = None,
    time: TimePort | None = None,
) -> RedirectOperationOutput:
    """
    Create a new redirect.

    Args:
        inp: Source post, type, target and options.
        store: Redirect store port.
        posts: Post lookup port.
        config: Optional redirect configuration.
        cache: Optional cache invalidator.
        time: Optional time port.

    Returns:
        RedirectOperationOutput with the created redirect and warnings, or errors.
    """
    service = _create_service(store, posts, config, cache, time)
    try:
        redirect, warnings = service.create(
            inp.source_post_id,
            inp.redirect_type,
            created_by=inp.created_by,
            target_post_id=inp.target_post_id,
            target_url=inp.target_url,
            http_status_code=inp.http_status_code,
            notes=inp.notes,
        )
    except RedirectError as exc:
        return _failed_operation(exc)

    return RedirectOperationOutput(redirect=redirect, warnings=warnings)


def run_update(
    inp: UpdateRedirectInput,
    *,
    store: RedirectStorePort,
    posts: PostLookupPort,
    config: RedirectConfig | None = None,
    cache: CacheInvalidatorPort | None = None,
    time: TimePort | None = None,
) -> RedirectOperationOutput:
    """Update an existing redirect owned by inp.user_id."""
    service = _create_service(store, posts, config, cache, time)
    try:
        redirect, warnings = service.update(inp.redirect_id, inp.updates, user_id=inp.user_id)
    except RedirectError as exc:
        return _failed_operation(exc)

    return RedirectOperationOutput(redirect=redirect, warnings=warnings)


def run_delete(
    inp: DeleteRedirectInput,
    *,
    store: RedirectStorePort,
    posts: PostLookupPort,
    config: RedirectConfig | None = None,
    cache: CacheInvalidatorPort | None = None,
) -> RedirectOperationOutput:
    """Delete a redirect owned by inp.user_id."""
    service = _create_service(store, posts, config, cache)
    try:
        service.delete(inp.redirect_id, user_id=inp.user_id)
    except RedirectError as exc:
        return _failed_operation(exc)

    return RedirectOperationOutput(redirect=None)


def run_get(
    inp: GetRedirectInput,
    *,
    store: RedirectStorePort,
    posts: PostLookupPort,
    config: RedirectConfig | None = None,
) -> RedirectOperationOutput:
    """Get a redirect owned by inp.user_id."""
    service = _create_service(store, posts, config)
    try:
        redirect = service.get(inp.redirect_id, user_id=inp.user_id)
    except RedirectError as exc:
        return _failed_operation(exc)

    return RedirectOperationOutput(redirect=redirect)


def run_list(
    inp: ListRedirectsInput,
    *,
    store: RedirectStorePort,
    posts: PostLookupPort,
    config: RedirectConfig | None = None,
) -> RedirectListOutput:
    """List a page of the caller's redirects."""
    service = _create_service(store, posts, config)
    try:
        page = service.list_for_user(
            inp.user_id,
            redirect_type=inp.redirect_type,
            search=inp.search,
            page=inp.page,
            limit=inp.limit,
        )
    except RedirectError as exc:
        return RedirectListOutput(
            page=None,
            errors=_error_messages(exc),
            error_code=_error_code(exc),
            success=False,
        )

    return RedirectListOutput(page=page)


def run_resolve(
    inp: ResolveRedirectInput,
    *,
    store: RedirectStorePort,
    posts: PostLookupPort,
    config: RedirectConfig | None = None,
) -> ResolveOutput:
    """
    Resolve the redirect of a post (one hop).

    Always succeeds: a failing store reads as "no redirect".
    """
    resolver = RedirectResolver(store, posts, config)
    return ResolveOutput(decision=resolver.resolve(inp.post_id))


def run_validate(
    inp: ValidateRedirectInput,
    *,
    store: RedirectStorePort,
    posts: PostLookupPort,
    config: RedirectConfig | None = None,
) -> ValidationResult:
    """Validate a proposed redirect without writing it."""
    service = _create_service(store, posts, config)
    try:
        return service.validate(
            inp.source_post_id,
            inp.redirect_type,
            inp.target_post_id,
            inp.target_url,
            inp.exclude_redirect_id,
        )
    except TransientStoreError as exc:
        return ValidationResult(False, [f"Could not validate redirect: {exc}"], [])


def run_can_delete(
    inp: CanDeletePostInput,
    *,
    store: RedirectStorePort,
) -> ValidationResult:
    """Check whether a post can be deleted (no inbound redirects)."""
    return DeletionGuard(store).can_delete_post(inp.post_id)


def run_audit(
    inp: AuditRedirectsInput,
    *,
    store: RedirectStorePort,
    posts: PostLookupPort,
    config: RedirectConfig | None = None,
) -> AuditOutput:
    """Check every stored redirect for broken targets, cycles and bad URLs."""
    service = _create_service(store, posts, config)
    try:
        issues, total = service.audit()
    except TransientStoreError as exc:
        return AuditOutput(issues=(), total_checked=0, errors=[str(exc)], success=False)

    return AuditOutput(issues=tuple(issues), total_checked=total)


def run(
    inp: (
        CreateRedirectInput
        | UpdateRedirectInput
        | DeleteRedirectInput
        | GetRedirectInput
        | ListRedirectsInput
        | ResolveRedirectInput
        | ValidateRedirectInput
        | CanDeletePostInput
        | AuditRedirectsInput
    ),
    *,
    store: RedirectStorePort,
    posts: PostLookupPort,
    config: RedirectConfig | None = None,
    cache: CacheInvalidatorPort | None = None,
) -> RedirectOperationOutput | RedirectListOutput | ResolveOutput | ValidationResult | AuditOutput:
    """
    Main entry point for the redirects component.

    Dispatches to appropriate handler based on input type.
    """
    if isinstance(inp, CreateRedirectInput):
        return run_create(inp, store=store, posts=posts, config=config, cache=cache)
    elif isinstance(inp, UpdateRedirectInput):
        return run_update(inp, store=store, posts=posts, config=config, cache=cache)
    elif isinstance(inp, DeleteRedirectInput):
        return run_delete(inp, store=store, posts=posts, config=config, cache=cache)
    elif isinstance(inp, GetRedirectInput):
        return run_get(inp, store=store, posts=posts, config=config)
    elif isinstance(inp, ListRedirectsInput):
        return run_list(inp, store=store, posts=posts, config=config)
    elif isinstance(inp, ResolveRedirectInput):
        return run_resolve(inp, store=store, posts=posts, config=config)
    elif isinstance(inp, ValidateRedirectInput):
        return run_validate(inp, store=store, posts=posts, config=config)
    elif isinstance(inp, CanDeletePostInput):
        return run_can_delete(inp, store=store)
    elif isinstance(inp, AuditRedirectsInput):
        return run_audit(inp, store=store, posts=posts, config=config)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
