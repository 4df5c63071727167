"""
Redirects component - post-to-post and post-to-URL redirects.
"""

from ._impl import (
    DEFAULT_CONFIG,
    DeletionGuard,
    NoOpCacheInvalidator,
    RedirectConfig,
    RedirectResolver,
    RedirectService,
    RedirectValidator,
    check_target_url,
    create_redirect_service,
    detect_cycle,
)
from .cache import CachingRedirectResolver
from .component import (
    run,
    run_audit,
    run_can_delete,
    run_create,
    run_delete,
    run_get,
    run_list,
    run_resolve,
    run_update,
    run_validate,
)
from .models import (
    AuditOutput,
    AuditRedirectsInput,
    CanDeletePostInput,
    ChainCheck,
    CreateRedirectInput,
    DeleteRedirectInput,
    GetRedirectInput,
    ListRedirectsInput,
    RedirectConflictError,
    RedirectDecision,
    RedirectError,
    RedirectIssue,
    RedirectListOutput,
    RedirectNotFoundError,
    RedirectOperationOutput,
    RedirectPage,
    RedirectPermissionError,
    RedirectTarget,
    RedirectValidationError,
    ResolveOutput,
    ResolveRedirectInput,
    TransientStoreError,
    UpdateRedirectInput,
    ValidateRedirectInput,
    ValidationResult,
)
from .ports import CacheInvalidatorPort, PostLookupPort, RedirectStorePort, TimePort

__all__ = [
    # Entry points
    "run",
    "run_audit",
    "run_can_delete",
    "run_create",
    "run_delete",
    "run_get",
    "run_list",
    "run_resolve",
    "run_update",
    "run_validate",
    # Input models
    "AuditRedirectsInput",
    "CanDeletePostInput",
    "CreateRedirectInput",
    "DeleteRedirectInput",
    "GetRedirectInput",
    "ListRedirectsInput",
    "ResolveRedirectInput",
    "UpdateRedirectInput",
    "ValidateRedirectInput",
    # Output models
    "AuditOutput",
    "ChainCheck",
    "RedirectDecision",
    "RedirectIssue",
    "RedirectListOutput",
    "RedirectOperationOutput",
    "RedirectPage",
    "RedirectTarget",
    "ResolveOutput",
    "ValidationResult",
    # Errors
    "RedirectConflictError",
    "RedirectError",
    "RedirectNotFoundError",
    "RedirectPermissionError",
    "RedirectValidationError",
    "TransientStoreError",
    # Ports
    "CacheInvalidatorPort",
    "PostLookupPort",
    "RedirectStorePort",
    "TimePort",
    # Services
    "DEFAULT_CONFIG",
    "CachingRedirectResolver",
    "DeletionGuard",
    "NoOpCacheInvalidator",
    "RedirectConfig",
    "RedirectResolver",
    "RedirectService",
    "RedirectValidator",
    "check_target_url",
    "create_redirect_service",
    "detect_cycle",
]
