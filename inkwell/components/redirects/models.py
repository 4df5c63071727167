"""
Redirects component models: results, decisions, inputs, outputs and errors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from inkwell.domain.entities import PostProjection, PostRedirect, RedirectType

# --- Errors ---


class RedirectError(Exception):
    """Base class for redirect errors."""


class RedirectValidationError(RedirectError):
    """Raised when a proposed redirect breaks a user-fixable rule."""

    def __init__(self, errors: list[str], warnings: list[str] | None = None) -> None:
        self.errors = list(errors)
        self.warnings = list(warnings or [])
        super().__init__(", ".join(self.errors))


class RedirectNotFoundError(RedirectError):
    """Raised when a redirect (or the source post of a new one) doesn't exist."""


class RedirectPermissionError(RedirectError):
    """Raised when the caller doesn't own the post being redirected."""


class RedirectConflictError(RedirectError):
    """Raised when the store rejects a second redirect for the same source post."""

    def __init__(self, message: str = "A redirect already exists for this source post") -> None:
        super().__init__(message)


class TransientStoreError(RedirectError):
    """Raised when the backing store fails for a reason not covered above."""


# --- Validation ---


@dataclass
class ValidationResult:
    """Outcome of a validation or guard check. Warnings never affect validity."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors), "warnings": list(self.warnings)}


@dataclass(frozen=True)
class ChainCheck:
    """Result of walking a chain of post redirects."""

    has_cycle: bool
    depth: int
    chain: tuple[UUID, ...]
    # Node that closed the cycle (the source itself or a repeated node)
    closed_by: UUID | None = None

    def describe(self) -> str:
        nodes = list(self.chain)
        if self.closed_by is not None:
            nodes.append(self.closed_by)
        return " → ".join(str(node) for node in nodes)


# --- Resolution ---


@dataclass(frozen=True)
class RedirectTarget:
    """Where a redirect points. Only the fields relevant to the kind are set."""

    post_id: UUID | None = None
    slug: str | None = None
    title: str | None = None
    url: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.post_id is not None:
            data["postId"] = str(self.post_id)
        if self.slug is not None:
            data["slug"] = self.slug
        if self.title is not None:
            data["title"] = self.title
        if self.url is not None:
            data["url"] = self.url
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class RedirectDecision:
    """Externally visible redirect decision for one source post."""

    kind: RedirectType
    http_status: int
    target: RedirectTarget
    notes: str | None = None
    # One-hop peek: does the target post carry its own redirect?
    target_has_redirect: bool = False

    @property
    def is_broken(self) -> bool:
        return self.target.error is not None

    def to_metadata(self) -> dict[str, Any]:
        """Render the `redirect` field attached to post responses."""
        data: dict[str, Any] = {
            "type": self.kind,
            "httpStatus": self.http_status,
            "target": self.target.to_dict(),
        }
        if self.notes is not None:
            data["notes"] = self.notes
        return data


# --- Management ---


@dataclass(frozen=True)
class RedirectPage:
    """One page of an owner's redirects, with the posts it refers to."""

    redirects: tuple[PostRedirect, ...]
    page: int
    limit: int
    total: int
    # Source and target posts by id; deleted posts are absent
    posts: dict[UUID, PostProjection] = field(default_factory=dict)

    def post(self, post_id: UUID | None) -> PostProjection | None:
        if post_id is None:
            return None
        return self.posts.get(post_id)

    @property
    def total_pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0

    @property
    def has_next_page(self) -> bool:
        return self.total > self.page * self.limit

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1


@dataclass(frozen=True)
class RedirectIssue:
    """Problem found by the redirect audit."""

    redirect_id: UUID
    source_post_id: UUID
    code: str
    message: str


# --- Input Models ---


@dataclass(frozen=True)
class CreateRedirectInput:
    """Input for creating a new redirect."""

    source_post_id: UUID
    redirect_type: RedirectType
    created_by: UUID
    target_post_id: UUID | None = None
    target_url: str | None = None
    http_status_code: int | None = None
    notes: str | None = None


@dataclass(frozen=True)
class UpdateRedirectInput:
    """Input for updating an existing redirect."""

    redirect_id: UUID
    user_id: UUID
    updates: dict[str, Any]


@dataclass(frozen=True)
class DeleteRedirectInput:
    """Input for deleting a redirect."""

    redirect_id: UUID
    user_id: UUID


@dataclass(frozen=True)
class GetRedirectInput:
    """Input for getting a redirect."""

    redirect_id: UUID
    user_id: UUID


@dataclass(frozen=True)
class ListRedirectsInput:
    """Input for listing the caller's redirects."""

    user_id: UUID
    redirect_type: RedirectType | None = None
    search: str | None = None
    page: int = 1
    limit: int = 50


@dataclass(frozen=True)
class ResolveRedirectInput:
    """Input for resolving a post's redirect."""

    post_id: UUID


@dataclass(frozen=True)
class ValidateRedirectInput:
    """Input for a dry-run validation."""

    source_post_id: UUID
    redirect_type: RedirectType
    target_post_id: UUID | None = None
    target_url: str | None = None
    exclude_redirect_id: UUID | None = None


@dataclass(frozen=True)
class CanDeletePostInput:
    """Input for the post deletion pre-check."""

    post_id: UUID


@dataclass(frozen=True)
class AuditRedirectsInput:
    """Input for auditing every stored redirect."""

    pass


# --- Output Models ---


@dataclass(frozen=True)
class RedirectOperationOutput:
    """Output for redirect operations (create, update, delete, get)."""

    redirect: PostRedirect | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error_code: str | None = None
    success: bool = True


@dataclass(frozen=True)
class RedirectListOutput:
    """Output containing a page of redirects."""

    page: RedirectPage | None
    errors: list[str] = field(default_factory=list)
    error_code: str | None = None
    success: bool = True


@dataclass(frozen=True)
class ResolveOutput:
    """Output for resolve operation. decision is None when there is no redirect."""

    decision: RedirectDecision | None
    success: bool = True


@dataclass(frozen=True)
class AuditOutput:
    """Output for the redirect audit."""

    issues: tuple[RedirectIssue, ...]
    total_checked: int
    errors: list[str] = field(default_factory=list)
    success: bool = True
