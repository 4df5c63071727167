"""
Post redirects - resolution, validation and the deletion guard.

A post can be redirected to another post or to an external URL. Resolution
looks at one hop only: the caller decides whether to follow a chain. Chains
are allowed, cycles are rejected when a redirect is written.

Key behaviors:
- Redirects use 301 status code by default
- A post redirect whose target was deleted resolves with 410 Gone
- Redirects outlive their source post (tombstones)
- Reads fail open: store errors read as "no redirect"
- Writes fail closed: store errors propagate to the caller
- Cycle detection is a bounded loop (max 10 hops by default)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse
from uuid import UUID

from inkwell.adapters.clock import SystemClock
from inkwell.domain.entities import PostProjection, PostRedirect, RedirectType
from inkwell.rules.models import RedirectRules, Rules

from .models import (
    ChainCheck,
    RedirectDecision,
    RedirectIssue,
    RedirectNotFoundError,
    RedirectPage,
    RedirectPermissionError,
    RedirectTarget,
    RedirectValidationError,
    TransientStoreError,
    ValidationResult,
)
from .ports import CacheInvalidatorPort, PostLookupPort, RedirectStorePort, TimePort

logger = logging.getLogger(__name__)

# --- Messages ---

TARGET_POST_REQUIRED = "Target post ID is required for post-to-post redirects"
TARGET_URL_REQUIRED = "Target URL is required for post-to-URL redirects"
SELF_REDIRECT = "Cannot redirect a post to itself"
TARGET_MISSING = "Target post does not exist"
TARGET_DRAFT = "Target post is currently a draft and may not be publicly accessible"
INVALID_URL = "Invalid URL format"
INSECURE_URL = "Using HTTP instead of HTTPS may cause security warnings"
DUPLICATE_SOURCE = "A redirect already exists for this source post"
TARGET_DELETED = "Target post has been deleted"
INBOUND_UNCHECKED = "Could not check for inbound redirects"

# --- Configuration ---


@dataclass(frozen=True)
class RedirectConfig:
    """Redirect configuration from rules."""

    default_status_code: int = 301
    allowed_status_codes: frozenset[int] = frozenset({301, 302, 307, 308})
    gone_status_code: int = 410
    max_chain_depth: int = 10
    allowed_url_schemes: frozenset[str] = frozenset({"http", "https"})
    warn_on_insecure_scheme: bool = True
    notes_max_length: int = 1000

    @classmethod
    def from_rules(cls, rules: RedirectRules) -> RedirectConfig:
        return cls(
            default_status_code=rules.default_status_code,
            allowed_status_codes=frozenset(rules.allowed_status_codes),
            gone_status_code=rules.gone_status_code,
            max_chain_depth=rules.max_chain_depth,
            allowed_url_schemes=frozenset(rules.allowed_url_schemes),
            warn_on_insecure_scheme=rules.warn_on_insecure_scheme,
            notes_max_length=rules.notes_max_length,
        )


DEFAULT_CONFIG = RedirectConfig()


# --- Validation Functions ---


def check_target_url(
    url: str,
    config: RedirectConfig = DEFAULT_CONFIG,
) -> tuple[list[str], list[str]]:
    """Check an external target URL. Returns (errors, warnings)."""
    errors: list[str] = []
    warnings: list[str] = []

    try:
        parsed = urlparse(url.strip())
        host = parsed.hostname
    except ValueError:
        return [INVALID_URL], warnings

    scheme = parsed.scheme.lower()
    if not scheme:
        return [INVALID_URL], warnings

    if scheme not in config.allowed_url_schemes:
        names = " and ".join(s.upper() for s in sorted(config.allowed_url_schemes))
        errors.append(f"Only {names} URLs are allowed")
        return errors, warnings

    if not host:
        return [INVALID_URL], warnings

    if scheme == "http" and config.warn_on_insecure_scheme:
        warnings.append(INSECURE_URL)

    return errors, warnings


def detect_cycle(
    source_post_id: UUID,
    target_post_id: UUID,
    store: RedirectStorePort,
    max_depth: int = DEFAULT_CONFIG.max_chain_depth,
) -> ChainCheck:
    """
    Walk the chain of post redirects starting at target_post_id.

    A cycle exists when the walk reaches the source or revisits a node.
    The walk stops at a post without a redirect, at a URL redirect, or after
    max_depth hops; hitting the cap counts as "no cycle".
    """
    visited: set[UUID] = set()
    chain: list[UUID] = []
    current: UUID | None = target_post_id
    depth = 0

    while current is not None and depth < max_depth:
        if current == source_post_id or current in visited:
            return ChainCheck(has_cycle=True, depth=depth, chain=tuple(chain), closed_by=current)

        visited.add(current)
        chain.append(current)

        redirect = store.find_by_source(current)
        if redirect is None or redirect.redirect_type != "post":
            break

        current = redirect.target_post_id
        depth += 1

    return ChainCheck(has_cycle=False, depth=depth, chain=tuple(chain))


# --- Validator ---


class RedirectValidator:
    """
    Validates a proposed redirect before it is written.

    Checks run in order and stop at the first error:
    required target, self-redirect, target existence, cycles, URL format,
    source uniqueness. Store failures propagate (the write is refused).
    """

    def __init__(
        self,
        store: RedirectStorePort,
        posts: PostLookupPort,
        config: RedirectConfig | None = None,
    ) -> None:
        self._store = store
        self._posts = posts
        self._config = config or DEFAULT_CONFIG

    def validate(
        self,
        source_post_id: UUID,
        redirect_type: RedirectType,
        target_post_id: UUID | None = None,
        target_url: str | None = None,
        exclude_redirect_id: UUID | None = None,
    ) -> ValidationResult:
        warnings: list[str] = []

        if redirect_type == "post":
            if target_post_id is None:
                return ValidationResult(False, [TARGET_POST_REQUIRED], warnings)

            if target_post_id == source_post_id:
                return ValidationResult(False, [SELF_REDIRECT], warnings)

            target = self._posts.fetch_post(target_post_id)
            if target is None:
                return ValidationResult(False, [TARGET_MISSING], warnings)

            if target.status == "draft":
                warnings.append(TARGET_DRAFT)

            check = detect_cycle(
                source_post_id, target_post_id, self._store, self._config.max_chain_depth
            )
            if check.has_cycle:
                message = f"Circular redirect detected: {check.describe()}"
                return ValidationResult(False, [message], warnings)

            if check.depth > 0:
                warnings.append(
                    f"Redirect chain detected (depth: {check.depth}): {check.describe()}"
                )

        elif redirect_type == "url":
            if not target_url:
                return ValidationResult(False, [TARGET_URL_REQUIRED], warnings)

            url_errors, url_warnings = check_target_url(target_url, self._config)
            warnings.extend(url_warnings)
            if url_errors:
                return ValidationResult(False, url_errors, warnings)

        else:
            return ValidationResult(False, [f"Unknown redirect type: {redirect_type}"], warnings)

        existing = self._store.find_by_source(source_post_id)
        if existing is not None and existing.id != exclude_redirect_id:
            return ValidationResult(False, [DUPLICATE_SOURCE], warnings)

        return ValidationResult(True, [], warnings)


# --- Resolver ---


class RedirectResolver:
    """
    Produces the redirect decision attached to post reads.

    resolve() never raises for store failures; lookup() is the raising
    variant used by decorators that need to tell "none" from "failed".
    """

    def __init__(
        self,
        store: RedirectStorePort,
        posts: PostLookupPort,
        config: RedirectConfig | None = None,
    ) -> None:
        self._store = store
        self._posts = posts
        self._config = config or DEFAULT_CONFIG

    def lookup(self, source_post_id: UUID) -> RedirectDecision | None:
        redirect = self._store.find_by_source(source_post_id)
        if redirect is None:
            return None

        if redirect.redirect_type == "url":
            return RedirectDecision(
                kind="url",
                http_status=redirect.http_status_code,
                target=RedirectTarget(url=redirect.target_url),
                notes=redirect.notes,
            )

        target_id = redirect.target_post_id
        if target_id is None:
            logger.error("Post redirect %s has no target post", redirect.id)
            return None
        target = self._posts.fetch_post(target_id)

        if target is None:
            return RedirectDecision(
                kind="post",
                http_status=self._config.gone_status_code,
                target=RedirectTarget(post_id=target_id, error=TARGET_DELETED),
                notes=redirect.notes,
            )

        return RedirectDecision(
            kind="post",
            http_status=redirect.http_status_code,
            target=RedirectTarget(post_id=target.id, slug=target.slug, title=target.title),
            notes=redirect.notes,
            target_has_redirect=self._peek(target.id),
        )

    def _peek(self, post_id: UUID) -> bool:
        # One extra hop, informational only
        try:
            return self._store.find_by_source(post_id) is not None
        except TransientStoreError:
            logger.debug("Second-hop redirect peek failed for post %s", post_id)
            return False

    def resolve(self, source_post_id: UUID) -> RedirectDecision | None:
        try:
            return self.lookup(source_post_id)
        except TransientStoreError:
            logger.warning(
                "Redirect lookup failed for post %s; serving without redirect",
                source_post_id,
                exc_info=True,
            )
            return None

    def has_redirect(self, post_id: UUID) -> bool:
        try:
            return self._store.find_by_source(post_id) is not None
        except TransientStoreError:
            logger.warning("Redirect existence check failed for post %s", post_id)
            return False

    def inbound_redirect_sources(self, target_post_id: UUID) -> list[UUID]:
        try:
            return [r.source_post_id for r in self._store.find_by_target(target_post_id)]
        except TransientStoreError:
            logger.warning("Inbound redirect lookup failed for post %s", target_post_id)
            return []


# --- Deletion Guard ---


class DeletionGuard:
    """Pre-delete check: a post that other redirects point at can't be deleted."""

    def __init__(self, store: RedirectStorePort) -> None:
        self._store = store

    def can_delete_post(self, post_id: UUID) -> ValidationResult:
        # Queries the store directly: the fail-open inbound_redirect_sources()
        # would hide a failed lookup behind an empty list.
        try:
            inbound = self._store.find_by_target(post_id)
        except TransientStoreError:
            logger.warning("Could not check inbound redirects for post %s", post_id)
            return ValidationResult(True, [], [INBOUND_UNCHECKED])

        if inbound:
            return ValidationResult(
                False,
                [
                    f"Cannot delete this post. {len(inbound)} redirect(s) point to it. "
                    "Please remove or update these redirects first."
                ],
                [],
            )

        return ValidationResult(True, [], [])


# --- Cache Invalidation Hook ---


class NoOpCacheInvalidator:
    """Default no-op cache invalidator."""

    def invalidate_redirect(self, source_post_id: UUID) -> None:
        pass

    def invalidate_target(self, post_id: UUID) -> None:
        pass


# --- Redirect Service ---

IMMUTABLE_FIELDS = frozenset({"id", "source_post_id", "created_by", "created_at", "updated_at"})
UPDATABLE_FIELDS = frozenset(
    {"redirect_type", "target_post_id", "target_url", "http_status_code", "notes"}
)


class RedirectService:
    """
    Redirect management (create, update, delete, list, validate, audit).

    Writes are owner-scoped: a redirect can only be changed by the user who
    created it. Every write invalidates cached resolutions for its source.
    """

    def __init__(
        self,
        store: RedirectStorePort,
        posts: PostLookupPort,
        time_port: TimePort | None = None,
        cache: CacheInvalidatorPort | None = None,
        config: RedirectConfig | None = None,
    ) -> None:
        self._store = store
        self._posts = posts
        self._time = time_port if time_port is not None else SystemClock()
        self._cache = cache if cache is not None else NoOpCacheInvalidator()
        self._config = config or DEFAULT_CONFIG
        self._validator = RedirectValidator(store, posts, self._config)

    def _check_fields(self, status_code: int, notes: str | None) -> None:
        errors: list[str] = []
        if status_code not in self._config.allowed_status_codes:
            codes = ", ".join(str(c) for c in sorted(self._config.allowed_status_codes))
            errors.append(f"HTTP status code must be one of {codes}")
        if notes is not None and len(notes) > self._config.notes_max_length:
            errors.append("Notes are too long")
        if errors:
            raise RedirectValidationError(errors)

    def _get_owned(self, redirect_id: UUID, user_id: UUID) -> PostRedirect:
        redirect = self._store.find_by_id(redirect_id)
        if redirect is None or redirect.created_by != user_id:
            raise RedirectNotFoundError("Redirect not found")
        return redirect

    def validate(
        self,
        source_post_id: UUID,
        redirect_type: RedirectType,
        target_post_id: UUID | None = None,
        target_url: str | None = None,
        exclude_redirect_id: UUID | None = None,
    ) -> ValidationResult:
        """Dry-run validation, no write."""
        return self._validator.validate(
            source_post_id, redirect_type, target_post_id, target_url, exclude_redirect_id
        )

    def create(
        self,
        source_post_id: UUID,
        redirect_type: RedirectType,
        *,
        created_by: UUID,
        target_post_id: UUID | None = None,
        target_url: str | None = None,
        http_status_code: int | None = None,
        notes: str | None = None,
    ) -> tuple[PostRedirect, list[str]]:
        """
        Create a new redirect.

        Returns:
            Tuple of (redirect, warnings).

        Raises:
            RedirectValidationError: a rule failed.
            RedirectNotFoundError: the source post doesn't exist.
            RedirectPermissionError: the source post belongs to someone else.
            RedirectConflictError: a concurrent create won the race.
        """
        status_code = (
            http_status_code if http_status_code is not None else self._config.default_status_code
        )
        if target_url is not None:
            target_url = target_url.strip()
        self._check_fields(status_code, notes)

        result = self._validator.validate(source_post_id, redirect_type, target_post_id, target_url)
        if not result.valid:
            raise RedirectValidationError(result.errors, result.warnings)

        source = self._posts.fetch_post(source_post_id)
        if source is None:
            raise RedirectNotFoundError("Source post not found")
        if source.author_id is not None and source.author_id != created_by:
            raise RedirectPermissionError("You can only create redirects for your own posts")

        now = self._time.now_utc()
        redirect = PostRedirect(
            source_post_id=source_post_id,
            redirect_type=redirect_type,
            target_post_id=target_post_id if redirect_type == "post" else None,
            target_url=target_url if redirect_type == "url" else None,
            http_status_code=status_code,
            created_by=created_by,
            created_at=now,
            updated_at=now,
            notes=notes,
        )

        saved = self._store.create(redirect)
        self._cache.invalidate_redirect(source_post_id)
        logger.info(
            "Created %s redirect %s for post %s", redirect_type, saved.id, source_post_id
        )
        return saved, result.warnings

    def update(
        self,
        redirect_id: UUID,
        changes: dict[str, Any],
        *,
        user_id: UUID,
    ) -> tuple[PostRedirect, list[str]]:
        """
        Update type, target, status code or notes of an existing redirect.

        Values not present in changes keep their stored value. Switching the
        type clears the target of the previous type.
        """
        existing = self._get_owned(redirect_id, user_id)

        immutable = sorted(set(changes) & IMMUTABLE_FIELDS)
        if immutable:
            raise RedirectValidationError(
                [f"Field cannot be changed: {name}" for name in immutable]
            )
        unknown = sorted(set(changes) - UPDATABLE_FIELDS)
        if unknown:
            raise RedirectValidationError([f"Unknown field: {name}" for name in unknown])

        new_type: RedirectType = changes.get("redirect_type") or existing.redirect_type
        target_post_id = changes.get("target_post_id", existing.target_post_id)
        target_url = changes.get("target_url", existing.target_url)
        if target_url is not None:
            target_url = target_url.strip()
        status_code = changes.get("http_status_code") or existing.http_status_code
        notes = changes["notes"] if "notes" in changes else existing.notes

        if new_type == "post":
            target_url = None
        else:
            target_post_id = None

        self._check_fields(status_code, notes)

        result = self._validator.validate(
            existing.source_post_id,
            new_type,
            target_post_id,
            target_url,
            exclude_redirect_id=existing.id,
        )
        if not result.valid:
            raise RedirectValidationError(result.errors, result.warnings)

        updated = self._store.update(
            existing.id,
            {
                "redirect_type": new_type,
                "target_post_id": target_post_id,
                "target_url": target_url,
                "http_status_code": status_code,
                "notes": notes,
                "updated_at": self._time.now_utc(),
            },
        )
        self._cache.invalidate_redirect(existing.source_post_id)
        logger.info("Updated redirect %s for post %s", existing.id, existing.source_post_id)
        return updated, result.warnings

    def delete(self, redirect_id: UUID, *, user_id: UUID) -> None:
        """Delete a redirect owned by user_id."""
        existing = self._get_owned(redirect_id, user_id)
        self._store.delete(existing.id)
        self._cache.invalidate_redirect(existing.source_post_id)
        logger.info("Deleted redirect %s for post %s", existing.id, existing.source_post_id)

    def get(self, redirect_id: UUID, *, user_id: UUID) -> PostRedirect:
        """Get a redirect owned by user_id."""
        return self._get_owned(redirect_id, user_id)

    def list_for_user(
        self,
        user_id: UUID,
        *,
        redirect_type: RedirectType | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> RedirectPage:
        """List the user's redirects, newest first, with their source and target posts."""
        if page < 1 or not 1 <= limit <= 100:
            raise RedirectValidationError(["page must be >= 1 and limit between 1 and 100"])

        redirects, total = self._store.list_by_owner(
            user_id,
            redirect_type=redirect_type,
            search=search or None,
            limit=limit,
            offset=(page - 1) * limit,
        )
        post_ids = {r.source_post_id for r in redirects}
        post_ids.update(r.target_post_id for r in redirects if r.target_post_id is not None)
        related: dict[UUID, PostProjection] = {}
        for post_id in post_ids:
            post = self._posts.fetch_post(post_id)
            if post is not None:
                related[post_id] = post

        return RedirectPage(
            redirects=tuple(redirects), page=page, limit=limit, total=total, posts=related
        )

    def audit(self) -> tuple[list[RedirectIssue], int]:
        """
        Check every stored redirect.

        Reports broken post targets, cycles and URL targets that no longer
        pass validation. Returns (issues, number of redirects checked).
        """
        issues: list[RedirectIssue] = []
        redirects = self._store.list_all()

        for redirect in redirects:
            if redirect.redirect_type == "url":
                url_errors, _ = check_target_url(redirect.target_url or "", self._config)
                for message in url_errors:
                    issues.append(
                        RedirectIssue(redirect.id, redirect.source_post_id, "invalid_url", message)
                    )
                continue

            target_id = redirect.target_post_id
            if target_id is None:
                issues.append(
                    RedirectIssue(
                        redirect.id, redirect.source_post_id, "broken_target", TARGET_POST_REQUIRED
                    )
                )
                continue
            if self._posts.fetch_post(target_id) is None:
                issues.append(
                    RedirectIssue(
                        redirect.id, redirect.source_post_id, "broken_target", TARGET_DELETED
                    )
                )

            check = detect_cycle(
                redirect.source_post_id, target_id, self._store, self._config.max_chain_depth
            )
            if check.has_cycle:
                issues.append(
                    RedirectIssue(
                        redirect.id,
                        redirect.source_post_id,
                        "cycle",
                        f"Circular redirect detected: {check.describe()}",
                    )
                )

        return issues, len(redirects)


# --- Factory ---


def create_redirect_service(
    store: RedirectStorePort,
    posts: PostLookupPort,
    rules: Rules | None = None,
    cache: CacheInvalidatorPort | None = None,
    time_port: TimePort | None = None,
) -> RedirectService:
    """Create a RedirectService configured from rules."""
    config = RedirectConfig.from_rules(rules.redirects) if rules is not None else None
    return RedirectService(
        store=store,
        posts=posts,
        time_port=time_port,
        cache=cache,
        config=config,
    )
