"""
PostService - post reads with redirect metadata, guarded deletes.

General post CRUD lives elsewhere; this covers the two paths that touch
redirects: every read attaches the post's redirect decision, and every delete
consults the deletion guard first.
"""

from __future__ import annotations

import logging
from uuid import UUID

from inkwell.components.redirects import (
    CacheInvalidatorPort,
    NoOpCacheInvalidator,
    RedirectDecision,
    ValidationResult,
)

from .models import (
    PostDeletionBlockedError,
    PostNotFoundError,
    PostPermissionError,
    PostView,
)
from .ports import DeletionGuardPort, PostRepoPort, RedirectResolverPort

logger = logging.getLogger(__name__)


class PostService:
    def __init__(
        self,
        repo: PostRepoPort,
        resolver: RedirectResolverPort,
        guard: DeletionGuardPort,
        cache: CacheInvalidatorPort | None = None,
    ) -> None:
        self._repo = repo
        self._resolver = resolver
        self._guard = guard
        self._cache = cache if cache is not None else NoOpCacheInvalidator()

    def get(self, post_id: UUID, include_redirect: bool = True) -> PostView:
        post = self._repo.get_by_id(post_id)
        if post is None:
            raise PostNotFoundError(f"Post {post_id} not found")

        redirect = self._resolver.resolve(post_id) if include_redirect else None
        return PostView(post=post, redirect=redirect)

    def get_redirect(self, post_id: UUID) -> RedirectDecision | None:
        """Resolve any post id, including deleted posts with a tombstone redirect."""
        return self._resolver.resolve(post_id)

    def check_delete(self, post_id: UUID) -> ValidationResult:
        return self._guard.can_delete_post(post_id)

    def delete(self, post_id: UUID, *, user_id: UUID, force: bool = False) -> ValidationResult:
        """
        Delete one of user_id's posts unless redirects still point at it.

        With force=True the delete goes ahead anyway and the inbound
        redirects become broken (they resolve with 410).

        Raises:
            PostNotFoundError: the post doesn't exist.
            PostPermissionError: the post belongs to someone else.
            PostDeletionBlockedError: inbound redirects exist and force is False.
        """
        post = self._repo.get_by_id(post_id)
        if post is None:
            raise PostNotFoundError(f"Post {post_id} not found")
        if post.author_id != user_id:
            raise PostPermissionError("You can only delete your own posts")

        result = self._guard.can_delete_post(post_id)
        if not result.valid:
            if not force:
                raise PostDeletionBlockedError(result)
            logger.warning("Force-deleting post %s: %s", post_id, "; ".join(result.errors))

        self._repo.delete(post_id)
        self._cache.invalidate_target(post_id)
        self._cache.invalidate_redirect(post_id)
        logger.info("Deleted post %s", post_id)
        return result
