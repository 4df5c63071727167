"""
Posts component models.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from inkwell.components.redirects import RedirectDecision, ValidationResult
from inkwell.domain.entities import Post


class PostNotFoundError(Exception):
    """Raised when a post doesn't exist."""


class PostPermissionError(Exception):
    """Raised when the caller isn't the post's author."""


class PostDeletionBlockedError(Exception):
    """Raised when the deletion guard refuses a post delete."""

    def __init__(self, result: ValidationResult) -> None:
        self.result = result
        super().__init__(", ".join(result.errors))


@dataclass(frozen=True)
class PostView:
    """A post as returned to readers, with its redirect decision."""

    post: Post
    redirect: RedirectDecision | None = None

    def to_dict(self) -> dict[str, Any]:
        post = self.post
        return {
            "id": str(post.id),
            "slug": post.slug,
            "title": post.title,
            "content": post.content,
            "excerpt": post.excerpt,
            "status": post.status,
            "authorId": str(post.author_id),
            "createdAt": post.created_at.isoformat(),
            "updatedAt": post.updated_at.isoformat(),
            # Always present, null when the post isn't redirected
            "redirect": self.redirect.to_metadata() if self.redirect else None,
        }
