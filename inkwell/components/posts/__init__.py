"""
Posts component - the post read and delete paths that involve redirects.
"""

from ._impl import PostService
from .models import PostDeletionBlockedError, PostNotFoundError, PostPermissionError, PostView
from .ports import DeletionGuardPort, PostRepoPort, RedirectResolverPort

__all__ = [
    "PostService",
    "PostDeletionBlockedError",
    "PostNotFoundError",
    "PostPermissionError",
    "PostView",
    "DeletionGuardPort",
    "PostRepoPort",
    "RedirectResolverPort",
]
