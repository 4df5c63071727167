from datetime import UTC, datetime
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, model_validator

# --- Enums / Literals ---
PostStatus = Literal["draft", "scheduled", "published", "archived"]
RedirectType = Literal["post", "url"]
RedirectStatusCode = Literal[301, 302, 307, 308]


def _utcnow() -> datetime:
    return datetime.now(UTC)


# --- Users ---


class User(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    email: str
    display_name: str
    created_at: datetime = Field(default_factory=_utcnow)


# --- Posts ---


class Post(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    slug: str
    title: str
    content: str = ""
    excerpt: str | None = None
    status: PostStatus = "draft"
    author_id: UUID
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class PostProjection(BaseModel):
    """Read-only view of a post, as seen by the redirects component."""

    id: UUID
    slug: str
    title: str
    status: PostStatus
    author_id: UUID | None = None


# --- Redirects ---


class PostRedirect(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    source_post_id: UUID
    redirect_type: RedirectType
    target_post_id: UUID | None = None
    target_url: str | None = None
    http_status_code: int = 301
    created_by: UUID
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    notes: str | None = None

    @model_validator(mode="after")
    def _check_target(self) -> "PostRedirect":
        # Exactly one target, matching the type.
        if self.redirect_type == "post":
            if self.target_post_id is None or self.target_url is not None:
                raise ValueError("post redirects need target_post_id and no target_url")
        elif self.target_url is None or self.target_post_id is not None:
            raise ValueError("url redirects need target_url and no target_post_id")
        return self
