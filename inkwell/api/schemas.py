from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from inkwell.domain.entities import (
    PostProjection,
    PostRedirect,
    RedirectStatusCode,
    RedirectType,
)


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Redirects ---
class CreateRedirectRequest(ApiModel):
    source_post_id: UUID
    redirect_type: RedirectType
    target_post_id: UUID | None = None
    target_url: str | None = Field(None, max_length=2048)
    http_status_code: RedirectStatusCode = 301
    notes: str | None = None

    @model_validator(mode="after")
    def _check_target(self) -> "CreateRedirectRequest":
        if self.redirect_type == "post":
            ok = self.target_post_id is not None and self.target_url is None
        else:
            ok = self.target_url is not None and self.target_post_id is None
        if not ok:
            raise ValueError(
                "For post redirects, provide targetPostId only. "
                "For URL redirects, provide targetUrl only."
            )
        return self


class UpdateRedirectRequest(ApiModel):
    """Only the fields sent are changed; immutable fields are rejected."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    redirect_type: RedirectType | None = None
    target_post_id: UUID | None = None
    target_url: str | None = Field(None, max_length=2048)
    http_status_code: RedirectStatusCode | None = None
    notes: str | None = None


class RedirectResponse(ApiModel):
    id: UUID
    source_post_id: UUID
    redirect_type: RedirectType
    target_post_id: UUID | None = None
    target_url: str | None = None
    http_status_code: int
    created_by: UUID
    created_at: str
    updated_at: str
    notes: str | None = None

    @classmethod
    def from_entity(cls, redirect: PostRedirect) -> "RedirectResponse":
        return cls(
            id=redirect.id,
            source_post_id=redirect.source_post_id,
            redirect_type=redirect.redirect_type,
            target_post_id=redirect.target_post_id,
            target_url=redirect.target_url,
            http_status_code=redirect.http_status_code,
            created_by=redirect.created_by,
            created_at=redirect.created_at.isoformat(),
            updated_at=redirect.updated_at.isoformat(),
            notes=redirect.notes,
        )


class PostSummary(ApiModel):
    id: UUID
    title: str
    slug: str
    status: str

    @classmethod
    def from_projection(cls, post: PostProjection | None) -> "PostSummary | None":
        if post is None:
            return None
        return cls(id=post.id, title=post.title, slug=post.slug, status=post.status)


class RedirectListItem(RedirectResponse):
    # null when the post no longer exists
    source_post: PostSummary | None = None
    target_post: PostSummary | None = None


class RedirectWriteResponse(ApiModel):
    redirect: RedirectResponse
    warnings: list[str] = []


class Pagination(ApiModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class RedirectListResponse(ApiModel):
    redirects: list[RedirectListItem]
    pagination: Pagination


class ValidationResponse(ApiModel):
    valid: bool
    errors: list[str]
    warnings: list[str]


class MessageResponse(ApiModel):
    message: str


# --- Posts ---
class PostResponse(ApiModel):
    id: UUID
    slug: str
    title: str
    content: str
    excerpt: str | None = None
    status: str
    author_id: UUID
    created_at: str
    updated_at: str
    # null when the post isn't redirected
    redirect: dict[str, Any] | None = None
