from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

PostStatus = Literal["draft", "published", "archived"]

COMMENT_STATUSES: tuple[str, ...] = ("pending", "approved", "flagged", "deleted")


# ============================================================================
# HEALTH
# ============================================================================


class HealthResponse(BaseModel):
    """Liveness payload for the orchestrator probes."""

    status: Literal["ok"] = "ok"
    timestamp: datetime
    uptime: float


class ErrorResponse(BaseModel):
    error: str


# ============================================================================
# POSTS
# ============================================================================


class PostCreate(BaseModel):
    """
    Create post request.

    Required fields are optional here so a missing one is reported with the
    API's own 400 message instead of a schema error.
    """

    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    content: str | None = None
    excerpt: str | None = None
    category_id: int | None = None
    status: PostStatus | None = None
    featured: bool | None = None
    tags: list[str] = Field(default_factory=list)


class PostUpdate(BaseModel):
    """Partial update. Only fields present in the request body are written."""

    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    content: str | None = None
    excerpt: str | None = None
    category_id: int | None = None
    status: PostStatus | None = None
    featured: bool | None = None


# ============================================================================
# CATEGORIES
# ============================================================================


class CategoryCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    description: str | None = None


# ============================================================================
# COMMENTS
# ============================================================================


class CommentCreate(BaseModel):
    """Public comment submission. Any client-sent status is ignored."""

    model_config = ConfigDict(extra="ignore")

    author_name: str | None = None
    author_email: str | None = None
    content: str | None = None


class CommentStatusUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: str | None = None


# ============================================================================
# AUTH
# ============================================================================


class TokenPayload(BaseModel):
    """Identity attached to a request by the auth gate."""

    sub: str
    email: str | None = None
    groups: list[str] = Field(default_factory=list)
