"""Pydantic models for the upstream message-board API payloads."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class _UpstreamModel(BaseModel):
    """Base for upstream DTOs: camelCase on the wire, unknown keys ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class Board(_UpstreamModel):
    """A topic category as listed by ``GET /boards``."""

    name: str
    slug: str


class Thread(_UpstreamModel):
    id: int
    message: str
    replies_count: int = Field(default=0, ge=0, alias="repliesCount")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    image_url: str | None = Field(default=None, alias="imageUrl")


class BoardThreads(_UpstreamModel):
    """A board's current thread list, ordered by creation date upstream."""

    slug: str
    name: str
    threads: list[Thread] = Field(default_factory=list)


class Reply(_UpstreamModel):
    id: int
    message: str
    created_at: datetime | None = Field(default=None, alias="createdAt")


class ThreadReplies(_UpstreamModel):
    """A thread with its replies in ascending creation order."""

    id: int
    title: str
    created_at: datetime | None = Field(default=None, alias="createdAt")
    replies: list[Reply] = Field(default_factory=list)
