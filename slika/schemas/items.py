"""Pydantic schemas for items, interactions and comment threads."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..models import MediaType


class ItemResponse(BaseModel):
    """Serialized representation of a persisted item with its counters."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str | None = None
    media_url: str
    media_type: MediaType
    user_id: str
    created_at: datetime
    username: str | None = None
    avatar_url: str | None = None
    like_count: int = 0
    save_count: int = 0
    comment_count: int = 0


class ItemFeedResponse(BaseModel):
    """Envelope used when returning a page of items."""

    items: list[ItemResponse]
    limit: int


class CommentAuthor(BaseModel):
    id: str
    username: str
    avatar_url: str | None = None


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=500)


class CommentResponse(BaseModel):
    id: int
    item_id: int
    user_id: str
    content: str
    created_at: datetime
    user: CommentAuthor


class CommentListResponse(BaseModel):
    items: list[CommentResponse]


class ItemDetailResponse(ItemResponse):
    """Single item with its discussion thread and the viewer's membership flags."""

    comments: list[CommentResponse] = Field(default_factory=list)
    viewer_has_liked: bool = False
    viewer_has_saved: bool = False


class InteractionResponse(BaseModel):
    """Outcome of a like or save toggle."""

    item_id: int
    active: bool
    like_count: int
    save_count: int


__all__ = [
    "ItemResponse",
    "ItemFeedResponse",
    "ItemDetailResponse",
    "InteractionResponse",
    "CommentAuthor",
    "CommentCreate",
    "CommentResponse",
    "CommentListResponse",
]
