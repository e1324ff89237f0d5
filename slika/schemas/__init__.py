"""Convenience exports for schema layer."""
from .follow import FollowActionResponse, FollowStatsResponse
from .items import (
    CommentAuthor,
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    InteractionResponse,
    ItemDetailResponse,
    ItemFeedResponse,
    ItemResponse,
)
from .profiles import ProfileResponse, ProfileUpdateRequest, UserSummary
from .uploads import UploadResponse

__all__ = [
    "CommentAuthor",
    "CommentCreate",
    "CommentListResponse",
    "CommentResponse",
    "FollowActionResponse",
    "FollowStatsResponse",
    "InteractionResponse",
    "ItemDetailResponse",
    "ItemFeedResponse",
    "ItemResponse",
    "ProfileResponse",
    "ProfileUpdateRequest",
    "UploadResponse",
    "UserSummary",
]
