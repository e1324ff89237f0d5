"""Convenience exports for ORM models."""
from .follow import Follow
from .item import Comment, Item, Like, MediaType, Save
from .user import AccountKind, User

__all__ = [
    "AccountKind",
    "Comment",
    "Follow",
    "Item",
    "Like",
    "MediaType",
    "Save",
    "User",
]
