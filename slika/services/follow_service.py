"""Business logic for follower relationships."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import HTTPException, status
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import insert_or_ignore
from ..models import Follow, User
from .view_cache import HOME_PATH, profile_path, view_cache

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FollowStats:
    user_id: str
    followers_count: int
    following_count: int
    is_following: bool


def get_user_or_404(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def is_following(db: Session, *, follower_id: str, following_id: str) -> bool:
    return (
        db.scalar(
            select(Follow.follower_id).where(
                Follow.follower_id == follower_id,
                Follow.following_id == following_id,
            )
        )
        is not None
    )


def toggle_follow(db: Session, *, follower_id: str, target_id: str) -> bool:
    """Follow ``target_id`` or drop the existing edge; return whether the edge now exists."""

    if follower_id == target_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot follow yourself")

    target = get_user_or_404(db, target_id)

    try:
        removed = db.execute(
            delete(Follow).where(Follow.follower_id == follower_id, Follow.following_id == target_id)
        ).rowcount
        if not removed:
            db.execute(insert_or_ignore(db, Follow).values(follower_id=follower_id, following_id=target_id))
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to toggle follow %s -> %s", follower_id, target_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to update follow") from exc

    view_cache.invalidate(profile_path(target.username), HOME_PATH)
    return not removed


def get_follow_stats(db: Session, *, user_id: str, viewer_id: str | None = None) -> FollowStats:
    get_user_or_404(db, user_id)

    followers_count = db.scalar(
        select(func.count()).select_from(Follow).where(Follow.following_id == user_id)
    ) or 0
    following_count = db.scalar(
        select(func.count()).select_from(Follow).where(Follow.follower_id == user_id)
    ) or 0

    viewer_follows = False
    if viewer_id is not None and viewer_id != user_id:
        viewer_follows = is_following(db, follower_id=viewer_id, following_id=user_id)

    return FollowStats(
        user_id=user_id,
        followers_count=int(followers_count),
        following_count=int(following_count),
        is_following=viewer_follows,
    )


__all__ = ["FollowStats", "get_follow_stats", "get_user_or_404", "is_following", "toggle_follow"]
