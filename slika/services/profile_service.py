"""Profile pages and profile edits synchronised with the identity provider."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..clients.identity_provider import USERNAME_TAKEN_CODE, IdentityProviderError, update_user
from ..models import User
from .follow_service import get_follow_stats
from .item_service import list_items_by_owner, list_saved_items
from .view_cache import HOME_PATH, profile_path, view_cache

logger = logging.getLogger(__name__)


def get_user_by_username(db: Session, username: str) -> User:
    user = db.scalar(select(User).where(User.username == username))
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def get_profile_page(db: Session, username: str) -> dict[str, Any]:
    """Public profile: user fields, follow counts, created and saved items."""

    user = get_user_by_username(db, username)
    stats = get_follow_stats(db, user_id=user.id)
    return {
        "id": user.id,
        "username": user.username,
        "display_name": user.display_name,
        "bio": user.bio,
        "avatar_url": user.avatar_url,
        "created_at": user.created_at,
        "followers_count": stats.followers_count,
        "following_count": stats.following_count,
        "created_items": list_items_by_owner(db, user_id=user.id),
        "saved_items": list_saved_items(db, user_id=user.id),
    }


async def update_profile(
    db: Session,
    *,
    user: User,
    display_name: str,
    username: str,
    bio: str,
) -> User:
    """Apply a profile edit locally, then mirror username and name to the identity provider.

    The local write is kept even when the provider sync fails. Only a
    username collision at the provider is reported back to the caller.
    """

    previous_username = user.username
    if username != previous_username:
        holder = db.scalar(select(User.id).where(User.username == username))
        if holder is not None and holder != user.id:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username is already taken.")

    user.display_name = display_name.strip() or None
    user.username = username
    user.bio = bio.strip() or None

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username is already taken.") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to update profile of %s", user.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update profile",
        ) from exc

    db.refresh(user)
    view_cache.invalidate(profile_path(previous_username), profile_path(username), HOME_PATH)

    try:
        await update_user(user.id, username=username, first_name=display_name)
    except IdentityProviderError as exc:
        logger.warning("Failed to sync profile of %s with identity provider: %s", user.id, exc)
        if exc.code == USERNAME_TAKEN_CODE:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username is already taken.") from exc

    return user


__all__ = ["get_profile_page", "get_user_by_username", "update_profile"]
