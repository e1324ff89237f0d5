"""Likes, saves and comment threads on items."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from fastapi import HTTPException, status
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import insert_or_ignore
from ..models import Comment, Item, Like, Save, User
from .view_cache import HOME_PATH, item_path, profile_path, view_cache

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 500


@dataclass(slots=True)
class InteractionState:
    item_id: int
    active: bool
    like_count: int
    save_count: int


def get_item_or_404(db: Session, item_id: int) -> Item:
    item = db.get(Item, item_id)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    return item


def count_members(db: Session, model: type[Like] | type[Save], item_id: int) -> int:
    return int(db.scalar(select(func.count(model.id)).where(model.item_id == item_id)) or 0)


def has_membership(db: Session, model: type[Like] | type[Save], *, user_id: str, item_id: int) -> bool:
    return (
        db.scalar(select(model.id).where(model.user_id == user_id, model.item_id == item_id).limit(1))
        is not None
    )


def item_views(db: Session, item_ids: Iterable[int]) -> list[str]:
    """Every view path that renders one of ``item_ids`` with its counters.

    That is the item pages, the feed, the owners' profiles and the profiles of
    everyone whose saved grid holds one of the items.
    """

    ids = list(dict.fromkeys(item_ids))
    if not ids:
        return []
    owners = db.scalars(select(User.username).join(Item, Item.user_id == User.id).where(Item.id.in_(ids))).all()
    savers = db.scalars(select(User.username).join(Save, Save.user_id == User.id).where(Save.item_id.in_(ids))).all()
    return [
        *(item_path(item_id) for item_id in ids),
        HOME_PATH,
        *(profile_path(username) for username in dict.fromkeys([*owners, *savers])),
    ]


def _toggle_membership(db: Session, model: type[Like] | type[Save], *, user_id: str, item_id: int) -> InteractionState:
    get_item_or_404(db, item_id)

    # Delete-else-insert-or-ignore: concurrent identical toggles cannot trip the unique constraint.
    try:
        removed = db.execute(delete(model).where(model.user_id == user_id, model.item_id == item_id)).rowcount
        if not removed:
            db.execute(insert_or_ignore(db, model).values(user_id=user_id, item_id=item_id))
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to toggle %s on item %s for %s", model.__tablename__, item_id, user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update {model.__tablename__[:-1]}",
        ) from exc

    stale = item_views(db, [item_id])
    if model is Save:
        # An unsave drops the item from the saver's grid
        saver = db.get(User, user_id)
        if saver is not None:
            stale.append(profile_path(saver.username))
    view_cache.invalidate(*stale)
    return InteractionState(
        item_id=item_id,
        active=not removed,
        like_count=count_members(db, Like, item_id),
        save_count=count_members(db, Save, item_id),
    )


def toggle_like(db: Session, *, user_id: str, item_id: int) -> InteractionState:
    """Like ``item_id`` for ``user_id``, or remove the like if it exists."""

    return _toggle_membership(db, Like, user_id=user_id, item_id=item_id)


def toggle_save(db: Session, *, user_id: str, item_id: int) -> InteractionState:
    """Save ``item_id`` for ``user_id``, or remove the save if it exists."""

    return _toggle_membership(db, Save, user_id=user_id, item_id=item_id)


def _serialize_comment(comment: Comment, author: User) -> dict[str, Any]:
    return {
        "id": comment.id,
        "item_id": comment.item_id,
        "user_id": author.id,
        "content": comment.content,
        "created_at": comment.created_at,
        "user": {"id": author.id, "username": author.username, "avatar_url": author.avatar_url},
    }


def list_comments(db: Session, *, item_id: int) -> list[dict[str, Any]]:
    """Comments on ``item_id``, newest first."""

    get_item_or_404(db, item_id)
    stmt = (
        select(Comment, User)
        .join(User, Comment.user_id == User.id)
        .where(Comment.item_id == item_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    )
    return [_serialize_comment(comment, author) for comment, author in db.execute(stmt).all()]


def add_comment(db: Session, *, item_id: int, author: User, content: str) -> dict[str, Any]:
    """Append a comment by ``author`` and return it with the author's public fields."""

    item = get_item_or_404(db, item_id)
    text = (content or "").strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Comment cannot be empty")
    if len(text) > MAX_COMMENT_LENGTH:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Comment is too long")

    comment = Comment(item_id=item.id, user_id=author.id, content=text)
    db.add(comment)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to add comment on item %s", item_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to add comment") from exc

    db.refresh(comment)
    view_cache.invalidate(*item_views(db, [item.id]))
    return _serialize_comment(comment, author)


__all__ = [
    "InteractionState",
    "add_comment",
    "count_members",
    "get_item_or_404",
    "has_membership",
    "item_views",
    "list_comments",
    "toggle_like",
    "toggle_save",
]
