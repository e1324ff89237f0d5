"""Publishing items and reading the feed, search results and item pages."""
from __future__ import annotations

import logging
from typing import Any, Iterable

from fastapi import HTTPException, UploadFile, status
from sqlalchemy import Select, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..models import Comment, Item, Like, MediaType, Save, User
from .interaction_service import get_item_or_404, has_membership, list_comments
from .storage_service import StorageConfigurationError, StorageUploadError, media_type_for, upload_file
from .view_cache import HOME_PATH, profile_path, view_cache

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 2000


def resolve_limit(requested: int | None, default: int) -> int:
    """Clamp a caller-requested page size to ``1..default``."""

    if requested is None:
        return default
    return max(1, min(int(requested), default))


def _listing_statement() -> Select:
    like_count = select(func.count(Like.id)).where(Like.item_id == Item.id).correlate(Item).scalar_subquery()
    save_count = select(func.count(Save.id)).where(Save.item_id == Item.id).correlate(Item).scalar_subquery()
    comment_count = select(func.count(Comment.id)).where(Comment.item_id == Item.id).correlate(Item).scalar_subquery()
    return (
        select(
            Item,
            User.username.label("username"),
            User.avatar_url.label("avatar_url"),
            like_count.label("like_count"),
            save_count.label("save_count"),
            comment_count.label("comment_count"),
        )
        .join(User, Item.user_id == User.id)
    )


def _serialize_rows(rows: Iterable[Any]) -> list[dict[str, Any]]:
    records: list[dict[str, Any]] = []
    for item, username, avatar_url, like_count, save_count, comment_count in rows:
        records.append(
            {
                "id": item.id,
                "title": item.title,
                "description": item.description,
                "media_url": item.media_url,
                "media_type": item.media_type,
                "user_id": item.user_id,
                "created_at": item.created_at,
                "username": username,
                "avatar_url": avatar_url,
                "like_count": int(like_count or 0),
                "save_count": int(save_count or 0),
                "comment_count": int(comment_count or 0),
            }
        )
    return records


def _newest_first(statement: Select) -> Select:
    return statement.order_by(Item.created_at.desc(), Item.id.desc())


def list_feed(db: Session, *, limit: int | None = None) -> list[dict[str, Any]]:
    """Most recent items, one flat page."""

    page_size = resolve_limit(limit, get_settings().feed_page_size)
    statement = _newest_first(_listing_statement()).limit(page_size)
    return _serialize_rows(db.execute(statement).all())


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def search_items(
    db: Session,
    *,
    query: str | None = None,
    media_types: Iterable[MediaType] | None = None,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    """Items whose title or description contains ``query`` and whose type is in ``media_types``."""

    page_size = resolve_limit(limit, get_settings().search_page_size)
    statement = _listing_statement()

    text = (query or "").strip()
    if text:
        pattern = f"%{_escape_like(text)}%"
        statement = statement.where(
            or_(Item.title.ilike(pattern, escape="\\"), Item.description.ilike(pattern, escape="\\"))
        )

    types = list(dict.fromkeys(media_types or []))
    if types:
        statement = statement.where(Item.media_type.in_(types))

    statement = _newest_first(statement).limit(page_size)
    return _serialize_rows(db.execute(statement).all())


def list_items_by_owner(db: Session, *, user_id: str, limit: int | None = None) -> list[dict[str, Any]]:
    page_size = resolve_limit(limit, get_settings().feed_page_size)
    statement = _newest_first(_listing_statement().where(Item.user_id == user_id)).limit(page_size)
    return _serialize_rows(db.execute(statement).all())


def list_saved_items(db: Session, *, user_id: str, limit: int | None = None) -> list[dict[str, Any]]:
    """Items ``user_id`` saved, most recently saved first."""

    page_size = resolve_limit(limit, get_settings().feed_page_size)
    statement = (
        _listing_statement()
        .join(Save, Save.item_id == Item.id)
        .where(Save.user_id == user_id)
        .order_by(Save.created_at.desc(), Save.id.desc())
        .limit(page_size)
    )
    return _serialize_rows(db.execute(statement).all())


def get_item_detail(db: Session, *, item_id: int) -> dict[str, Any]:
    """Public view of one item: counters, author and the comment thread."""

    get_item_or_404(db, item_id)
    row = db.execute(_listing_statement().where(Item.id == item_id)).one()
    record = _serialize_rows([row])[0]
    record["comments"] = list_comments(db, item_id=item_id)
    return record


def get_viewer_state(db: Session, *, item_id: int, viewer_id: str | None) -> dict[str, bool]:
    if viewer_id is None:
        return {"viewer_has_liked": False, "viewer_has_saved": False}
    return {
        "viewer_has_liked": has_membership(db, Like, user_id=viewer_id, item_id=item_id),
        "viewer_has_saved": has_membership(db, Save, user_id=viewer_id, item_id=item_id),
    }


async def _store_upload(file: UploadFile) -> tuple[str, MediaType]:
    try:
        result = await upload_file(file)
    except StorageConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    except StorageUploadError as exc:  # pragma: no cover - network bound
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return result.url, result.media_type


async def create_item(
    db: Session,
    *,
    owner: User,
    title: str,
    description: str | None = None,
    media_url: str | None = None,
    media_type: MediaType | None = None,
    file: UploadFile | None = None,
) -> dict[str, Any]:
    """Publish an item for ``owner`` from an upload or an already stored media URL."""

    clean_title = (title or "").strip()
    if not clean_title:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Title cannot be empty")
    if len(clean_title) > MAX_TITLE_LENGTH:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Title is too long")
    clean_description = (description or "").strip() or None
    if clean_description and len(clean_description) > MAX_DESCRIPTION_LENGTH:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Description is too long")

    clean_url = (media_url or "").strip() or None
    if file is not None and clean_url is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide either a file upload or a media_url, not both",
        )
    if file is None and clean_url is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A file upload or media_url is required")

    if file is not None:
        clean_url, detected_type = await _store_upload(file)
    else:
        detected_type = media_type_for(None, clean_url)

    item = Item(
        title=clean_title,
        description=clean_description,
        media_url=clean_url,
        media_type=media_type or detected_type,
        user_id=owner.id,
    )
    db.add(item)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to persist item for user %s", owner.id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create item") from exc

    db.refresh(item)
    view_cache.invalidate(HOME_PATH, profile_path(owner.username))
    return {
        "id": item.id,
        "title": item.title,
        "description": item.description,
        "media_url": item.media_url,
        "media_type": item.media_type,
        "user_id": owner.id,
        "created_at": item.created_at,
        "username": owner.username,
        "avatar_url": owner.avatar_url,
        "like_count": 0,
        "save_count": 0,
        "comment_count": 0,
    }


__all__ = [
    "create_item",
    "get_item_detail",
    "get_viewer_state",
    "list_feed",
    "list_items_by_owner",
    "list_saved_items",
    "resolve_limit",
    "search_items",
]
