"""Identity resolution and lazy user provisioning.

Every mutating endpoint acts on behalf of a durable ``User`` row. The row is
created from the identity provider's principal the first time that principal
interacts with the API. When the principal's username is held by a
placeholder account (seeded content not yet claimed by a real person), the
placeholder is renamed out of the way, its content is moved to the real
user and the placeholder is deleted, all in one transaction.
"""
from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..clients.identity_provider import IdentityProfile, IdentityProviderError, fetch_user
from ..config import get_settings
from ..database import get_session, insert_or_ignore
from ..models import AccountKind, Comment, Follow, Item, Like, Save, User
from ..security import MissingSecretError, require_setting
from .interaction_service import item_views
from .view_cache import HOME_PATH, profile_path, view_cache

logger = logging.getLogger(__name__)

_security = HTTPBearer(auto_error=False)
_WHITESPACE = re.compile(r"\s+")


@dataclass(slots=True)
class ReconcileResult:
    user: User
    created: bool = False
    updated: bool = False
    merged_placeholder_id: str | None = None

    @property
    def wrote(self) -> bool:
        return self.created or self.updated or self.merged_placeholder_id is not None


def derive_username(profile: IdentityProfile) -> str:
    """Pick the local username for ``profile``.

    The provider username wins; otherwise the lowercased first name with
    whitespace runs collapsed to ``_``; otherwise ``user_`` plus the last six
    characters of the provider id.
    """

    if profile.username and profile.username.strip():
        return profile.username.strip()
    first_name = (profile.first_name or "").strip()
    if first_name:
        return _WHITESPACE.sub("_", first_name.lower())
    return f"user_{profile.user_id[-6:]}"


def _retired_username(username: str) -> str:
    return f"{username}_old_{int(time.time() * 1000)}"


def _absorb_placeholder(db: Session, *, placeholder_id: str, user_id: str) -> None:
    """Move everything the placeholder owns to ``user_id`` and delete the placeholder."""

    db.execute(update(Item).where(Item.user_id == placeholder_id).values(user_id=user_id))
    db.execute(update(Comment).where(Comment.user_id == placeholder_id).values(user_id=user_id))

    # Likes and saves are unique per (user, item): the real user may already hold some.
    for model in (Like, Save):
        item_ids = db.scalars(select(model.item_id).where(model.user_id == placeholder_id)).all()
        if item_ids:
            db.execute(
                insert_or_ignore(db, model).values([{"user_id": user_id, "item_id": item_id} for item_id in item_ids])
            )
        db.execute(delete(model).where(model.user_id == placeholder_id))

    following = db.scalars(select(Follow.following_id).where(Follow.follower_id == placeholder_id)).all()
    followers = db.scalars(select(Follow.follower_id).where(Follow.following_id == placeholder_id)).all()
    edges = [{"follower_id": user_id, "following_id": target} for target in following if target != user_id]
    edges += [{"follower_id": source, "following_id": user_id} for source in followers if source != user_id]
    if edges:
        db.execute(insert_or_ignore(db, Follow).values(edges))
    db.execute(
        delete(Follow).where((Follow.follower_id == placeholder_id) | (Follow.following_id == placeholder_id))
    )

    db.execute(delete(User).where(User.id == placeholder_id))


def _invalidate_identity_views(db: Session, *, user_id: str, usernames: list[str | None]) -> None:
    """Drop cached views showing the user's name, avatar or (newly absorbed) content."""

    owned = db.scalars(select(Item.id).where(Item.user_id == user_id)).all()
    commented = db.scalars(select(Comment.item_id).where(Comment.user_id == user_id)).all()
    stale = item_views(db, [*owned, *commented])
    stale += [profile_path(name) for name in usernames if name]
    view_cache.invalidate(HOME_PATH, *stale)


def reconcile_identity(db: Session, principal: IdentityProfile) -> ReconcileResult:
    """Guarantee a ``User`` row for ``principal`` holding its derived username."""

    username = derive_username(principal)
    placeholder_id: str | None = None

    try:
        holder = db.scalar(select(User).where(User.username == username))
        if holder is not None and holder.id != principal.user_id:
            if not holder.is_placeholder:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username is already taken.")
            placeholder_id = holder.id
            holder.username = _retired_username(holder.username)
            # The rename has to reach the database before the username is claimed.
            db.flush()

        result = ReconcileResult(user=db.get(User, principal.user_id))
        previous_username = result.user.username if result.user is not None else None
        if result.user is None:
            result.user = User(
                id=principal.user_id,
                username=username,
                display_name=principal.full_name,
                email=principal.email,
                avatar_url=principal.image_url,
                account_kind=AccountKind.MEMBER,
            )
            db.add(result.user)
            result.created = True
        else:
            changes = {"username": username, "email": principal.email, "avatar_url": principal.image_url}
            for field, value in changes.items():
                if getattr(result.user, field) != value:
                    setattr(result.user, field, value)
                    result.updated = True
            if result.user.is_placeholder:
                result.user.account_kind = AccountKind.MEMBER
                result.updated = True

        if placeholder_id is not None:
            db.flush()
            _absorb_placeholder(db, placeholder_id=placeholder_id, user_id=principal.user_id)
            result.merged_placeholder_id = placeholder_id

        if result.wrote:
            db.commit()
    except HTTPException:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to reconcile identity %s", principal.user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to synchronise user"
        ) from exc

    if result.wrote:
        _invalidate_identity_views(db, user_id=principal.user_id, usernames=[previous_username, username])

    if result.merged_placeholder_id is not None:
        logger.info(
            "Merged placeholder %s into user %s (username=%s)",
            result.merged_placeholder_id,
            principal.user_id,
            username,
        )
    elif result.created:
        logger.info("Provisioned user %s (username=%s)", principal.user_id, username)

    return result


@lru_cache(maxsize=1)
def _get_verification_key() -> str:
    try:
        key = require_setting(get_settings().identity_jwt_key, "IDENTITY_JWT_KEY")
    except MissingSecretError as exc:
        raise RuntimeError(str(exc)) from exc
    # PEM keys are commonly stored in env files with escaped newlines.
    return key.replace("\\n", "\n")


def decode_session_token(token: str) -> str:
    """Verify a provider-issued session token and return its subject (the user id)."""

    try:
        payload = jwt.decode(
            token,
            _get_verification_key(),
            algorithms=[get_settings().identity_jwt_algorithm],
            options={"verify_aud": False},
        )
    except JWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session token") from exc

    subject = payload.get("sub")
    if not subject or not isinstance(subject, str):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session token payload")
    return subject


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
) -> IdentityProfile:
    """Resolve the authenticated principal from the bearer session token."""

    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    user_id = decode_session_token(credentials.credentials)
    try:
        return await fetch_user(user_id)
    except IdentityProviderError as exc:
        logger.warning("Could not load identity %s from provider: %s", user_id, exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized") from exc


async def get_optional_viewer_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
) -> str | None:
    """Return the viewer's user id when a valid session token accompanies a read."""

    if not credentials or credentials.scheme.lower() != "bearer":
        return None
    try:
        return decode_session_token(credentials.credentials)
    except HTTPException:
        return None


async def get_acting_user(
    principal: IdentityProfile = Depends(get_current_principal),
    db: Session = Depends(get_session),
) -> User:
    """Dependency returning the reconciled ``User`` performing a mutation."""

    return reconcile_identity(db, principal).user


__all__ = [
    "ReconcileResult",
    "decode_session_token",
    "derive_username",
    "get_acting_user",
    "get_current_principal",
    "get_optional_viewer_id",
    "reconcile_identity",
]
