"""Profile API routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import ProfileResponse, ProfileUpdateRequest, UserSummary
from ..services import (
    get_acting_user,
    get_optional_viewer_id,
    get_profile_page,
    profile_path,
    update_profile,
    view_cache,
)
from ..services.follow_service import is_following

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/me", response_model=UserSummary)
async def my_profile(current_user: User = Depends(get_acting_user)) -> UserSummary:
    return UserSummary.model_validate(current_user)


@router.put("/me", response_model=UserSummary)
async def update_my_profile(
    payload: ProfileUpdateRequest,
    current_user: User = Depends(get_acting_user),
    db: Session = Depends(get_session),
) -> UserSummary:
    updated = await update_profile(
        db,
        user=current_user,
        display_name=payload.display_name,
        username=payload.username,
        bio=payload.bio,
    )
    return UserSummary.model_validate(updated)


@router.get("/{username}", response_model=ProfileResponse)
async def retrieve_profile(
    username: str,
    db: Session = Depends(get_session),
    viewer_id: str | None = Depends(get_optional_viewer_id),
) -> ProfileResponse:
    """Profile page data: counts plus the created and saved item grids."""

    public = view_cache.get_or_build(
        profile_path(username),
        lambda: ProfileResponse.model_validate(get_profile_page(db, username)),
    )
    following = False
    if viewer_id is not None and viewer_id != public.id:
        following = is_following(db, follower_id=viewer_id, following_id=public.id)
    return public.model_copy(update={"is_following": following})


__all__ = ["router"]
