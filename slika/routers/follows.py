"""Follow management API routes."""
from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import FollowActionResponse, FollowStatsResponse
from ..services import get_acting_user, get_follow_stats, get_optional_viewer_id, toggle_follow

router = APIRouter(prefix="/follows", tags=["follows"])


@router.post("/{target_id}", response_model=FollowActionResponse)
async def toggle_follow_endpoint(
    target_id: str,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_acting_user),
) -> FollowActionResponse:
    following = toggle_follow(db, follower_id=current_user.id, target_id=target_id)
    stats = get_follow_stats(db, user_id=target_id, viewer_id=current_user.id)
    payload = asdict(stats)
    payload["status"] = "followed" if following else "unfollowed"
    return FollowActionResponse(**payload)


@router.get("/stats/{user_id}", response_model=FollowStatsResponse)
async def follow_stats_endpoint(
    user_id: str,
    db: Session = Depends(get_session),
    viewer_id: str | None = Depends(get_optional_viewer_id),
) -> FollowStatsResponse:
    stats = get_follow_stats(db, user_id=user_id, viewer_id=viewer_id)
    return FollowStatsResponse(**asdict(stats))


__all__ = ["router"]
