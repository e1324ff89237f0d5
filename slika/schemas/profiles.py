"""Schemas for profile endpoints."""
from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .items import ItemResponse

_USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    display_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    created_at: datetime


class ProfileResponse(UserSummary):
    followers_count: int = 0
    following_count: int = 0
    is_following: bool = False
    created_items: list[ItemResponse] = Field(default_factory=list)
    saved_items: list[ItemResponse] = Field(default_factory=list)


class ProfileUpdateRequest(BaseModel):
    display_name: str = Field(..., max_length=150)
    username: str = Field(..., min_length=1, max_length=64)
    bio: str = Field(default="", max_length=500)

    @field_validator("username")
    def clean_username(cls, v: str) -> str:
        value = v.strip()
        if not value or not _USERNAME_PATTERN.match(value):
            raise ValueError("Username may only contain letters, digits, '.', '_' and '-'")
        return value


__all__ = ["UserSummary", "ProfileResponse", "ProfileUpdateRequest"]
