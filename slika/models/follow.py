"""SQLAlchemy ORM model for directed follow edges."""
from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, String
from sqlalchemy.sql import func

from slika.database import Base


class Follow(Base):
    __tablename__ = "follows"

    follower_id = Column(String(191), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    following_id = Column(String(191), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (CheckConstraint("follower_id <> following_id", name="ck_follows_not_self"),)


__all__ = ["Follow"]
