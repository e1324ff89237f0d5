"""SQLAlchemy ORM model for application users."""
from __future__ import annotations

import enum

from sqlalchemy import Column, Enum, String
from sqlalchemy.orm import relationship

from slika.database import Base
from .base import TimestampMixin


class AccountKind(str, enum.Enum):
    """Whether a user row belongs to a real identity or is a seeded stand-in."""

    MEMBER = "member"
    PLACEHOLDER = "placeholder"


class User(TimestampMixin, Base):
    __tablename__ = "users"

    # Stable identifier issued by the identity provider
    id = Column(String(191), primary_key=True)
    username = Column(String(150), unique=True, nullable=False, index=True)
    display_name = Column(String(150), nullable=True)
    bio = Column(String(500), nullable=True)
    avatar_url = Column(String(1024), nullable=True)
    email = Column(String(255), nullable=True)
    account_kind = Column(
        Enum(AccountKind, native_enum=False, length=16, values_callable=lambda kinds: [k.value for k in kinds]),
        nullable=False,
        default=AccountKind.MEMBER,
        server_default=AccountKind.MEMBER.value,
    )

    items = relationship("Item", back_populates="owner", passive_deletes=True)
    comments = relationship("Comment", back_populates="author", passive_deletes=True)

    @property
    def is_placeholder(self) -> bool:
        return self.account_kind == AccountKind.PLACEHOLDER


__all__ = ["AccountKind", "User"]
