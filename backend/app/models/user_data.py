"""
Circles Backend — UserData SQLAlchemy Model
=============================================

What:  ORM model for the `user_data` table: the extended social profile that
       sits next to a User (bio, links, interests, counters).
How:   Exactly one row per user, enforced by a unique foreign key. Rows are
       created lazily the first time a profile is read or written.

The owning User is loaded eagerly (lazy="joined") because every response
that includes userData also includes the populated user.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.user import User


def default_stats() -> Dict[str, int]:
    """Fresh counters for a profile with no activity."""
    return {
        "postsCount": 0,
        "followersCount": 0,
        "followingCount": 0,
        "likesCount": 0,
    }


class UserData(Base):
    """Extended profile data for a single user."""

    __tablename__ = "user_data"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    profile_picture: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # {"twitter": "...", "instagram": "..."}
    social_links: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    interests: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    preferences: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    stats: Mapped[Dict[str, int]] = mapped_column(JSON, nullable=False, default=default_stats)

    # 0-100, recomputed on every write by the profile service
    profile_completion: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    user: Mapped[User] = relationship(User, lazy="joined")

    def __repr__(self) -> str:
        return f"<UserData(user_id={self.user_id}, completion={self.profile_completion})>"
