"""
Circles Backend — User SQLAlchemy Model
=========================================

What:  ORM model for the `users` table.
Who:   Rows are created by the account service (registration); this service
       reads them for auth, search and suggestions, and updates the basic
       profile fields (name, date of birth, gender, photo).

Index Notes:
    - email is unique and indexed (search, login lookups)
    - date_of_birth is indexed for the same-birth-year suggestion range scan
"""

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class User(Base):
    """An account holder, as exposed to the social features."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Public handle chosen at registration (wire name: userId)
    user_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        unique=True,
        nullable=True,
    )

    name: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    # Wire name: photoURL
    photo_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)

    registration_complete: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    # Touched by the auth dependency on every authenticated request
    last_active_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_users_date_of_birth", "date_of_birth"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
