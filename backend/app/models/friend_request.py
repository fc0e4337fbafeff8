"""
Circles Backend — FriendRequest SQLAlchemy Model
==================================================

What:  ORM model for the `friend_requests` table.
How:   A directed edge from sender to recipient with a status. An accepted
       request is the friendship itself; there is no separate friends table.

Lifecycle:
    pending → accepted | rejected   (only the recipient may respond)

Query Patterns:
    - Duplicate check: (from_user_id, to_user_id, status='pending')
    - Friends of X:    status='accepted' AND (from_user_id=X OR to_user_id=X)
    - Inbox of X:      to_user_id=X AND status='pending'
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.user import User

STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"
STATUS_REJECTED = "rejected"


class FriendRequest(Base):
    """A friend request between two users."""

    __tablename__ = "friend_requests"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    from_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    to_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    message: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        server_default=text("''"),
    )

    # Values: 'pending', 'accepted', 'rejected'
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=STATUS_PENDING,
        server_default=text("'pending'"),
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

    from_user: Mapped[User] = relationship(User, foreign_keys=[from_user_id], lazy="joined")
    to_user: Mapped[User] = relationship(User, foreign_keys=[to_user_id], lazy="joined")

    __table_args__ = (
        Index("idx_friend_requests_from_status", "from_user_id", "status"),
        Index("idx_friend_requests_to_status", "to_user_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<FriendRequest(id={self.id}, from={self.from_user_id}, "
            f"to={self.to_user_id}, status='{self.status}')>"
        )
