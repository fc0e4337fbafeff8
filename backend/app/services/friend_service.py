"""
Circles Backend — Friend Service
==================================

What:  Business logic behind /api/friends: suggestions, friend requests,
       friend list, and accepting/rejecting incoming requests.
How:   Friendships are accepted FriendRequest rows. Every operation is one
       to three queries against the request's AsyncSession; writes are
       flushed here and committed by get_db_session.
Who:   Called by routes/friends.py.

Suggestion Flow:
    ┌────────────┐    ┌────────────────────┐    ┌──────────────────┐
    │  Caller's  │───▶│ Same birth year,   │───▶│ Mutual friend    │
    │  friends   │    │ not self/friends   │    │ counts per match │
    └────────────┘    └────────────────────┘    └──────────────────┘
"""

import logging
import uuid
from collections import Counter
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import CirclesError, DatabaseError, NotFoundError, ValidationError
from app.models.friend_request import (
    STATUS_ACCEPTED,
    STATUS_PENDING,
    STATUS_REJECTED,
    FriendRequest,
)
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.friend import (
    Friend,
    FriendSuggestion,
    FriendSuggestionsResponse,
    FriendsResponse,
    IncomingFriendRequest,
    IncomingRequestsResponse,
)

logger = logging.getLogger(__name__)


def describe_presence(last_active_at: Optional[datetime], now: Optional[datetime] = None) -> str:
    """
    Human-readable presence label for a friend.

    < 5 min: "Active now"; < 1 h: "Active 12m ago"; < 24 h: "Active 3h ago";
    < 48 h: "Active yesterday"; older: "Active 4d ago"; never: "Offline".
    """
    if last_active_at is None:
        return "Offline"

    now = now or datetime.now(timezone.utc)
    if last_active_at.tzinfo is None:
        # SQLite hands back naive datetimes; stored values are UTC
        last_active_at = last_active_at.replace(tzinfo=timezone.utc)

    minutes = max(int((now - last_active_at).total_seconds() // 60), 0)
    if minutes < 5:
        return "Active now"
    if minutes < 60:
        return f"Active {minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"Active {hours}h ago"
    if hours < 48:
        return "Active yesterday"
    return f"Active {hours // 24}d ago"


def mutual_label(count: int) -> str:
    return f"{count} mutual friends"


def _other_side(user_id: uuid.UUID, from_user_id: uuid.UUID, to_user_id: uuid.UUID) -> uuid.UUID:
    return to_user_id if from_user_id == user_id else from_user_id


def _build_friend(user: User, now: Optional[datetime] = None) -> Friend:
    return Friend(
        id=user.id,
        name=user.name,
        email=user.email,
        user_id=user.user_id,
        photo_url=user.photo_url,
        status=describe_presence(user.last_active_at, now),
    )


class FriendService:
    """
    Business logic layer for friend operations.

    Error Handling Strategy:
        Rule violations raise ValidationError / NotFoundError directly.
        Unexpected failures are logged and wrapped in DatabaseError.
    """

    async def _friend_ids(self, db: AsyncSession, user_id: uuid.UUID) -> Set[uuid.UUID]:
        """IDs of everyone with an accepted request to or from `user_id`."""
        result = await db.execute(
            select(FriendRequest.from_user_id, FriendRequest.to_user_id).where(
                FriendRequest.status == STATUS_ACCEPTED,
                or_(
                    FriendRequest.from_user_id == user_id,
                    FriendRequest.to_user_id == user_id,
                ),
            )
        )
        return {
            _other_side(user_id, from_id, to_id)
            for from_id, to_id in result.all()
        }

    async def _mutual_counts(
        self,
        db: AsyncSession,
        candidate_ids: Iterable[uuid.UUID],
        friend_ids: Set[uuid.UUID],
    ) -> Dict[uuid.UUID, int]:
        """How many of `friend_ids` each candidate is also friends with."""
        candidates = list(candidate_ids)
        if not candidates or not friend_ids:
            return {}

        result = await db.execute(
            select(FriendRequest.from_user_id, FriendRequest.to_user_id).where(
                FriendRequest.status == STATUS_ACCEPTED,
                or_(
                    and_(
                        FriendRequest.from_user_id.in_(candidates),
                        FriendRequest.to_user_id.in_(friend_ids),
                    ),
                    and_(
                        FriendRequest.to_user_id.in_(candidates),
                        FriendRequest.from_user_id.in_(friend_ids),
                    ),
                ),
            )
        )

        # A pair can have accepted rows in both directions; count it once
        candidate_set = set(candidates)
        shared: Set[Tuple[uuid.UUID, uuid.UUID]] = set()
        for from_id, to_id in result.all():
            if from_id in candidate_set and to_id in friend_ids:
                shared.add((from_id, to_id))
            if to_id in candidate_set and from_id in friend_ids:
                shared.add((to_id, from_id))
        return dict(Counter(candidate for candidate, _ in shared))

    async def get_suggestions(self, db: AsyncSession, user: User) -> FriendSuggestionsResponse:
        """
        Suggest people born in the same calendar year as the caller.

        Excludes the caller and existing friends, capped at
        settings.suggestion_limit. Each suggestion carries how many friends
        it shares with the caller.

        Raises:
            ValidationError: the caller has no date of birth (→ 400)
        """
        if not user.date_of_birth:
            raise ValidationError(message="User date of birth not found", field="dateOfBirth")

        birth_year = user.date_of_birth.year
        try:
            friend_ids = await self._friend_ids(db, user.id)

            query = select(User).where(
                User.date_of_birth >= date(birth_year, 1, 1),
                User.date_of_birth < date(birth_year + 1, 1, 1),
                User.id != user.id,
            )
            if friend_ids:
                query = query.where(User.id.notin_(friend_ids))
            query = query.order_by(User.name).limit(settings.suggestion_limit)

            result = await db.execute(query)
            candidates = list(result.scalars().all())

            mutual = await self._mutual_counts(db, (c.id for c in candidates), friend_ids)
        except Exception as e:
            logger.error("Get friend suggestions error: %s", str(e), exc_info=True)
            raise DatabaseError(context={"user_id": str(user.id)})

        logger.debug("Found %d suggestions for user %s", len(candidates), user.id)
        return FriendSuggestionsResponse(
            suggestions=[
                FriendSuggestion(
                    id=candidate.id,
                    name=candidate.name,
                    email=candidate.email,
                    user_id=candidate.user_id,
                    photo_url=candidate.photo_url,
                    date_of_birth=candidate.date_of_birth,
                    status=mutual_label(mutual.get(candidate.id, 0)),
                )
                for candidate in candidates
            ]
        )

    async def send_request(
        self,
        db: AsyncSession,
        user: User,
        to_user_id: uuid.UUID,
        message: Optional[str] = None,
    ) -> MessageResponse:
        """
        Create a pending friend request from the caller to `to_user_id`.

        Raises:
            ValidationError: request to self, a pending request from the
                             caller already exists, or already friends
            NotFoundError:   no such recipient
        """
        if to_user_id == user.id:
            raise ValidationError(
                message="You cannot send a friend request to yourself",
                field="toUserId",
            )

        try:
            recipient = await db.get(User, to_user_id)
            if recipient is None:
                raise NotFoundError(resource="user", resource_id=str(to_user_id))

            result = await db.execute(
                select(FriendRequest).where(
                    or_(
                        and_(
                            FriendRequest.from_user_id == user.id,
                            FriendRequest.to_user_id == to_user_id,
                        ),
                        and_(
                            FriendRequest.from_user_id == to_user_id,
                            FriendRequest.to_user_id == user.id,
                        ),
                    ),
                    FriendRequest.status.in_([STATUS_PENDING, STATUS_ACCEPTED]),
                )
            )
            existing: List[FriendRequest] = list(result.scalars().all())

            if any(r.status == STATUS_ACCEPTED for r in existing):
                raise ValidationError(
                    message="You are already friends with this user",
                    field="toUserId",
                )
            if any(
                r.status == STATUS_PENDING and r.from_user_id == user.id
                for r in existing
            ):
                raise ValidationError(message="Friend request already sent", field="toUserId")

            friend_request = FriendRequest(
                id=uuid.uuid4(),
                from_user_id=user.id,
                to_user_id=to_user_id,
                message=message or "",
                status=STATUS_PENDING,
            )
            db.add(friend_request)
            await db.flush()
        except CirclesError:
            raise
        except Exception as e:
            logger.error("Send friend request error: %s", str(e), exc_info=True)
            raise DatabaseError(context={"to_user_id": str(to_user_id)})

        logger.info("Friend request %s → %s created", user.id, to_user_id)
        return MessageResponse(message="Friend request sent successfully")

    async def list_friends(
        self, db: AsyncSession, user: User, now: Optional[datetime] = None
    ) -> FriendsResponse:
        """Everyone the caller shares an accepted request with, with presence."""
        try:
            friend_ids = await self._friend_ids(db, user.id)
            if not friend_ids:
                return FriendsResponse(friends=[])

            result = await db.execute(
                select(User).where(User.id.in_(friend_ids)).order_by(User.name)
            )
            friends = list(result.scalars().all())
        except Exception as e:
            logger.error("Get friends error: %s", str(e), exc_info=True)
            raise DatabaseError(context={"user_id": str(user.id)})

        return FriendsResponse(friends=[_build_friend(f, now) for f in friends])

    async def list_incoming(self, db: AsyncSession, user: User) -> IncomingRequestsResponse:
        """Pending requests addressed to the caller, newest first."""
        try:
            result = await db.execute(
                select(FriendRequest)
                .where(
                    FriendRequest.to_user_id == user.id,
                    FriendRequest.status == STATUS_PENDING,
                )
                .order_by(FriendRequest.created_at.desc())
            )
            pending = list(result.scalars().unique().all())
        except Exception as e:
            logger.error("Get friend requests error: %s", str(e), exc_info=True)
            raise DatabaseError(context={"user_id": str(user.id)})

        return IncomingRequestsResponse(
            requests=[
                IncomingFriendRequest(
                    id=request.id,
                    message=request.message or "",
                    status=request.status,
                    created_at=request.created_at,
                    from_user=_build_friend(request.from_user),
                )
                for request in pending
            ]
        )

    async def _close_reverse_requests(
        self, db: AsyncSession, friend_request: FriendRequest
    ) -> None:
        """
        Reject the recipient's own pending request back to the sender.

        Raises ValidationError if the pair is already linked by an accepted row.
        """
        result = await db.execute(
            select(FriendRequest).where(
                or_(
                    and_(
                        FriendRequest.from_user_id == friend_request.from_user_id,
                        FriendRequest.to_user_id == friend_request.to_user_id,
                    ),
                    and_(
                        FriendRequest.from_user_id == friend_request.to_user_id,
                        FriendRequest.to_user_id == friend_request.from_user_id,
                    ),
                ),
                FriendRequest.status.in_([STATUS_PENDING, STATUS_ACCEPTED]),
                FriendRequest.id != friend_request.id,
            )
        )
        others: List[FriendRequest] = list(result.scalars().all())

        if any(r.status == STATUS_ACCEPTED for r in others):
            raise ValidationError(
                message="You are already friends with this user",
                context={"request_id": str(friend_request.id)},
            )
        for other in others:
            other.status = STATUS_REJECTED
            logger.debug("Closed reverse friend request %s", other.id)

    async def respond(
        self,
        db: AsyncSession,
        user: User,
        request_id: uuid.UUID,
        accept: bool,
    ) -> MessageResponse:
        """
        Accept or reject a pending request addressed to the caller.

        Accepting also closes a pending request the caller sent the other
        way, so a pair never holds more than one accepted row.

        Raises:
            NotFoundError:   no such request, or it is not addressed to the caller
            ValidationError: the request was already answered, or the pair
                             are already friends
        """
        try:
            friend_request = await db.get(FriendRequest, request_id)
            if friend_request is None or friend_request.to_user_id != user.id:
                raise NotFoundError(resource="friend request", resource_id=str(request_id))

            if friend_request.status != STATUS_PENDING:
                raise ValidationError(
                    message=f"Friend request already {friend_request.status}",
                    context={"status": friend_request.status},
                )

            if accept:
                await self._close_reverse_requests(db, friend_request)

            friend_request.status = STATUS_ACCEPTED if accept else STATUS_REJECTED
            await db.flush()
        except CirclesError:
            raise
        except Exception as e:
            logger.error("Respond to friend request error: %s", str(e), exc_info=True)
            raise DatabaseError(context={"request_id": str(request_id)})

        logger.info("Friend request %s %s by %s", request_id, friend_request.status, user.id)
        return MessageResponse(message=f"Friend request {friend_request.status}")


# ── Singleton Instance ────────────────────────────────────────────────────
friend_service = FriendService()
