"""
Circles Backend — Profile Service
===================================

What:  Business logic behind /api/users: profile read/update, profile
       picture, stats and user search.
How:   Each operation receives the request's AsyncSession and the already
       authenticated User. Writes are flushed here; get_db_session commits.
Who:   Called by routes/users.py.

Upsert Semantics:
    A user's UserData row is created on first touch: reading the profile,
    updating it, or setting a picture. Nothing else creates it.

Error Handling Strategy:
    Our own exceptions (ValidationError, FileStorageError, ...) propagate
    unchanged. Anything else is logged with the stack trace and wrapped in
    DatabaseError so the client only sees a generic 500.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import CirclesError, DatabaseError, ValidationError
from app.models.user import User
from app.models.user_data import UserData, default_stats
from app.schemas.user import (
    ProfileResponse,
    ProfileUpdateRequest,
    ProfileUpdateResponse,
    SearchResponse,
    StatsResponse,
    UserDataResponse,
    UserProfile,
    UserSearchResult,
    UserStats,
)
from app.services.file_service import file_service

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Helpers
# ══════════════════════════════════════════════════════════════════════════

# Ten tracked fields, ten points each
COMPLETION_POINTS = 10


def calculate_profile_completion(user: User, user_data: UserData) -> int:
    """
    Percentage (0-100) of the tracked profile fields that are filled in.

    Tracked: name, email, phone, date of birth, gender, photo (user photo or
    uploaded picture), bio, location, website, at least one interest.
    """
    filled = [
        user.name,
        user.email,
        user.phone,
        user.date_of_birth,
        user.gender,
        user.photo_url or user_data.profile_picture,
        user_data.bio,
        user_data.location,
        user_data.website,
        user_data.interests,
    ]
    return sum(COMPLETION_POINTS for value in filled if value)


def build_user_profile(user: User) -> UserProfile:
    return UserProfile(
        id=user.id,
        user_id=user.user_id,
        name=user.name,
        email=user.email,
        phone=user.phone,
        date_of_birth=user.date_of_birth,
        gender=user.gender,
        photo_url=user.photo_url,
        registration_complete=bool(user.registration_complete),
    )


def build_user_data(user_data: UserData, user: User) -> UserDataResponse:
    return UserDataResponse(
        id=user_data.id,
        user=build_user_profile(user),
        bio=user_data.bio,
        location=user_data.location,
        website=user_data.website,
        profile_picture=user_data.profile_picture,
        social_links=user_data.social_links or {},
        interests=user_data.interests or [],
        preferences=user_data.preferences or {},
        stats=UserStats.model_validate(user_data.stats or default_stats()),
        profile_completion=user_data.profile_completion or 0,
        created_at=user_data.created_at,
        updated_at=user_data.updated_at,
    )


class ProfileService:
    """
    Business logic layer for profile operations.

    Responsibilities:
        - get_profile():            read, creating UserData on first access
        - update_profile():         split body across User and UserData, upsert
        - set_profile_picture():    picture by URL/data string
        - upload_profile_picture(): picture by multipart upload
        - get_stats():              counters + completion, zeros when absent
        - search_users():           name/email substring search
    """

    async def _find_user_data(self, db: AsyncSession, user: User) -> Optional[UserData]:
        result = await db.execute(
            select(UserData).where(UserData.user_id == user.id)
        )
        return result.scalar_one_or_none()

    async def _get_or_create_user_data(self, db: AsyncSession, user: User) -> UserData:
        user_data = await self._find_user_data(db, user)
        if user_data is None:
            user_data = UserData(
                id=uuid.uuid4(),
                user_id=user.id,
                user=user,
                social_links={},
                interests=[],
                preferences={},
                stats=default_stats(),
            )
            user_data.profile_completion = calculate_profile_completion(user, user_data)
            db.add(user_data)
            await db.flush()
            logger.info("Created profile data for user %s", user.id)
        return user_data

    def _profile_response(
        self, user: User, user_data: UserData, message: Optional[str] = None
    ) -> ProfileResponse:
        """Read responses carry no message; writes say what changed."""
        fields = {
            "user": build_user_profile(user),
            "user_data": build_user_data(user_data, user),
        }
        if message is None:
            return ProfileResponse(**fields)
        return ProfileUpdateResponse(message=message, **fields)

    async def get_profile(self, db: AsyncSession, user: User) -> ProfileResponse:
        """
        Return the caller's user and profile data.

        If the caller has never had profile data, an empty row is created
        first, so this call always succeeds for an authenticated user.
        """
        logger.debug("Get user profile request for user %s", user.id)
        try:
            user_data = await self._get_or_create_user_data(db, user)
            return self._profile_response(user, user_data)
        except CirclesError:
            raise
        except Exception as e:
            logger.error("Get user profile error: %s", str(e), exc_info=True)
            raise DatabaseError(context={"user_id": str(user.id)})

    async def update_profile(
        self, db: AsyncSession, user: User, update: ProfileUpdateRequest
    ) -> ProfileUpdateResponse:
        """
        Apply a partial profile update.

        Fields on User (name, date of birth, gender) change only when the
        body carries a truthy value. bio/location/website change whenever the
        key is present, so clients can clear them. socialLinks, interests and
        preferences replace the stored value when not null.
        """
        sent = update.model_fields_set
        try:
            if update.name:
                user.name = update.name
            if update.date_of_birth:
                user.date_of_birth = update.date_of_birth
            if update.gender:
                user.gender = update.gender

            user_data = await self._get_or_create_user_data(db, user)

            for field in ("bio", "location", "website"):
                if field in sent:
                    setattr(user_data, field, getattr(update, field))
            if update.social_links is not None:
                user_data.social_links = update.social_links
            if update.interests is not None:
                user_data.interests = update.interests
            if update.preferences is not None:
                user_data.preferences = update.preferences

            user_data.profile_completion = calculate_profile_completion(user, user_data)
            await db.flush()
            logger.info("Profile updated for user %s (fields: %s)", user.id, sorted(sent))

            return self._profile_response(
                user, user_data, message="Profile updated successfully"
            )
        except CirclesError:
            raise
        except Exception as e:
            logger.error("Update user profile error: %s", str(e), exc_info=True)
            raise DatabaseError(context={"user_id": str(user.id)})

    async def set_profile_picture(
        self, db: AsyncSession, user: User, profile_picture: Optional[str]
    ) -> ProfileUpdateResponse:
        """
        Point both User.photo_url and UserData.profile_picture at a new image.

        Raises:
            ValidationError: no picture given (→ 400)
        """
        if not profile_picture:
            raise ValidationError(
                message="Profile picture is required",
                field="profilePicture",
            )

        try:
            user.photo_url = profile_picture

            user_data = await self._get_or_create_user_data(db, user)
            user_data.profile_picture = profile_picture
            user_data.profile_completion = calculate_profile_completion(user, user_data)
            await db.flush()
            logger.info("Profile picture updated for user %s", user.id)

            return self._profile_response(
                user, user_data, message="Profile picture updated successfully"
            )
        except CirclesError:
            raise
        except Exception as e:
            logger.error("Upload profile picture error: %s", str(e), exc_info=True)
            raise DatabaseError(context={"user_id": str(user.id)})

    async def upload_profile_picture(
        self,
        db: AsyncSession,
        user: User,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> ProfileUpdateResponse:
        """
        Store an uploaded image and make it the caller's profile picture.

        The stored file is removed again if the profile update fails.
        """
        absolute_path, relative_path = await file_service.validate_and_store(
            filename=filename,
            content=content,
            content_length=content_length,
        )
        try:
            return await self.set_profile_picture(
                db, user, file_service.public_url(relative_path)
            )
        except Exception:
            await file_service.cleanup_file(absolute_path)
            raise

    async def get_stats(self, db: AsyncSession, user: User) -> StatsResponse:
        """Counters and profile completion; zeros if no profile data exists yet."""
        try:
            user_data = await self._find_user_data(db, user)
            if user_data is None:
                return StatsResponse(stats=UserStats(), profile_completion=0)

            return StatsResponse(
                stats=UserStats.model_validate(user_data.stats or default_stats()),
                profile_completion=user_data.profile_completion or 0,
            )
        except Exception as e:
            logger.error("Get user stats error: %s", str(e), exc_info=True)
            raise DatabaseError(context={"user_id": str(user.id)})

    async def search_users(
        self, db: AsyncSession, user: User, query: Optional[str]
    ) -> SearchResponse:
        """
        Case-insensitive substring search over name and email.

        The caller is never included. The query is matched literally, so
        LIKE wildcards typed by the user are escaped.

        Raises:
            ValidationError: query missing or shorter than search_min_length
        """
        if not query or len(query) < settings.search_min_length:
            raise ValidationError(
                message=(
                    f"Search query must be at least "
                    f"{settings.search_min_length} characters"
                ),
                field="query",
            )

        pattern = f"%{escape_like(query)}%"
        try:
            result = await db.execute(
                select(User)
                .where(
                    or_(
                        User.name.ilike(pattern, escape="\\"),
                        User.email.ilike(pattern, escape="\\"),
                    ),
                    User.id != user.id,
                )
                .order_by(User.name)
                .limit(settings.search_limit)
            )
            users = list(result.scalars().all())
        except Exception as e:
            logger.error("Search users error: %s", str(e), exc_info=True)
            raise DatabaseError(context={"query": query})

        return SearchResponse(
            users=[
                UserSearchResult(
                    id=found.id,
                    name=found.name,
                    email=found.email,
                    photo_url=found.photo_url,
                )
                for found in users
            ]
        )


def escape_like(value: str) -> str:
    """Escape LIKE metacharacters so user input matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# ── Singleton Instance ────────────────────────────────────────────────────
profile_service = ProfileService()
