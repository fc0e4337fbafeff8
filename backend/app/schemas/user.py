"""
Circles Backend — User & Profile Schemas
==========================================

What:  Request bodies and response models for the /api/users routes.
Who:   Built by ProfileService, returned by routes/users.py.

Projections:
    UserProfile       full user (profile endpoints)
    UserSearchResult  _id, name, email, photoURL (search)
"""

import uuid
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from app.schemas.common import CamelModel


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserProfile(CamelModel):
    """The populated user, as returned next to userData."""
    id: uuid.UUID = Field(alias="_id")
    name: str
    email: str
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    photo_url: Optional[str] = Field(default=None, alias="photoURL")
    registration_complete: bool = False
    user_id: Optional[str] = None


class UserStats(CamelModel):
    posts_count: int = 0
    followers_count: int = 0
    following_count: int = 0
    likes_count: int = 0


class UserDataResponse(CamelModel):
    """
    Extended profile data.

    `userId` carries the populated user rather than the raw foreign key,
    matching what existing clients read.
    """
    id: uuid.UUID = Field(alias="_id")
    user: Optional[UserProfile] = Field(default=None, alias="userId")
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    profile_picture: Optional[str] = None
    social_links: Dict[str, Any] = Field(default_factory=dict)
    interests: List[str] = Field(default_factory=list)
    preferences: Dict[str, Any] = Field(default_factory=dict)
    stats: UserStats = Field(default_factory=UserStats)
    profile_completion: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProfileResponse(CamelModel):
    """Returned by GET /profile."""
    success: bool = True
    user: UserProfile
    user_data: UserDataResponse


class ProfileUpdateResponse(ProfileResponse):
    """Returned by PUT /profile and the profile picture endpoints."""
    message: str


class StatsResponse(CamelModel):
    success: bool = True
    stats: UserStats
    profile_completion: int = 0


class UserSearchResult(CamelModel):
    id: uuid.UUID = Field(alias="_id")
    name: str
    email: str
    photo_url: Optional[str] = Field(default=None, alias="photoURL")


class SearchResponse(CamelModel):
    success: bool = True
    users: List[UserSearchResult]


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class ProfileUpdateRequest(CamelModel):
    """
    PUT /profile body. Every field is optional.

    Presence rules (applied by ProfileService):
        name, dateOfBirth, gender          applied when truthy
        bio, location, website             applied when sent, even empty/null
        socialLinks, interests, preferences applied when not null
    """
    name: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    social_links: Optional[Dict[str, Any]] = None
    interests: Optional[List[str]] = None
    preferences: Optional[Dict[str, Any]] = None


class ProfilePictureRequest(CamelModel):
    """POST /profile-picture body. The value is a URL or data URI."""
    profile_picture: Optional[str] = None
