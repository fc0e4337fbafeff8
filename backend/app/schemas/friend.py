"""
Circles Backend — Friend Schemas
==================================

What:  Request bodies and response models for the /api/friends routes.
"""

import uuid
from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from app.schemas.common import CamelModel


class FriendRequestCreate(CamelModel):
    """POST /request body. toUserId is required; a missing one is a 400."""
    to_user_id: uuid.UUID
    message: Optional[str] = None


class FriendSuggestion(CamelModel):
    id: uuid.UUID = Field(alias="_id")
    name: str
    email: str
    user_id: Optional[str] = None
    photo_url: Optional[str] = Field(default=None, alias="photoURL")
    date_of_birth: Optional[date] = None
    status: str = Field(description="e.g. '3 mutual friends'")


class FriendSuggestionsResponse(CamelModel):
    success: bool = True
    suggestions: List[FriendSuggestion]


class Friend(CamelModel):
    id: uuid.UUID = Field(alias="_id")
    name: str
    email: str
    user_id: Optional[str] = None
    photo_url: Optional[str] = Field(default=None, alias="photoURL")
    status: str = Field(description="Presence label, e.g. 'Active 5m ago'")


class FriendsResponse(CamelModel):
    success: bool = True
    friends: List[Friend]


class IncomingFriendRequest(CamelModel):
    id: uuid.UUID = Field(alias="_id")
    message: str = ""
    status: str
    created_at: datetime
    from_user: Friend


class IncomingRequestsResponse(CamelModel):
    success: bool = True
    requests: List[IncomingFriendRequest]
