"""
Circles Backend — Friend Route Handlers
=========================================

Route Inventory:
    GET  /api/friends                           accepted friends with presence
    GET  /api/friends/suggestions               same-birth-year suggestions
    POST /api/friends/request                   send a friend request
    GET  /api/friends/requests                  pending requests sent to me
    POST /api/friends/requests/{id}/accept      accept one of them
    POST /api/friends/requests/{id}/reject      reject one of them
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.models.user import User
from app.schemas.common import ErrorResponse, MessageResponse
from app.schemas.friend import (
    FriendRequestCreate,
    FriendSuggestionsResponse,
    FriendsResponse,
    IncomingRequestsResponse,
)
from app.security import get_current_user
from app.services.friend_service import friend_service

router = APIRouter(
    prefix="/api/friends",
    tags=["Friends"],
    responses={
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
)


@router.get("", response_model=FriendsResponse, summary="List the caller's friends")
async def list_friends(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FriendsResponse:
    return await friend_service.list_friends(db, current_user)


@router.get(
    "/suggestions",
    response_model=FriendSuggestionsResponse,
    summary="Suggest people born the same year as the caller",
    responses={400: {"description": "Caller has no date of birth", "model": ErrorResponse}},
)
async def get_suggestions(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FriendSuggestionsResponse:
    return await friend_service.get_suggestions(db, current_user)


@router.post(
    "/request",
    response_model=MessageResponse,
    summary="Send a friend request",
    responses={
        400: {"description": "Duplicate, self or already friends", "model": ErrorResponse},
        404: {"description": "Recipient not found", "model": ErrorResponse},
    },
)
async def send_request(
    body: FriendRequestCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await friend_service.send_request(db, current_user, body.to_user_id, body.message)


@router.get(
    "/requests",
    response_model=IncomingRequestsResponse,
    summary="List pending friend requests sent to the caller",
)
async def list_incoming(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> IncomingRequestsResponse:
    return await friend_service.list_incoming(db, current_user)


@router.post(
    "/requests/{request_id}/accept",
    response_model=MessageResponse,
    summary="Accept a pending friend request",
    responses={404: {"description": "Request not found", "model": ErrorResponse}},
)
async def accept_request(
    request_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await friend_service.respond(db, current_user, request_id, accept=True)


@router.post(
    "/requests/{request_id}/reject",
    response_model=MessageResponse,
    summary="Reject a pending friend request",
    responses={404: {"description": "Request not found", "model": ErrorResponse}},
)
async def reject_request(
    request_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await friend_service.respond(db, current_user, request_id, accept=False)
