"""
Circles Backend — User Profile Route Handlers
===============================================

What:  /api/users: profile read/update, profile picture, stats, search.
How:   Every route requires a bearer token (get_current_user) and delegates
       to ProfileService; routes only deal with HTTP details.

Route Inventory:
    GET  /api/users/profile                 own profile (created on first read)
    PUT  /api/users/profile                 partial update
    POST /api/users/profile-picture         picture by URL / data URI
    POST /api/users/profile-picture/upload  picture by multipart upload
    GET  /api/users/stats                   counters + profile completion
    GET  /api/users/search?query=           find other users
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.models.user import User
from app.schemas.common import ErrorResponse
from app.schemas.user import (
    ProfilePictureRequest,
    ProfileResponse,
    ProfileUpdateRequest,
    ProfileUpdateResponse,
    SearchResponse,
    StatsResponse,
)
from app.security import get_current_user
from app.services.profile_service import profile_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/users",
    tags=["Users"],
    responses={
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
)


@router.get(
    "/profile",
    response_model=ProfileResponse,
    summary="Get the caller's profile",
)
async def get_profile(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await profile_service.get_profile(db, current_user)


@router.put(
    "/profile",
    response_model=ProfileUpdateResponse,
    summary="Update the caller's profile",
    responses={400: {"description": "Invalid body", "model": ErrorResponse}},
)
async def update_profile(
    update: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileUpdateResponse:
    return await profile_service.update_profile(db, current_user, update)


@router.post(
    "/profile-picture",
    response_model=ProfileUpdateResponse,
    summary="Set the caller's profile picture from a URL or data URI",
    responses={400: {"description": "Profile picture missing", "model": ErrorResponse}},
)
async def set_profile_picture(
    body: ProfilePictureRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileUpdateResponse:
    return await profile_service.set_profile_picture(db, current_user, body.profile_picture)


@router.post(
    "/profile-picture/upload",
    response_model=ProfileUpdateResponse,
    summary="Upload a new profile picture (PNG or JPEG)",
    responses={400: {"description": "Invalid file type or size", "model": ErrorResponse}},
)
async def upload_profile_picture(
    file: UploadFile = File(..., description="PNG or JPEG image"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileUpdateResponse:
    content = await file.read()
    logger.info(
        "Received profile picture upload: filename=%s, size=%d bytes",
        file.filename or "unknown",
        len(content),
    )
    try:
        return await profile_service.upload_profile_picture(
            db,
            current_user,
            filename=file.filename or "upload.jpg",
            content=content,
            content_length=file.size,
        )
    finally:
        await file.close()


@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Get the caller's counters and profile completion",
)
async def get_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> StatsResponse:
    return await profile_service.get_stats(db, current_user)


@router.get(
    "/search",
    response_model=SearchResponse,
    summary="Search other users by name or email",
    responses={400: {"description": "Query too short", "model": ErrorResponse}},
)
async def search_users(
    query: Optional[str] = Query(default=None, description="At least 2 characters"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SearchResponse:
    return await profile_service.search_users(db, current_user, query)
