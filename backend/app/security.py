"""
Circles Backend — Bearer Token Authentication
===============================================

What:  JWT helpers and the `get_current_user` dependency that protects every
       users/friends route.
How:   Tokens are HS256 JWTs signed with settings.jwt_secret. The subject
       claim (`sub`, or `id` for tokens minted by the legacy account service)
       is the user's UUID. The dependency loads that user through the
       request's database session and records the request as activity.
Who:   Routes declare `current_user: User = Depends(get_current_user)`.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db_session
from app.exceptions import AuthenticationError
from app.models.user import User

logger = logging.getLogger(__name__)

# auto_error=False: a missing header reaches get_current_user, which raises
# AuthenticationError so the response uses the standard error envelope.
bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(user_id: uuid.UUID, expires_minutes: Optional[int] = None) -> str:
    """Sign a bearer token for `user_id`, valid for `expires_minutes`."""
    lifetime = expires_minutes or settings.access_token_expire_minutes
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(minutes=lifetime),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> uuid.UUID:
    """
    Verify a bearer token and return the user ID it was issued for.

    Raises:
        AuthenticationError: bad signature, expired, or no usable subject.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(message="Not authorized, token expired")
    except jwt.InvalidTokenError as e:
        logger.debug("Rejected bearer token: %s", str(e))
        raise AuthenticationError()

    subject = payload.get("sub") or payload.get("id")
    try:
        return uuid.UUID(str(subject))
    except (TypeError, ValueError):
        raise AuthenticationError()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """
    Resolve the authenticated caller.

    Raises AuthenticationError (→ 401) when the header is missing, the token
    is invalid, or the user it names no longer exists.
    """
    if credentials is None:
        raise AuthenticationError(message="Not authorized, no token")

    user_id = decode_access_token(credentials.credentials)

    user = await db.get(User, user_id)
    if user is None:
        logger.warning("Token subject %s has no matching user", user_id)
        raise AuthenticationError(message="Not authorized, user not found")

    user.last_active_at = datetime.now(timezone.utc)
    return user
