"""
Circles Backend — Authentication Tests
========================================

What:  Token helpers and the get_current_user dependency.
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.security import HTTPAuthorizationCredentials

from app.config import settings
from app.exceptions import AuthenticationError
from app.security import create_access_token, decode_access_token, get_current_user


def bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def sign(payload: dict, secret: str = None) -> str:
    return jwt.encode(payload, secret or settings.jwt_secret, algorithm=settings.jwt_algorithm)


class TestTokens:

    def test_round_trip(self):
        user_id = uuid.uuid4()
        assert decode_access_token(create_access_token(user_id)) == user_id

    def test_expired_token(self):
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = sign({"sub": str(uuid.uuid4()), "iat": past, "exp": past + timedelta(minutes=5)})

        with pytest.raises(AuthenticationError, match="token expired"):
            decode_access_token(token)

    def test_wrong_secret(self):
        token = sign({"sub": str(uuid.uuid4())}, secret="someone-elses-secret")

        with pytest.raises(AuthenticationError, match="token failed"):
            decode_access_token(token)

    def test_garbage_token(self):
        with pytest.raises(AuthenticationError):
            decode_access_token("not-a-jwt")

    def test_legacy_id_claim(self):
        user_id = uuid.uuid4()
        assert decode_access_token(sign({"id": str(user_id)})) == user_id

    @pytest.mark.parametrize("payload", [{"sub": "ada"}, {"name": "Ada"}])
    def test_subject_must_be_a_user_id(self, payload):
        with pytest.raises(AuthenticationError):
            decode_access_token(sign(payload))


class TestCurrentUser:

    @pytest.mark.asyncio
    async def test_missing_credentials(self, mock_db_session):
        with pytest.raises(AuthenticationError, match="no token"):
            await get_current_user(credentials=None, db=mock_db_session)

    @pytest.mark.asyncio
    async def test_unknown_user(self, mock_db_session):
        mock_db_session.get.return_value = None
        token = create_access_token(uuid.uuid4())

        with pytest.raises(AuthenticationError, match="user not found"):
            await get_current_user(credentials=bearer(token), db=mock_db_session)

    @pytest.mark.asyncio
    async def test_loads_user_and_records_activity(self, mock_db_session, current_user):
        current_user.last_active_at = None
        mock_db_session.get.return_value = current_user
        token = create_access_token(current_user.id)

        user = await get_current_user(credentials=bearer(token), db=mock_db_session)

        assert user is current_user
        assert mock_db_session.get.await_args.args[1] == current_user.id
        assert user.last_active_at is not None
        assert datetime.now(timezone.utc) - user.last_active_at < timedelta(minutes=1)
