"""
Tubely Authentication Test Suite

Covers backend/app/core/auth.py and the JWT helpers in app/utils/security.py:
- Token minting and validation (HS256, issuer, expiry)
- Bearer header extraction
- The get_current_user_id FastAPI dependency
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import Mock
from uuid import uuid4

import pytest

from jose import jwt

from app.config import Settings
from app.core.auth import (
    AuthenticationError,
    create_access_token,
    get_current_user_id,
    validate_access_token,
)
from app.utils.security import extract_token_from_header, generate_jwt_token, validate_jwt_token

from tests.conftest import TEST_SECRET_KEY


@pytest.fixture
def auth_settings() -> Settings:
    return Settings(app_env="testing", secret_key=TEST_SECRET_KEY, jwt_issuer="tubely-access")


def _request_with(authorization: str | None) -> Mock:
    request = Mock()
    request.headers = {} if authorization is None else {"Authorization": authorization}
    return request


class TestTokenRoundTrip:
    def test_create_and_validate(self, auth_settings) -> None:
        user_id = uuid4()
        token = create_access_token(user_id, auth_settings)

        assert validate_access_token(token, auth_settings) == user_id

    def test_claims(self, auth_settings) -> None:
        user_id = uuid4()
        token = create_access_token(user_id, auth_settings)

        claims = jwt.get_unverified_claims(token)
        assert claims["sub"] == str(user_id)
        assert claims["iss"] == "tubely-access"
        assert claims["exp"] > claims["iat"]


class TestValidation:
    def test_wrong_secret(self, auth_settings) -> None:
        token = generate_jwt_token(
            {"sub": str(uuid4()), "iss": "tubely-access"}, "another-secret-key-that-is-32-chars!!"
        )
        with pytest.raises(AuthenticationError, match="Couldn't validate JWT"):
            validate_access_token(token, auth_settings)

    def test_wrong_issuer(self, auth_settings) -> None:
        token = generate_jwt_token({"sub": str(uuid4()), "iss": "someone-else"}, TEST_SECRET_KEY)
        with pytest.raises(AuthenticationError):
            validate_access_token(token, auth_settings)

    def test_expired(self, auth_settings) -> None:
        token = generate_jwt_token(
            {"sub": str(uuid4()), "iss": "tubely-access"},
            TEST_SECRET_KEY,
            expires_delta=timedelta(seconds=-10),
        )
        with pytest.raises(AuthenticationError):
            validate_access_token(token, auth_settings)

    def test_subject_must_be_uuid(self, auth_settings) -> None:
        token = generate_jwt_token({"sub": "not-a-uuid", "iss": "tubely-access"}, TEST_SECRET_KEY)
        with pytest.raises(AuthenticationError):
            validate_access_token(token, auth_settings)

    def test_missing_subject(self) -> None:
        token = jwt.encode(
            {"exp": datetime.now(UTC) + timedelta(minutes=5)}, TEST_SECRET_KEY, algorithm="HS256"
        )
        assert validate_jwt_token(token, TEST_SECRET_KEY) is None

    def test_garbage_token(self) -> None:
        assert validate_jwt_token("not.a.jwt", TEST_SECRET_KEY) is None


class TestExtractToken:
    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("Bearer abc.def.ghi", "abc.def.ghi"),
            ("bearer abc", "abc"),
            ("Basic dXNlcjpwYXNz", None),
            ("Bearer", None),
            ("Bearer a b", None),
            ("", None),
            (None, None),
        ],
    )
    def test_extract(self, header, expected) -> None:
        assert extract_token_from_header(header) == expected


class TestCurrentUserDependency:
    @pytest.mark.asyncio
    async def test_valid_bearer(self, auth_settings) -> None:
        user_id = uuid4()
        token = create_access_token(user_id, auth_settings)

        resolved = await get_current_user_id(_request_with(f"Bearer {token}"), auth_settings)

        assert resolved == user_id

    @pytest.mark.asyncio
    async def test_missing_header(self, auth_settings) -> None:
        with pytest.raises(AuthenticationError, match="Couldn't find JWT"):
            await get_current_user_id(_request_with(None), auth_settings)

    @pytest.mark.asyncio
    async def test_invalid_token(self, auth_settings) -> None:
        with pytest.raises(AuthenticationError, match="Couldn't validate JWT"):
            await get_current_user_id(_request_with("Bearer nope"), auth_settings)
