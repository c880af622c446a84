"""
Tubely Authentication Module

Resolves the caller's identity from a bearer JWT. Tokens are issued by the
platform's login service and signed with the shared ``secret_key``; this
module only verifies them and extracts the user id from the ``sub`` claim.

Usage:
    ```python
    from fastapi import Depends
    from app.core.auth import get_current_user_id

    @router.get("/protected")
    async def protected_route(user_id: UUID = Depends(get_current_user_id)):
        return {"user_id": str(user_id)}
    ```
"""

import logging

from datetime import timedelta
from uuid import UUID

from fastapi import Depends, Request

from app.config import Settings, get_settings
from app.utils.security import extract_token_from_header, generate_jwt_token, validate_jwt_token


# Configure module logger
logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Raised when the request carries no usable bearer credential."""


def create_access_token(user_id: UUID | str, settings: Settings | None = None) -> str:
    """
    Mint an access token for ``user_id``.

    Used by local tooling and tests; production tokens come from the login
    service with the same issuer and secret.
    """
    settings = settings or get_settings()
    return generate_jwt_token(
        {"sub": str(user_id), "iss": settings.jwt_issuer},
        settings.secret_key,
        expires_delta=timedelta(hours=settings.jwt_expiration_hours),
        algorithm=settings.jwt_algorithm,
    )


def validate_access_token(token: str, settings: Settings) -> UUID:
    """
    Verify ``token`` and return the user id it was issued to.

    Raises:
        AuthenticationError: Signature, expiry or issuer is wrong, or the
            subject is not a UUID.
    """
    payload = validate_jwt_token(
        token,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
        issuer=settings.jwt_issuer,
    )
    if payload is None:
        raise AuthenticationError("Couldn't validate JWT")

    try:
        return UUID(str(payload.get("sub")))
    except ValueError as e:
        logger.warning("Token subject is not a user id")
        raise AuthenticationError("Couldn't validate JWT") from e


async def get_current_user_id(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> UUID:
    """
    FastAPI dependency resolving the authenticated user's id.

    Raises:
        AuthenticationError: Missing Authorization header or invalid token.
    """
    token = extract_token_from_header(request.headers.get("Authorization"))
    if token is None:
        raise AuthenticationError("Couldn't find JWT")

    user_id = validate_access_token(token, settings)
    logger.debug("Authenticated request for user %s", user_id)
    return user_id
