"""
Security utilities module for Tubely.

This module provides:
- Unguessable asset identities for stored media (256-bit secrets, URL-safe base64)
- JWT token generation and validation (HMAC, python-jose)
- Bearer token extraction from Authorization headers
"""

import base64
import logging
import secrets

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError


# Configure logger for security operations
logger = logging.getLogger(__name__)

# Random bytes drawn per asset identity (256 bits)
ASSET_IDENTITY_BYTES = 32

# Extension used when the media type cannot be mapped to one
FALLBACK_EXTENSION = ".bin"


# ==============================================================================
# ASSET IDENTITY GENERATION
# ==============================================================================

def media_type_to_ext(media_type: str) -> str:
    """
    Derive a file extension from a media type's subtype.

    Args:
        media_type: A parsed media type such as ``"image/png"``.

    Returns:
        ``"." + subtype`` for well-formed types, ``".bin"`` otherwise.

    Example:
        >>> media_type_to_ext("video/mp4")
        '.mp4'
        >>> media_type_to_ext("not-a-type")
        '.bin'
    """
    parts = (media_type or "").split("/")
    if len(parts) != 2:
        return FALLBACK_EXTENSION

    main_type, subtype = (part.strip() for part in parts)
    if not main_type or not subtype:
        return FALLBACK_EXTENSION

    return f".{subtype.lower()}"


def generate_asset_identity(media_type: str) -> str:
    """
    Generate a fresh, unguessable identity for a stored asset.

    Draws 256 bits from the operating system's CSPRNG, encodes them with the
    URL-safe base64 alphabet without padding and appends the extension
    derived from ``media_type``. There is no fallback to a weaker source:
    if the OS cannot supply randomness the error propagates.

    Args:
        media_type: Parsed media type of the upload.

    Returns:
        Identity such as ``"kq3Yt...8Bw.mp4"`` (43 random characters + extension).
    """
    raw = secrets.token_bytes(ASSET_IDENTITY_BYTES)
    token = base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")
    return f"{token}{media_type_to_ext(media_type)}"


# ==============================================================================
# JWT TOKEN GENERATION AND VALIDATION
# ==============================================================================

def generate_jwt_token(
    data: dict[str, Any],
    secret_key: str,
    expires_delta: timedelta | None = None,
    algorithm: str = "HS256"
) -> str:
    """
    Generate a JWT token with the provided data and expiration.

    Args:
        data: Dictionary of claims to include in the token payload.
        secret_key: The secret key used for signing the token.
        expires_delta: Optional custom expiration time delta.
                      Defaults to 1 hour if not specified.
        algorithm: The signing algorithm to use. Defaults to "HS256".

    Returns:
        The encoded JWT token string.

    Raises:
        ValueError: If secret_key is empty or data is None.
    """
    if not secret_key:
        raise ValueError("Secret key cannot be empty")

    if data is None:
        raise ValueError("Token data cannot be None")

    payload = data.copy()

    now = datetime.now(timezone.utc)
    expire = now + (expires_delta if expires_delta is not None else timedelta(hours=1))

    payload.update({
        "exp": expire,
        "iat": now,
    })

    return jwt.encode(payload, secret_key, algorithm=algorithm)


def validate_jwt_token(
    token: str,
    secret_key: str,
    algorithm: str = "HS256",
    issuer: str | None = None,
) -> dict[str, Any] | None:
    """
    Validate and decode a JWT token.

    Returns the payload if the signature, expiry and (optionally) issuer
    check out, None otherwise. Failures are logged at WARNING.

    Args:
        token: The JWT token string to validate.
        secret_key: The secret key used for signature verification.
        algorithm: The signing algorithm used. Defaults to "HS256".
        issuer: Expected ``iss`` claim, if any.

    Returns:
        The decoded payload dictionary if valid, None if invalid.
    """
    if not token or not secret_key:
        logger.warning("Token validation failed: empty token or secret key")
        return None

    try:
        return jwt.decode(
            token,
            secret_key,
            algorithms=[algorithm],
            issuer=issuer,
            options={
                "verify_exp": True,
                "verify_iat": True,
                "require_exp": True,
                "require_sub": True,
            },
        )

    except ExpiredSignatureError:
        logger.warning("Token validation failed: token has expired")
        return None

    except JWTClaimsError as e:
        logger.warning("Token validation failed: invalid claims - %s", e)
        return None

    except JWTError as e:
        logger.warning("Token validation failed: %s", e)
        return None


def extract_token_from_header(authorization_header: str | None) -> str | None:
    """
    Extract the JWT token from an Authorization header.

    Args:
        authorization_header: The full Authorization header value
                             (e.g., "Bearer eyJ...").

    Returns:
        The extracted token string, or None if the header is missing or
        does not use the Bearer scheme.
    """
    if not authorization_header:
        return None

    parts = authorization_header.split()

    if len(parts) != 2:
        return None

    scheme, token = parts

    if scheme.lower() != "bearer":
        return None

    return token
