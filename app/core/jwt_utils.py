"""
JWT Token Utilities

This module handles JSON Web Token (JWT) creation and verification for SIWE sessions.
After a wallet proves ownership of its address, two tokens are minted from the same
user snapshot:

- access token: short lived, sent on every protected request
- refresh token: long lived, exchanged for new access tokens at /auth/refresh

Each token type has its own secret and expiration window (see TokenType). A valid
signature is necessary but not sufficient: the session store must also hold the exact
token string (see app/core/session_store.py and app/core/dependencies.py).

The JWT contains:
- id, publicAddress, nonce, username, createdAt, updatedAt: the user snapshot
- jti: random token id, so two tokens minted in the same second still differ
- iat: Issued at timestamp
- exp: Expiration timestamp
"""

import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict

import jwt

from app.core.config import settings

REGISTERED_CLAIMS = ("iat", "exp", "jti")


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"

    @property
    def secret(self) -> str:
        if self is TokenType.ACCESS:
            return settings.JWT_ACCESS_SECRET
        return settings.JWT_REFRESH_SECRET

    @property
    def expires_seconds(self) -> int:
        if self is TokenType.ACCESS:
            return settings.access_expires_seconds
        return settings.refresh_expires_seconds

    @property
    def cookie_name(self) -> str:
        return f"{self.value}Token"


class TokenError(Exception):
    """Raised when a token cannot be verified (bad signature, expired, malformed)."""


def user_claims(user: Any) -> Dict[str, Any]:
    """Build the token payload from a User row."""
    return {
        "id": str(user.id),
        "publicAddress": user.public_address,
        "nonce": user.nonce,
        "username": user.username,
        "createdAt": _isoformat(user.created_at),
        "updatedAt": _isoformat(user.updated_at),
    }


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def strip_registered_claims(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Return the payload without iat/exp/jti so it can be signed again."""
    return {key: value for key, value in payload.items() if key not in REGISTERED_CLAIMS}


def create_token(token_type: TokenType, claims: Dict[str, Any]) -> str:
    """
    Create a signed JWT of the given type.

    Args:
        token_type: TokenType.ACCESS or TokenType.REFRESH, selects secret and lifetime
        claims: User snapshot claims; registered claims are replaced

    Returns:
        The encoded token string

    Raises:
        ValueError: If claims carry no publicAddress
    """
    if not claims.get("publicAddress"):
        raise ValueError("publicAddress is required")

    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = strip_registered_claims(claims)
    payload.update(
        {
            "jti": uuid.uuid4().hex,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=token_type.expires_seconds)).timestamp()),
        }
    )

    return jwt.encode(payload, token_type.secret, algorithm=settings.JWT_ALGORITHM)


def verify_token(token_type: TokenType, token: str, *, verify_exp: bool = True) -> Dict[str, Any]:
    """
    Verify and decode a JWT of the given type.

    Args:
        token_type: Selects the secret the token must be signed with
        token: The encoded token string
        verify_exp: Set to False to accept expired but otherwise valid tokens

    Returns:
        Decoded payload dictionary

    Raises:
        TokenError: If token is missing, expired, or its signature is invalid
    """
    if not token:
        raise TokenError("Missing token")

    try:
        return jwt.decode(
            token,
            token_type.secret,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_exp": verify_exp, "require": ["exp", "iat"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise TokenError("Token expired") from e
    except jwt.InvalidTokenError as e:
        raise TokenError("Invalid token") from e
