"""
FastAPI Authentication Dependencies
This module provides the access guard and the FastAPI dependency functions that inject it
into route handlers.
Usage in endpoints:
    @router.get("/protected")
    def protected_route(user: User = Depends(get_current_user)):
        # user is the current row from the users table
        return {"user": user.username}
Flow:
1. Client sends request with Authorization: Bearer <token> header (or the accessToken cookie)
2. FastAPI calls get_current_user() dependency
3. _extract_token() extracts token from header, falling back to the cookie
4. authorize() validates the JWT (from jwt_utils.py) and checks it is the live token in
   the session store (from session_store.py)
5. Returns the User loaded by id to the route handler
"""

import logging
from typing import Optional

from fastapi import Cookie, Depends, Header
from sqlalchemy.orm import Session

from app.core.errors import Unauthorized
from app.core.jwt_utils import TokenError, TokenType, verify_token
from app.core.session_store import SessionStore, get_session_store
from app.db.session import get_db
from app.models.users import User
from app.services.auth_service import AuthService
from app.services.user_service import UserService

logger = logging.getLogger(__name__)


def authorize(token: Optional[str], users: UserService, store: SessionStore) -> User:
    """
    Resolve the user behind an access token.

    All four checks must pass:
    1. signature and expiry against the access secret
    2. payload carries id and publicAddress
    3. token is exactly the live access token stored for publicAddress
    4. a user with that id exists (loaded fresh, not taken from the payload)

    Raises:
        Unauthorized: If any check fails
    """
    try:
        payload = verify_token(TokenType.ACCESS, token or "")
    except TokenError as e:
        logger.warning("access token rejected: %s", e)
        raise Unauthorized(str(e)) from e

    user_id = payload.get("id")
    public_address = payload.get("publicAddress")
    if not user_id or not public_address:
        raise Unauthorized("Invalid token payload")

    if not store.matches(TokenType.ACCESS, public_address, token):
        logger.warning("access token for %s is not the live session token", public_address)
        raise Unauthorized("Token not found or expired in session store")

    user = users.find_by_id(user_id)
    if user is None:
        raise Unauthorized("User not found")
    return user


def _extract_token(authorization: Optional[str], cookie_token: Optional[str]) -> str:
    """
    Extract JWT token from Authorization header, or from the accessToken cookie.
    Supports both "Bearer <token>" and plain token formats.
    Raises:
        Unauthorized: If neither header nor cookie carries a token
    """
    if authorization and authorization.strip():
        authorization = authorization.strip()
        if authorization.lower().startswith("bearer "):
            token = authorization[7:].strip()
        else:
            token = authorization
        if token:
            return token

    if cookie_token:
        return cookie_token

    raise Unauthorized("Authorization header missing")


def get_auth_service(
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
) -> AuthService:
    return AuthService(db, store)


def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    access_token: Optional[str] = Cookie(None, alias="accessToken"),
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
) -> User:
    """
    returning the authenticated user.
    """
    token = _extract_token(authorization, access_token)
    return authorize(token, UserService(db), store)
