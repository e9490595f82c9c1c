import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Cookie, Depends, HTTPException, Query, Response, status

import app.schemas.auth as schemas
from app.core.config import settings
from app.core.dependencies import get_auth_service
from app.core.jwt_utils import TokenType
from app.services.auth_service import AuthService
from app.services.user_profile_contract import push_jwt

router = APIRouter()
group_tags: List[str] = ["Auth"]

logger = logging.getLogger(__name__)


def _set_token_cookie(response: Response, token_type: TokenType, token: str) -> None:
    response.set_cookie(
        token_type.cookie_name,
        token,
        max_age=token_type.expires_seconds,
        secure=settings.IS_PRODUCTION,
        httponly=True,
        samesite="lax",
    )


@router.get(
    "/nonce",
    tags=group_tags,
    response_model=schemas.NonceResponse,
    status_code=status.HTTP_200_OK,
)
def get_nonce(
    address: Optional[str] = Query(default=None, description="Ethereum address requesting a challenge"),
    auth: AuthService = Depends(get_auth_service),
) -> schemas.NonceResponse:
    """Generate and store a fresh nonce for a wallet address, creating the user if needed."""
    result = auth.get_nonce(address)
    return schemas.NonceResponse(nonce=result.nonce, address=result.address)


@router.post(
    "/sign-in",
    tags=group_tags,
    response_model=schemas.SignInResponse,
    status_code=status.HTTP_200_OK,
)
def sign_in(
    body: schemas.SignInRequest,
    response: Response,
    background_tasks: BackgroundTasks,
    auth: AuthService = Depends(get_auth_service),
) -> schemas.SignInResponse:
    """
    Verify a signed SIWE message and start a session.

    Sets the accessToken and refreshToken cookies; only the access token is returned in
    the body.
    """
    result = auth.sign_in(body.message, body.signature, body.nonce)

    _set_token_cookie(response, TokenType.ACCESS, result.access_token)
    _set_token_cookie(response, TokenType.REFRESH, result.refresh_token)
    background_tasks.add_task(push_jwt, result.address, result.access_token)

    return schemas.SignInResponse(address=result.address, access_token=result.access_token)


@router.post(
    "/refresh",
    tags=group_tags,
    response_model=schemas.RefreshResponse,
    status_code=status.HTTP_201_CREATED,
)
def refresh(
    response: Response,
    refresh_token: Optional[str] = Cookie(default=None, alias="refreshToken"),
    access_token: Optional[str] = Cookie(default=None, alias="accessToken"),
    auth: AuthService = Depends(get_auth_service),
) -> schemas.RefreshResponse:
    """Exchange the refreshToken cookie for a new access token."""
    if not refresh_token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Refresh token is not defined!")

    new_access_token = auth.refresh(refresh_token, access_token)
    _set_token_cookie(response, TokenType.ACCESS, new_access_token)

    return schemas.RefreshResponse(access_token=new_access_token)


@router.post(
    "/sign-out",
    tags=group_tags,
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
def sign_out(
    access_token: Optional[str] = Cookie(default=None, alias="accessToken"),
    refresh_token: Optional[str] = Cookie(default=None, alias="refreshToken"),
    auth: AuthService = Depends(get_auth_service),
) -> Response:
    """
    Invalidate the session the cookies belong to and clear both cookies.

    Only a live token ends a session; stale cookies just get cleared.
    """
    public_address = auth.session_address(access_token, refresh_token)
    if public_address:
        auth.sign_out(public_address)

    try:
        response = Response(status_code=status.HTTP_204_NO_CONTENT)
        for token_type in TokenType:
            response.delete_cookie(
                token_type.cookie_name,
                secure=settings.IS_PRODUCTION,
                httponly=True,
                samesite="lax",
            )
        return response
    except Exception as e:
        logger.error("failed to clear session cookies: %s", e, exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to sign out")
