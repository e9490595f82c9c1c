"""
SIWE session lifecycle: nonce issuance, sign-in, refresh and sign-out.

Sign-in order matters and each step assumes the previous one succeeded:
parse message -> check address -> load user -> compare nonce -> verify signature
-> rotate nonce -> mint tokens -> persist tokens. A nonce is therefore usable once.

Tokens are only valid while the session store holds them, so refresh and the access
guard compare the presented string with the stored one.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import (
    InvalidAddress,
    InvalidInput,
    InvalidMessage,
    NonceMismatch,
    RefreshInvalid,
    SessionStoreUnavailable,
    SignatureInvalid,
    UserNotFound,
)
from app.core.jwt_utils import (
    TokenError,
    TokenType,
    create_token,
    strip_registered_claims,
    user_claims,
    verify_token,
)
from app.core.session_store import SessionStore
from app.core.siwe_auth import (
    SiweError,
    generate_nonce,
    is_valid_address,
    parse_siwe_message,
    to_checksum_address,
    verify_siwe_signature,
)
from app.services.user_service import UserService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NonceResult:
    nonce: str
    address: str


@dataclass(frozen=True)
class SignInResult:
    address: str
    access_token: str
    refresh_token: str


class AuthService:
    def __init__(self, db: Session, store: SessionStore):
        self.users = UserService(db)
        self.store = store

    def get_nonce(self, address: Optional[str]) -> NonceResult:
        """Issue a fresh nonce for address, creating the user on first contact."""
        if not is_valid_address(address):
            raise InvalidInput("Invalid address")

        public_address = to_checksum_address(address)
        nonce = generate_nonce()

        user = self.users.find_by_address(public_address)
        if user is None:
            user = self.users.create(public_address, nonce)
            logger.info("created user for %s", public_address)
        else:
            user = self.users.update(user, nonce=nonce)

        logger.info("nonce issued for %s", public_address)
        return NonceResult(nonce=user.nonce, address=user.public_address)

    def sign_in(self, message: str, signature: str, nonce: str) -> SignInResult:
        try:
            siwe_message = parse_siwe_message(message)
        except SiweError as e:
            logger.warning("sign-in rejected: %s", e)
            raise InvalidMessage() from e

        address = siwe_message.address
        if not is_valid_address(address):
            raise InvalidAddress()

        user = self.users.find_by_address(address)
        if user is None:
            logger.warning("sign-in rejected: no user for %s", address)
            raise UserNotFound()

        if user.nonce != nonce:
            logger.warning("sign-in rejected: nonce mismatch for %s", address)
            raise NonceMismatch()

        try:
            verify_siwe_signature(siwe_message, signature, nonce=user.nonce, domain=settings.SIWE_DOMAIN)
        except SiweError as e:
            logger.warning("sign-in rejected: signature check failed for %s (%s)", address, e)
            raise SignatureInvalid() from e

        # snapshot taken before rotation, so the token nonce is the one the wallet signed
        claims = user_claims(user)
        self.users.update(user, nonce=generate_nonce())

        access_token = create_token(TokenType.ACCESS, claims)
        refresh_token = create_token(TokenType.REFRESH, claims)

        self.store.set(TokenType.ACCESS, address, access_token)
        try:
            self.store.set(TokenType.REFRESH, address, refresh_token)
        except SessionStoreUnavailable:
            # the access token is never handed out, so it must not stay live
            self._discard(address, TokenType.ACCESS)
            raise

        logger.info("signed in %s", address)
        return SignInResult(address=address, access_token=access_token, refresh_token=refresh_token)

    def refresh(self, refresh_token: str, access_token: Optional[str] = None) -> str:
        """Exchange a live refresh token for a new access token. The refresh token is kept."""
        try:
            payload = verify_token(TokenType.REFRESH, refresh_token)
        except TokenError as e:
            logger.warning("refresh rejected: %s", e)
            raise RefreshInvalid() from e

        public_address = payload.get("publicAddress")
        if not public_address:
            raise RefreshInvalid()

        if not self.store.matches(TokenType.REFRESH, public_address, refresh_token):
            logger.warning("refresh rejected: stale refresh token for %s", public_address)
            raise RefreshInvalid()

        if access_token and not self.store.matches(TokenType.ACCESS, public_address, access_token):
            logger.info("refresh for %s replaces an access token that is no longer live", public_address)

        new_access_token = create_token(TokenType.ACCESS, strip_registered_claims(payload))
        self.store.set(TokenType.ACCESS, public_address, new_access_token)
        return new_access_token

    def sign_out(self, public_address: str) -> None:
        self.store.delete(public_address, TokenType.ACCESS, TokenType.REFRESH)
        logger.info("signed out %s", public_address)

    def session_address(
        self, access_token: Optional[str], refresh_token: Optional[str] = None
    ) -> Optional[str]:
        """
        Address whose live session the presented cookies belong to, None otherwise.

        The access token counts only while it is the stored access token. An expired access
        cookie has already dropped out of the store, so the refresh cookie is tried next.
        Superseded tokens of either kind never resolve to an address.
        """
        for token_type, token in ((TokenType.ACCESS, access_token), (TokenType.REFRESH, refresh_token)):
            public_address = self._address_from_token(token_type, token)
            if public_address and self.store.matches(token_type, public_address, token):
                return public_address
        return None

    def _address_from_token(self, token_type: TokenType, token: Optional[str]) -> Optional[str]:
        if not token:
            return None
        try:
            payload = verify_token(token_type, token, verify_exp=False)
        except TokenError:
            return None
        return payload.get("publicAddress")

    def _discard(self, public_address: str, token_type: TokenType) -> None:
        try:
            self.store.delete(public_address, token_type)
        except SessionStoreUnavailable:
            logger.error("could not discard %s token of %s", token_type.value, public_address)
