from __future__ import annotations

# redis backed session store
import logging
from threading import Lock
from typing import Optional

from redis import Connection, ConnectionPool, Redis, SSLConnection
from redis.exceptions import RedisError

from app.core.config import settings
from app.core.errors import SessionStoreUnavailable
from app.core.jwt_utils import TokenType

logger = logging.getLogger(__name__)


def session_key(token_type: TokenType, public_address: str) -> str:
    """Key of the single live token slot, e.g. 'access:0xAbC...'"""
    return f"{settings.SESSION_KEY_PREFIX}{TokenType(token_type).value}:{public_address}"


class SessionStore:
    """
    Authoritative record of the currently valid access and refresh token per address.

    JWTs are stateless, so every issued token is also written here with a TTL equal to
    its lifetime. A token is only honoured while it is byte-for-byte equal to the stored
    value: issuing a new token of the same type overwrites the slot, sign-out deletes it.

    Store errors are raised as SessionStoreUnavailable, never reported as a missing key.
    """

    def __init__(self, client: Redis):
        self.client = client

    def set(self, token_type: TokenType, public_address: str, token: str) -> None:
        key = session_key(token_type, public_address)
        ttl_seconds = TokenType(token_type).expires_seconds
        try:
            self.client.set(key, token, ex=ttl_seconds)
        except RedisError as e:
            logger.error("session store set failed for %s: %s", key, e)
            raise SessionStoreUnavailable() from e

    def get(self, token_type: TokenType, public_address: str) -> Optional[str]:
        key = session_key(token_type, public_address)
        try:
            value = self.client.get(key)
        except RedisError as e:
            logger.error("session store get failed for %s: %s", key, e)
            raise SessionStoreUnavailable() from e
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def matches(self, token_type: TokenType, public_address: str, token: str) -> bool:
        """True when token is exactly the live token of its type for the address."""
        stored = self.get(token_type, public_address)
        return stored is not None and stored == token

    def delete(self, public_address: str, *token_types: TokenType) -> None:
        """Delete the given slots (all token types when none given). Missing keys are fine."""
        keys = [session_key(t, public_address) for t in (token_types or tuple(TokenType))]
        try:
            self.client.delete(*keys)
        except RedisError as e:
            logger.error("session store delete failed for %s: %s", public_address, e)
            raise SessionStoreUnavailable() from e

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except RedisError:
            return False


def create_redis_client() -> Redis:
    pool = ConnectionPool(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        password=settings.REDIS_PASSWORD,
        db=settings.REDIS_DB,
        socket_connect_timeout=2,
        socket_timeout=5,
        retry_on_timeout=False,
        max_connections=settings.REDIS_MAX_CONNECTIONS,
        connection_class=SSLConnection if settings.REDIS_SSL else Connection,
        decode_responses=True,
    )
    return Redis(connection_pool=pool)


_store: Optional[SessionStore] = None
_store_lock = Lock()


def get_session_store() -> SessionStore:
    """FastAPI dependency returning the process-wide session store."""
    global _store
    if _store is None:
        with _store_lock:
            if _store is None:
                _store = SessionStore(create_redis_client())
    return _store
