import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_ACCESS_SECRET", "test-access-secret")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret")
os.environ.setdefault("JWT_ACCESS_EXPIRES_IN", "1h")
os.environ.setdefault("JWT_REFRESH_EXPIRES_IN", "7d")

import time
from datetime import datetime, timezone
from typing import Dict, Generator, Optional, Tuple

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from app.core.session_store import SessionStore, get_session_store
from app.db.base import Base
from app.db.session import get_db
from app.models import users  # noqa: F401


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Hardhat development keys, never funded outside local chains
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
OTHER_PRIVATE_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"


class FakeRedis:
    """In-test stand-in for redis.Redis covering the calls SessionStore makes."""

    def __init__(self):
        self.data: Dict[str, Tuple[str, Optional[float]]] = {}
        self.ttls: Dict[str, Optional[int]] = {}
        self.fail = False

    def _check(self):
        if self.fail:
            raise RedisConnectionError("connection refused")

    def set(self, key: str, value: str, ex: Optional[int] = None):
        self._check()
        expires_at = time.monotonic() + ex if ex else None
        self.data[key] = (value, expires_at)
        self.ttls[key] = ex
        return True

    def get(self, key: str) -> Optional[str]:
        self._check()
        entry = self.data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= time.monotonic():
            self.data.pop(key, None)
            return None
        return value

    def delete(self, *keys: str) -> int:
        self._check()
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    def ping(self) -> bool:
        self._check()
        return True

    def expire_now(self, key: str) -> None:
        """Simulate the TTL running out."""
        value, _ = self.data[key]
        self.data[key] = (value, time.monotonic() - 1)


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """Fresh schema per test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def session_store(fake_redis: FakeRedis) -> SessionStore:
    return SessionStore(fake_redis)


@pytest.fixture
def client(db_session: Session, session_store: SessionStore) -> TestClient:
    """Create a test client for the FastAPI application"""

    def override_get_db() -> Generator:
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_store] = lambda: session_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def wallet():
    return Account.from_key(TEST_PRIVATE_KEY)


@pytest.fixture
def other_wallet():
    return Account.from_key(OTHER_PRIVATE_KEY)


def siwe_timestamp(moment: Optional[datetime] = None) -> str:
    moment = moment or datetime.now(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def make_siwe_message(
    address: str,
    nonce: str,
    domain: str = "localhost:3000",
    expiration_time: Optional[str] = None,
) -> str:
    """Build an EIP-4361 message the way a wallet front end would."""
    lines = [
        f"{domain} wants you to sign in with your Ethereum account:",
        address,
        "",
        "Sign in with Ethereum",
        "",
        f"URI: http://{domain}",
        "Version: 1",
        "Chain ID: 1",
        f"Nonce: {nonce}",
        f"Issued At: {siwe_timestamp()}",
    ]
    if expiration_time:
        lines.append(f"Expiration Time: {expiration_time}")
    return "\n".join(lines)


def sign_message(account, message: str) -> str:
    """personal_sign (EIP-191) of message, 0x-prefixed hex"""
    signed = Account.sign_message(encode_defunct(text=message), private_key=account.key)
    signature = signed.signature.hex()
    return signature if signature.startswith("0x") else "0x" + signature


def request_nonce(client: TestClient, address: str) -> str:
    response = client.get("/auth/nonce", params={"address": address})
    assert response.status_code == 200
    return response.json()["nonce"]


def sign_in(client: TestClient, account, domain: str = "localhost:3000"):
    """Run the nonce + sign-in handshake for account, returning the sign-in response"""
    nonce = request_nonce(client, account.address)
    message = make_siwe_message(account.address, nonce, domain=domain)
    return client.post(
        "/auth/sign-in",
        json={"message": message, "signature": sign_message(account, message), "nonce": nonce},
    )
