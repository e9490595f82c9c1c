import pytest

from app.core.errors import SessionStoreUnavailable
from app.core.jwt_utils import TokenType
from app.core.session_store import SessionStore, session_key

ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"


class TestSessionKey:
    def test_key_format(self):
        assert session_key(TokenType.ACCESS, ADDRESS) == f"access:{ADDRESS}"
        assert session_key(TokenType.REFRESH, ADDRESS) == f"refresh:{ADDRESS}"

    def test_accepts_plain_value(self):
        assert session_key("refresh", ADDRESS) == session_key(TokenType.REFRESH, ADDRESS)


class TestSessionStore:
    def test_set_uses_token_lifetime(self, session_store: SessionStore, fake_redis):
        session_store.set(TokenType.ACCESS, ADDRESS, "a-token")
        session_store.set(TokenType.REFRESH, ADDRESS, "r-token")

        assert fake_redis.ttls[session_key(TokenType.ACCESS, ADDRESS)] == TokenType.ACCESS.expires_seconds
        assert fake_redis.ttls[session_key(TokenType.REFRESH, ADDRESS)] == TokenType.REFRESH.expires_seconds

    def test_set_overwrites_slot(self, session_store: SessionStore):
        session_store.set(TokenType.ACCESS, ADDRESS, "first")
        session_store.set(TokenType.ACCESS, ADDRESS, "second")

        assert session_store.get(TokenType.ACCESS, ADDRESS) == "second"
        assert not session_store.matches(TokenType.ACCESS, ADDRESS, "first")
        assert session_store.matches(TokenType.ACCESS, ADDRESS, "second")

    def test_types_are_independent(self, session_store: SessionStore):
        session_store.set(TokenType.ACCESS, ADDRESS, "same")

        assert session_store.get(TokenType.REFRESH, ADDRESS) is None
        assert not session_store.matches(TokenType.REFRESH, ADDRESS, "same")

    def test_expired_entry_is_absent(self, session_store: SessionStore, fake_redis):
        session_store.set(TokenType.ACCESS, ADDRESS, "a-token")
        fake_redis.expire_now(session_key(TokenType.ACCESS, ADDRESS))

        assert session_store.get(TokenType.ACCESS, ADDRESS) is None

    def test_get_decodes_bytes(self, fake_redis):
        fake_redis.data[session_key(TokenType.ACCESS, ADDRESS)] = (b"a-token", None)

        assert SessionStore(fake_redis).get(TokenType.ACCESS, ADDRESS) == "a-token"

    def test_delete_all_types(self, session_store: SessionStore):
        session_store.set(TokenType.ACCESS, ADDRESS, "a-token")
        session_store.set(TokenType.REFRESH, ADDRESS, "r-token")

        session_store.delete(ADDRESS)

        assert session_store.get(TokenType.ACCESS, ADDRESS) is None
        assert session_store.get(TokenType.REFRESH, ADDRESS) is None

    def test_delete_single_type(self, session_store: SessionStore):
        session_store.set(TokenType.ACCESS, ADDRESS, "a-token")
        session_store.set(TokenType.REFRESH, ADDRESS, "r-token")

        session_store.delete(ADDRESS, TokenType.ACCESS)

        assert session_store.get(TokenType.ACCESS, ADDRESS) is None
        assert session_store.get(TokenType.REFRESH, ADDRESS) == "r-token"

    def test_delete_missing_is_noop(self, session_store: SessionStore):
        session_store.delete(ADDRESS)
        session_store.delete(ADDRESS)

    def test_ping(self, session_store: SessionStore, fake_redis):
        assert session_store.ping() is True
        fake_redis.fail = True
        assert session_store.ping() is False


class TestSessionStoreUnavailable:
    @pytest.mark.parametrize(
        "call",
        [
            lambda s: s.set(TokenType.ACCESS, ADDRESS, "a-token"),
            lambda s: s.get(TokenType.ACCESS, ADDRESS),
            lambda s: s.matches(TokenType.ACCESS, ADDRESS, "a-token"),
            lambda s: s.delete(ADDRESS),
        ],
    )
    def test_store_errors_are_not_reported_as_missing(self, session_store: SessionStore, fake_redis, call):
        fake_redis.fail = True

        with pytest.raises(SessionStoreUnavailable) as exc_info:
            call(session_store)
        assert exc_info.value.status_code == 503
