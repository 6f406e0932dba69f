"""
Tests for admin token management.
"""

from datetime import datetime, timedelta

import pytest

from interactive_letter.server.auth import TokenManager, bearer_token


class FakeNow:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def now() -> FakeNow:
    return FakeNow()


@pytest.fixture
def manager(now) -> TokenManager:
    return TokenManager("admin", "pw", token_ttl=timedelta(hours=24), clock=now)


class TestTokenManager:
    """Test login, token generation and validation."""

    def test_login_success(self, manager):
        token = manager.login("admin", "pw")

        assert isinstance(token, str)
        assert len(token) > 20
        info = manager.validate_token(token)
        assert info.username == "admin"
        assert info.role == "admin"

    @pytest.mark.parametrize("username,password", [
        ("admin", "wrong"),
        ("root", "pw"),
        ("", ""),
        (None, None),
    ])
    def test_login_failure(self, manager, username, password):
        assert manager.login(username, password) is None

    def test_tokens_are_unique(self, manager):
        assert manager.generate_token("admin") != manager.generate_token("admin")

    def test_token_expiry(self, manager, now):
        token = manager.login("admin", "pw")

        now.now += timedelta(hours=23, minutes=59)
        assert manager.validate_token(token) is not None

        now.now += timedelta(minutes=1)
        assert manager.validate_token(token) is None

    def test_expired_token_dropped(self, manager, now):
        token = manager.login("admin", "pw")
        now.now += timedelta(days=2)
        manager.validate_token(token)

        now.now -= timedelta(days=2)
        assert manager.validate_token(token) is None

    def test_unknown_token(self, manager):
        assert manager.validate_token("not-a-token") is None

    def test_revoke(self, manager):
        token = manager.login("admin", "pw")

        assert manager.revoke_token(token) is True
        assert manager.revoke_token(token) is False
        assert manager.validate_token(token) is None

    def test_clear(self, manager):
        tokens = [manager.generate_token("admin") for _ in range(3)]
        manager.clear()
        assert all(manager.validate_token(t) is None for t in tokens)


class TestBearerToken:

    @pytest.mark.parametrize("header,expected", [
        ("Bearer abc", "abc"),
        ("bearer  abc ", "abc"),
        ("Basic abc", None),
        ("Bearer", None),
        ("Bearer   ", None),
        ("", None),
        (None, None),
    ])
    def test_parse(self, header, expected):
        assert bearer_token(header) == expected
