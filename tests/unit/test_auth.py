"""Tests for API key authentication."""

from types import SimpleNamespace

import bcrypt
import pytest

from agentchat.services.auth import AuthService


@pytest.fixture
def auth_service() -> AuthService:
    return AuthService()


def key_record(full_key: str, **kwargs) -> SimpleNamespace:
    return SimpleNamespace(
        name="cli",
        key_hash=bcrypt.hashpw(full_key.encode(), bcrypt.gensalt()).decode(),
        last_used_at=None,
        user=SimpleNamespace(id="user-1", email="user@example.com", is_admin=False),
        **kwargs,
    )


class TestGenerateApiKey:
    """Tests for key generation."""

    def test_shape(self):
        full_key, prefix, key_hash = AuthService.generate_api_key()

        assert full_key.startswith("ak_")
        assert prefix == full_key[:11]
        assert bcrypt.checkpw(full_key.encode(), key_hash.encode())

    def test_unique(self):
        assert AuthService.generate_api_key()[0] != AuthService.generate_api_key()[0]


@pytest.mark.asyncio
class TestVerifyApiKey:
    """Tests for key verification."""

    async def test_wrong_prefix(self, auth_service, db_session):
        assert await auth_service.verify_api_key(db_session, "sk_something_long") is None
        db_session.execute.assert_not_called()

    async def test_valid_key(self, auth_service, db_session, make_result):
        full_key, _, _ = AuthService.generate_api_key()
        record = key_record(full_key)
        db_session.execute.return_value = make_result([record])

        user = await auth_service.verify_api_key(db_session, full_key)

        assert user.id == "user-1"
        assert user.is_admin is False
        assert record.last_used_at is not None

    async def test_hash_mismatch(self, auth_service, db_session, make_result):
        full_key, _, _ = AuthService.generate_api_key()
        other_key, _, _ = AuthService.generate_api_key()
        db_session.execute.return_value = make_result([key_record(other_key)])

        assert await auth_service.verify_api_key(db_session, full_key) is None

    async def test_create_api_key(self, auth_service, db_session):
        api_key, record = await auth_service.create_api_key(db_session, "user-1", "laptop")

        assert api_key.startswith("ak_")
        assert record.key_prefix == api_key[:11]
        db_session.add.assert_called_once_with(record)

    async def test_revoke_missing(self, auth_service, db_session, make_result):
        db_session.execute.return_value = make_result(None)
        assert await auth_service.revoke_api_key(db_session, "key-1", "user-1") is False
