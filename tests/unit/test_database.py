"""Tests for session scopes and post-commit work."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from agentchat.database import after_commit, get_session_context


def session_factory(session) -> MagicMock:
    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=session)
    factory.return_value.__aexit__ = AsyncMock(return_value=False)
    return factory


@pytest.mark.asyncio
class TestSessionContext:
    """Tests for the unit-of-work scope."""

    async def test_callbacks_run_after_commit(self, db_session):
        order = []
        db_session.commit.side_effect = lambda: order.append("commit")

        async def refresh():
            order.append("refresh")

        with patch("agentchat.database.get_session_factory", return_value=session_factory(db_session)):
            async with get_session_context() as session:
                after_commit(session, refresh)
                assert order == []

        assert order == ["commit", "refresh"]
        assert "after_commit" not in db_session.info

    async def test_callbacks_dropped_on_rollback(self, db_session):
        refresh = AsyncMock()

        with patch("agentchat.database.get_session_factory", return_value=session_factory(db_session)):
            with pytest.raises(RuntimeError):
                async with get_session_context() as session:
                    after_commit(session, refresh)
                    raise RuntimeError("constraint violated")

        db_session.rollback.assert_awaited_once()
        db_session.commit.assert_not_awaited()
        refresh.assert_not_awaited()
        assert "after_commit" not in db_session.info
