"""Tests for credit accounting."""

from decimal import Decimal

import pytest

from agentchat.cache import user_credits_key
from agentchat.database import run_after_commit
from agentchat.models import TokenType, TransactionType
from agentchat.repositories.credits import (
    add_credits,
    calculate_cost,
    get_user_credits,
    has_credits,
    record_usage,
)


class TestCalculateCost:
    """Tests for the token pricing formula."""

    def test_usage_markup(self):
        input_cost, output_cost = calculate_cost(1_000_000, 500_000, "2.50", "10.00")

        assert input_cost == Decimal("-2.950000000")
        assert output_cost == Decimal("-5.900000000")

    def test_self_usage_markup(self):
        input_cost, output_cost = calculate_cost(
            1_000_000, 0, "1.00", "1.00", TransactionType.SELF_USAGE.value
        )

        assert input_cost == Decimal("-1.080000000")
        assert output_cost == Decimal("0")

    def test_rounds_to_nine_places(self):
        input_cost, _ = calculate_cost(1, 0, "0.15", "0.60")
        assert input_cost == Decimal("-0.000000177")

    def test_bad_inputs_count_as_zero(self):
        assert calculate_cost(None, float("nan"), None, "abc") == (Decimal("0"), Decimal("0"))
        assert calculate_cost(-5, "x", "1", "1") == (Decimal("0"), Decimal("0"))


@pytest.mark.asyncio
class TestBalance:
    """Tests for reading balances through the cache."""

    async def test_cached_balance(self, db_session, fake_cache):
        fake_cache.store[user_credits_key("user-1")] = "12.5"

        assert await get_user_credits(db_session, "user-1") == Decimal("12.5")
        db_session.execute.assert_not_called()

    async def test_balance_loaded_and_cached(self, db_session, fake_cache, make_result):
        db_session.execute.return_value = make_result(Decimal("3.25"))

        assert await get_user_credits(db_session, "user-1") == Decimal("3.25")
        assert fake_cache.store[user_credits_key("user-1")] == "3.25"

    async def test_no_credit_row(self, db_session, make_result):
        db_session.execute.return_value = make_result(None)

        assert await get_user_credits(db_session, "user-1") is None
        assert await has_credits(db_session, "user-1") is False

    async def test_zero_balance_has_no_credits(self, db_session, fake_cache):
        fake_cache.store[user_credits_key("user-1")] = "0"
        assert await has_credits(db_session, "user-1") is False


@pytest.mark.asyncio
class TestRecordUsage:
    """Tests for writing usage to the ledger."""

    async def test_two_rows_for_input_and_output(self, db_session, fake_cache, make_result):
        db_session.execute.return_value = make_result(Decimal("9.0"))

        rows = await record_usage(
            db_session,
            user_id="user-1",
            prompt_tokens=1000,
            completion_tokens=200,
            cost_per_million_input="1",
            cost_per_million_output="2",
            model_id="model-1",
            description="Chat usage",
        )

        assert [r.token_type for r in rows] == [TokenType.INPUT.value, TokenType.OUTPUT.value]
        assert rows[0].description == "Chat usage (Input)"
        assert rows[1].token_amount == 200
        assert all(r.amount < 0 for r in rows)
        db_session.add_all.assert_called_once_with(rows)
        assert user_credits_key("user-1") not in fake_cache.store
        await run_after_commit(db_session)
        assert fake_cache.store[user_credits_key("user-1")] == "9.0"

    async def test_single_row_for_one_token_type(self, db_session, make_result):
        db_session.execute.return_value = make_result(Decimal("1"))

        rows = await record_usage(
            db_session,
            user_id="user-1",
            prompt_tokens=0,
            completion_tokens=50,
            cost_per_million_input="1",
            cost_per_million_output="1",
        )

        assert len(rows) == 1
        assert rows[0].token_type == TokenType.OUTPUT.value
        assert rows[0].description == "Token usage"

    async def test_rejects_non_usage_type(self, db_session):
        with pytest.raises(ValueError):
            await record_usage(
                db_session,
                user_id="user-1",
                prompt_tokens=1,
                completion_tokens=1,
                cost_per_million_input=1,
                cost_per_million_output=1,
                transaction_type=TransactionType.PURCHASE.value,
            )


@pytest.mark.asyncio
class TestAddCredits:
    """Tests for top-ups and adjustments."""

    async def test_creates_credit_row(self, db_session, fake_cache, make_result):
        db_session.execute.side_effect = [make_result(None), make_result(Decimal("5"))]

        balance = await add_credits(db_session, "user-1", "5", TransactionType.PROMOTIONAL.value)

        assert balance == Decimal("5")
        assert db_session.add.call_count == 2
        await run_after_commit(db_session)
        assert fake_cache.store[user_credits_key("user-1")] == "5"

    async def test_usage_type_rejected(self, db_session):
        with pytest.raises(ValueError):
            await add_credits(db_session, "user-1", "5", TransactionType.USAGE.value)

    async def test_unknown_type_rejected(self, db_session):
        with pytest.raises(ValueError):
            await add_credits(db_session, "user-1", "5", "gift")
