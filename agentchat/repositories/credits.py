"""Credit balances and the transaction ledger.

Usage is charged in credits at provider cost plus a markup; the markup is
lower when a user chats with an agent they created.
"""

import math
from datetime import date, datetime, time, UTC
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

import structlog
from sqlalchemy import desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from agentchat.cache import get_cache, user_credits_key
from agentchat.config import settings
from agentchat.database import after_commit
from agentchat.models import Message, Model, TokenType, Transaction, TransactionType, UserCredits

logger = structlog.get_logger()

USAGE_MARKUP = Decimal("1.18")
SELF_USAGE_MARKUP = Decimal("1.08")
TOKENS_PER_UNIT = Decimal(1_000_000)
PRECISION = Decimal("0.000000001")

USAGE_TYPES = {TransactionType.USAGE.value, TransactionType.SELF_USAGE.value}
TOP_UP_TYPES = {TransactionType.PURCHASE.value, TransactionType.PROMOTIONAL.value}


def _to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal(0)
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        return Decimal(0)
    return result if result.is_finite() else Decimal(0)


def _token_count(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, float) and math.isnan(value):
        return 0
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def calculate_cost(
    prompt_tokens: Any,
    completion_tokens: Any,
    cost_per_million_input: Any,
    cost_per_million_output: Any,
    transaction_type: str = TransactionType.USAGE.value,
) -> tuple[Decimal, Decimal]:
    """Return the (input, output) charge as negative credit amounts."""
    markup = SELF_USAGE_MARKUP if transaction_type == TransactionType.SELF_USAGE.value else USAGE_MARKUP
    input_cost = (
        Decimal(_token_count(prompt_tokens)) * _to_decimal(cost_per_million_input) / TOKENS_PER_UNIT * markup
    )
    output_cost = (
        Decimal(_token_count(completion_tokens)) * _to_decimal(cost_per_million_output) / TOKENS_PER_UNIT * markup
    )
    return (
        -input_cost.quantize(PRECISION, rounding=ROUND_HALF_UP),
        -output_cost.quantize(PRECISION, rounding=ROUND_HALF_UP),
    )


async def get_user_credits(session: AsyncSession, user_id: str) -> Decimal | None:
    """Current balance from the cache or the database; None without a credit row."""
    cache = get_cache()
    cached = await cache.get_json(user_credits_key(user_id))
    if cached is not None:
        try:
            return Decimal(str(cached))
        except InvalidOperation:
            logger.warning("cached_credits_invalid", user_id=user_id)

    result = await session.execute(
        select(UserCredits.credit_balance).where(UserCredits.user_id == user_id)
    )
    balance = result.scalar_one_or_none()
    if balance is None:
        return None

    await cache.set_json(user_credits_key(user_id), str(balance), settings.credits_cache_ttl)
    return Decimal(balance)


async def has_credits(session: AsyncSession, user_id: str) -> bool:
    credits = await get_user_credits(session, user_id)
    return credits is not None and credits > 0


async def update_user_credits_cache(user_id: str, balance: Decimal) -> None:
    await get_cache().set_json(user_credits_key(user_id), str(balance), settings.credits_cache_ttl)


async def _apply_to_balance(
    session: AsyncSession,
    user_id: str,
    amount: Decimal,
    lifetime: bool = False,
) -> Decimal | None:
    values: dict[str, Any] = {"credit_balance": UserCredits.credit_balance + amount}
    if lifetime:
        values["lifetime_credits"] = UserCredits.lifetime_credits + amount
    result = await session.execute(
        update(UserCredits)
        .where(UserCredits.user_id == user_id)
        .values(**values)
        .returning(UserCredits.credit_balance)
    )
    return result.scalar_one_or_none()


async def record_usage(
    session: AsyncSession,
    *,
    user_id: str,
    prompt_tokens: Any,
    completion_tokens: Any,
    cost_per_million_input: Any,
    cost_per_million_output: Any,
    transaction_type: str = TransactionType.USAGE.value,
    message_id: str | None = None,
    model_id: str | None = None,
    agent_id: str | None = None,
    description: str | None = None,
) -> list[Transaction]:
    """Charge a user for token usage.

    Writes one ledger row per token type when both were used, otherwise a
    single row, then decrements the balance. The cached balance is refreshed
    once the session commits.
    """
    if transaction_type not in USAGE_TYPES:
        raise ValueError(f"Not a usage transaction type: {transaction_type}")

    prompt = _token_count(prompt_tokens)
    completion = _token_count(completion_tokens)
    input_cost, output_cost = calculate_cost(
        prompt, completion, cost_per_million_input, cost_per_million_output, transaction_type
    )
    base = {
        "user_id": user_id,
        "type": transaction_type,
        "message_id": message_id,
        "model_id": model_id,
        "agent_id": agent_id,
    }

    if prompt and completion:
        rows = [
            Transaction(
                **base,
                amount=input_cost,
                description=f"{description} (Input)" if description else "Token usage (Input)",
                token_amount=prompt,
                token_type=TokenType.INPUT.value,
            ),
            Transaction(
                **base,
                amount=output_cost,
                description=f"{description} (Output)" if description else "Token usage (Output)",
                token_amount=completion,
                token_type=TokenType.OUTPUT.value,
            ),
        ]
    else:
        rows = [
            Transaction(
                **base,
                amount=input_cost + output_cost,
                description=description or "Token usage",
                token_amount=prompt + completion,
                token_type=(TokenType.INPUT.value if prompt else TokenType.OUTPUT.value) if (prompt or completion) else None,
            )
        ]

    session.add_all(rows)
    total = input_cost + output_cost
    new_balance = await _apply_to_balance(session, user_id, total)
    await session.flush()

    if new_balance is not None:
        after_commit(session, lambda: update_user_credits_cache(user_id, new_balance))
    logger.info(
        "usage_recorded",
        user_id=user_id,
        type=transaction_type,
        prompt_tokens=prompt,
        completion_tokens=completion,
        amount=str(total),
    )
    return rows


async def add_credits(
    session: AsyncSession,
    user_id: str,
    amount: Decimal | float | str,
    transaction_type: str = TransactionType.PURCHASE.value,
    description: str | None = None,
) -> Decimal:
    """Record a non-usage credit movement and apply it to the balance.

    Purchases and promotions also raise lifetime credits. A user without a
    credit row gets one.
    """
    TransactionType(transaction_type)
    if transaction_type in USAGE_TYPES:
        raise ValueError("Use record_usage for usage transactions")

    value = _to_decimal(amount)
    lifetime = transaction_type in TOP_UP_TYPES

    existing = await session.execute(select(UserCredits).where(UserCredits.user_id == user_id))
    if existing.scalar_one_or_none() is None:
        session.add(UserCredits(user_id=user_id, credit_balance=Decimal(0), lifetime_credits=Decimal(0)))
        await session.flush()

    session.add(
        Transaction(
            user_id=user_id,
            amount=value,
            type=transaction_type,
            description=description,
        )
    )
    new_balance = await _apply_to_balance(session, user_id, value, lifetime=lifetime)
    await session.flush()

    balance = new_balance if new_balance is not None else value
    after_commit(session, lambda: update_user_credits_cache(user_id, balance))
    logger.info("credits_added", user_id=user_id, type=transaction_type, amount=str(value))
    return balance


async def get_user_transactions(
    session: AsyncSession,
    user_id: str,
    page: int = 1,
    page_size: int = 10,
    transaction_type: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> dict[str, Any]:
    """Paginated ledger of a user, newest first. ``end_date`` is inclusive."""
    conditions = [Transaction.user_id == user_id]
    if transaction_type:
        conditions.append(Transaction.type == transaction_type)
    if start_date:
        conditions.append(Transaction.created_at >= datetime.combine(start_date, time.min, tzinfo=UTC))
    if end_date:
        conditions.append(Transaction.created_at <= datetime.combine(end_date, time.max, tzinfo=UTC))

    total = (
        await session.execute(select(func.count()).select_from(Transaction).where(*conditions))
    ).scalar_one()

    result = await session.execute(
        select(Transaction, Message.parts)
        .outerjoin(Message, Transaction.message_id == Message.id)
        .where(*conditions)
        .order_by(desc(Transaction.created_at))
        .limit(page_size)
        .offset((max(page, 1) - 1) * page_size)
    )
    transactions = [
        {
            "id": tx.id,
            "amount": tx.amount,
            "type": tx.type,
            "description": tx.description,
            "created_at": tx.created_at,
            "message_id": tx.message_id,
            "message_content": parts,
        }
        for tx, parts in result.all()
    ]
    return {
        "transactions": transactions,
        "total_count": total,
        "page_count": math.ceil(total / page_size) if page_size else 0,
    }


async def get_user_token_usage(session: AsyncSession, user_id: str) -> list[dict[str, Any]]:
    """Token and cost totals per model, busiest model first."""
    result = await session.execute(
        select(
            Transaction.model_id,
            Transaction.token_type,
            func.sum(Transaction.token_amount),
            func.sum(Transaction.amount),
        )
        .where(
            Transaction.user_id == user_id,
            Transaction.type.in_(USAGE_TYPES),
            Transaction.model_id.is_not(None),
            Transaction.token_amount.is_not(None),
            Transaction.token_type.is_not(None),
        )
        .group_by(Transaction.model_id, Transaction.token_type)
    )
    rows = result.all()
    if not rows:
        return []

    models = await session.execute(select(Model).where(Model.id.in_({r[0] for r in rows})))
    info = {m.id: m for m in models.scalars().all()}

    usage: dict[str, dict[str, Any]] = {}
    for model_id, token_type, tokens, amount in rows:
        model = info.get(model_id)
        entry = usage.setdefault(
            model_id,
            {
                "model_id": model_id,
                "model_name": model.model_display_name if model else "Unknown Model",
                "provider": model.provider if model else "",
                "input_tokens": 0,
                "output_tokens": 0,
                "cost": Decimal(0),
            },
        )
        if token_type == TokenType.INPUT.value:
            entry["input_tokens"] += int(tokens or 0)
        elif token_type == TokenType.OUTPUT.value:
            entry["output_tokens"] += int(tokens or 0)
        entry["cost"] += _to_decimal(amount)

    return sorted(
        (u for u in usage.values() if u["input_tokens"] or u["output_tokens"]),
        key=lambda u: u["input_tokens"] + u["output_tokens"],
        reverse=True,
    )
