"""Credit balance, ledger and token usage of the caller."""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from agentchat.api.middleware.auth import get_current_user
from agentchat.api.schemas import CreditsResponse, TransactionQuery
from agentchat.database import get_session
from agentchat.repositories.credits import get_user_credits, get_user_token_usage, get_user_transactions
from agentchat.services.auth import SessionUser

router = APIRouter(prefix="/credits")


@router.get("", response_model=CreditsResponse)
async def get_credits(
    session: AsyncSession = Depends(get_session),
    user: SessionUser = Depends(get_current_user),
):
    return CreditsResponse(credit_balance=await get_user_credits(session, user.id))


@router.get("/transactions")
async def list_transactions(
    query: TransactionQuery = Depends(),
    session: AsyncSession = Depends(get_session),
    user: SessionUser = Depends(get_current_user),
) -> dict[str, Any]:
    return await get_user_transactions(
        session,
        user.id,
        page=query.page,
        page_size=query.page_size,
        transaction_type=query.type,
        start_date=query.start_date,
        end_date=query.end_date,
    )


@router.get("/usage")
async def token_usage(
    session: AsyncSession = Depends(get_session),
    user: SessionUser = Depends(get_current_user),
) -> list[dict[str, Any]]:
    """Tokens and cost per model."""
    return await get_user_token_usage(session, user.id)
