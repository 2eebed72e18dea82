"""Chat turn endpoints."""

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from agentchat.api.middleware.auth import get_current_user
from agentchat.chat.orchestrator import ChatRequest, delete_chat, prepare_chat, stream_chat
from agentchat.database import get_session
from agentchat.services.auth import SessionUser

logger = structlog.get_logger()
router = APIRouter()

STREAM_HEADERS = {
    "x-vercel-ai-data-stream": "v1",
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


@router.post("/chat")
async def post_chat(
    request: ChatRequest,
    session: AsyncSession = Depends(get_session),
    user: SessionUser = Depends(get_current_user),
):
    """
    Run one chat turn and stream it back.

    The response body is the line-oriented data stream. The user message
    is committed before streaming starts; the assistant message and usage
    are stored when the turn finishes.
    """
    prepared = await prepare_chat(session, request, user)
    await session.commit()

    logger.info(
        "chat_request",
        chat_id=request.id,
        user_id=user.id,
        model=request.selected_chat_model,
        agent_id=request.agent_id,
        new_chat=prepared.is_new,
    )

    return StreamingResponse(
        stream_chat(request, prepared, user),
        media_type="text/plain; charset=utf-8",
        headers=STREAM_HEADERS,
    )


@router.delete("/chat")
async def remove_chat(
    id: str = Query(..., min_length=1),
    session: AsyncSession = Depends(get_session),
    user: SessionUser = Depends(get_current_user),
):
    """Delete a chat the caller owns."""
    await delete_chat(session, id, user)
    return {"message": "Chat deleted"}
