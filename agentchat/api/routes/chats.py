"""Chat history endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from agentchat.api.middleware.auth import get_current_user, get_optional_user
from agentchat.api.schemas import ChatTitleResponse, ChatUpdateRequest
from agentchat.database import get_session
from agentchat.errors import ActionResult, NotFoundError, PermissionDeniedError
from agentchat.models import Visibility
from agentchat.repositories.chats import (
    get_chat_by_id,
    get_chats_by_user_id,
    search_chats,
    update_chat_title,
    update_chat_visibility,
)
from agentchat.repositories.messages import delete_messages_after, get_message_by_id, get_messages_by_chat_id
from agentchat.repositories.records import ChatRecord, ChatSummary, MessageRecord
from agentchat.services.auth import SessionUser

router = APIRouter()


async def _readable_chat(session: AsyncSession, chat_id: str, user: SessionUser | None) -> ChatRecord:
    """A chat the caller may read: their own, or one shared beyond private."""
    chat = await get_chat_by_id(session, chat_id)
    if chat is None:
        raise NotFoundError("Chat not found")
    if chat.visibility == Visibility.PRIVATE.value and (user is None or user.id != chat.user_id):
        raise PermissionDeniedError("Unauthorized")
    return chat


async def _owned_chat(session: AsyncSession, chat_id: str, user: SessionUser) -> ChatRecord:
    chat = await get_chat_by_id(session, chat_id)
    if chat is None:
        raise NotFoundError("Chat not found")
    if chat.user_id != user.id:
        raise PermissionDeniedError("Unauthorized")
    return chat


@router.get("/chats", response_model=list[ChatSummary])
async def list_chats(
    q: str | None = Query(None, max_length=200),
    session: AsyncSession = Depends(get_session),
    user: SessionUser = Depends(get_current_user),
):
    """The caller's chats, newest first, or ranked matches for ``q``."""
    if q:
        return await search_chats(session, user.id, q)
    return await get_chats_by_user_id(session, user.id)


@router.get("/chats/{chat_id}", response_model=ChatRecord)
async def get_chat(
    chat_id: str,
    session: AsyncSession = Depends(get_session),
    user: SessionUser | None = Depends(get_optional_user),
):
    return await _readable_chat(session, chat_id, user)


@router.get("/chats/{chat_id}/messages", response_model=list[MessageRecord])
async def get_chat_messages(
    chat_id: str,
    session: AsyncSession = Depends(get_session),
    user: SessionUser | None = Depends(get_optional_user),
):
    await _readable_chat(session, chat_id, user)
    return await get_messages_by_chat_id(session, chat_id)


@router.get("/chats/{chat_id}/title", response_model=ChatTitleResponse)
async def get_chat_title(
    chat_id: str,
    session: AsyncSession = Depends(get_session),
    user: SessionUser = Depends(get_current_user),
):
    """Current title; polled by clients while a new chat is being named."""
    chat = await _owned_chat(session, chat_id, user)
    return ChatTitleResponse(id=chat.id, title=chat.title)


@router.patch("/chats/{chat_id}", response_model=ChatRecord)
async def patch_chat(
    chat_id: str,
    request: ChatUpdateRequest,
    session: AsyncSession = Depends(get_session),
    user: SessionUser = Depends(get_current_user),
):
    await _owned_chat(session, chat_id, user)
    if request.title is not None:
        await update_chat_title(session, chat_id, request.title)
    if request.visibility is not None:
        await update_chat_visibility(session, chat_id, request.visibility)
    return await get_chat_by_id(session, chat_id)


@router.delete("/chats/{chat_id}/messages/{message_id}/trailing", response_model=ActionResult)
async def delete_trailing_messages(
    chat_id: str,
    message_id: str,
    session: AsyncSession = Depends(get_session),
    user: SessionUser = Depends(get_current_user),
):
    """Remove a message and everything after it, e.g. before regenerating a reply."""
    await _owned_chat(session, chat_id, user)
    message = await get_message_by_id(session, message_id)
    if message is None or message.chat_id != chat_id or message.created_at is None:
        raise NotFoundError("Message not found")
    deleted = await delete_messages_after(session, chat_id, message.created_at)
    return ActionResult.ok({"deleted": deleted})
