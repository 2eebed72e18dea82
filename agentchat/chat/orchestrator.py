"""Chat turn orchestration: validation, persistence, streaming and billing."""

import asyncio
import json
from dataclasses import dataclass
from typing import AsyncIterator

import structlog
from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from agentchat.ai.prompts import TITLE_PROMPT, system_prompt
from agentchat.ai.providers import DEFAULT_CHAT_MODEL, TITLE_MODEL, get_chat_model, supports_tools
from agentchat.ai.tools import ToolContext, select_tools, tool_registry
from agentchat.chat.graph import ChatTurn, UsageTally, run_chat_graph
from agentchat.chat.messages import UIMessage, get_most_recent_user_message, to_langchain_messages
from agentchat.config import settings
from agentchat.database import get_session_context
from agentchat.errors import InsufficientCreditsError, NotFoundError, PermissionDeniedError, ValidationError
from agentchat.models import TransactionType
from agentchat.repositories.chats import (
    delete_chat_by_id,
    get_chat_by_id,
    save_chat,
    update_chat_title,
)
from agentchat.repositories.credits import has_credits, record_usage
from agentchat.repositories.messages import save_messages
from agentchat.repositories.models import get_model_by_id
from agentchat.repositories.records import ChatRecord, ModelRecord
from agentchat.repositories.tools import get_agent_tools
from agentchat.services.auth import SessionUser
from agentchat.streaming import DataStreamWriter, MessageAccumulator
from agentchat.utils import generate_uuid

logger = structlog.get_logger()

NEW_CHAT_TITLE = "New Chat"
TITLE_MAX_LENGTH = 80

DOCUMENT_TOOL_NAMES = {
    "createDocument",
    "createTextDocument",
    "createCodeDocument",
    "createImageDocument",
    "createSheetDocument",
    "createReactDocument",
    "updateDocument",
    "requestSuggestions",
}

# Background tasks are kept referenced until they finish
_background_tasks: set[asyncio.Task] = set()


def _spawn(coro) -> asyncio.Task:
    task = asyncio.create_task(coro)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


class ChatRequest(BaseModel):
    """Body of a chat turn request."""

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    id: str
    messages: list[UIMessage]
    selected_chat_model: str = Field(default=DEFAULT_CHAT_MODEL, alias="selectedChatModel")
    selected_model_id: str = Field(alias="selectedModelId")
    agent_id: str | None = Field(default=None, alias="agentId")
    agent_system_prompt: str | None = Field(default=None, alias="agentSystemPrompt")
    creator_id: str | None = Field(default=None, alias="creatorId")
    search_enabled: bool | None = Field(default=None, alias="searchEnabled")


@dataclass
class PreparedChat:
    chat: ChatRecord
    user_message: UIMessage
    model: ModelRecord
    is_new: bool


async def generate_title_from_user_message(message: UIMessage) -> str:
    llm = get_chat_model(TITLE_MODEL)
    response = await llm.ainvoke(
        [SystemMessage(content=TITLE_PROMPT), HumanMessage(content=message.text())]
    )
    title = str(response.content).strip().replace('"', "").replace(":", "")
    return title[:TITLE_MAX_LENGTH] or NEW_CHAT_TITLE


async def _generate_and_store_title(chat_id: str, message: UIMessage) -> None:
    try:
        title = await generate_title_from_user_message(message)
        async with get_session_context() as session:
            await update_chat_title(session, chat_id, title)
        logger.info("chat_title_generated", chat_id=chat_id, title=title)
    except Exception as e:
        logger.error("title_generation_failed", chat_id=chat_id, error=str(e))


def schedule_title_generation(chat_id: str, message: UIMessage) -> asyncio.Task:
    return _spawn(_generate_and_store_title(chat_id, message))


async def prepare_chat(session: AsyncSession, request: ChatRequest, user: SessionUser) -> PreparedChat:
    """
    Validate a turn and store the user's message.

    Raises:
        InsufficientCreditsError: No credits left
        ValidationError: No user message in the request
        NotFoundError: The selected model does not exist
        PermissionDeniedError: The chat belongs to someone else
    """
    if not await has_credits(session, user.id):
        raise InsufficientCreditsError()

    user_message = get_most_recent_user_message(request.messages)
    if user_message is None:
        raise ValidationError("No user message found")

    # Every turn is billed against a known model
    model = await get_model_by_id(session, request.selected_model_id)
    if model is None:
        raise NotFoundError("Model not found")

    chat = await get_chat_by_id(session, request.id)
    is_new = chat is None
    if chat is None:
        created = await save_chat(
            session,
            chat_id=request.id,
            user_id=user.id,
            title=NEW_CHAT_TITLE,
            agent_id=request.agent_id,
        )
        chat = ChatRecord.model_validate(created)
    elif chat.user_id != user.id:
        logger.warning("chat_access_denied", chat_id=request.id, user_id=user.id)
        raise PermissionDeniedError("Unauthorized")

    await save_messages(
        session,
        [
            {
                "id": user_message.id,
                "chat_id": request.id,
                "role": "user",
                "parts": user_message.stored_parts(),
                "attachments": [a.model_dump(by_alias=True) for a in user_message.attachments],
                "created_at": user_message.created_at,
            }
        ],
        model_id=request.selected_model_id,
    )

    return PreparedChat(chat=chat, user_message=user_message, model=model, is_new=is_new)


async def _agent_tool_names(agent_id: str | None) -> list[str]:
    if not agent_id:
        return []
    async with get_session_context() as session:
        return [t.tool for t in await get_agent_tools(session, agent_id)]


class ChatTurnRunner:
    """Runs one streamed turn and settles it: saves the reply and bills usage."""

    def __init__(self, request: ChatRequest, prepared: PreparedChat, user: SessionUser):
        self.request = request
        self.prepared = prepared
        self.user = user
        self.message_id = generate_uuid()
        self.writer = DataStreamWriter()
        self.accumulator = MessageAccumulator(self.message_id)
        self.usage = UsageTally()
        self.saved_message_ids: set[str] = set()
        self.writer.subscribe(self.accumulator.feed)

    @property
    def transaction_type(self) -> str:
        if self.request.creator_id and self.request.creator_id == self.user.id:
            return TransactionType.SELF_USAGE.value
        return TransactionType.USAGE.value

    async def _build_turn(self) -> tuple[ChatTurn, list]:
        request = self.request
        model = self.prepared.model

        context = ToolContext(
            user_id=self.user.id,
            writer=self.writer,
            agent_id=request.agent_id,
            chat_id=request.id,
            model_id=request.selected_model_id,
        )
        tools = {}
        if supports_tools(request.selected_chat_model):
            names = await _agent_tool_names(request.agent_id)
            tools = select_tools(tool_registry(context), names, request.search_enabled)

        prompt = system_prompt(
            request.agent_system_prompt,
            has_search_tool="searchTool" in tools,
            artifacts_enabled=bool(DOCUMENT_TOOL_NAMES & tools.keys()),
        )
        messages = [SystemMessage(content=prompt), *to_langchain_messages(request.messages)]

        turn = ChatTurn(
            model=request.selected_chat_model,
            writer=self.writer,
            message_id=self.message_id,
            tools=tools,
            context=context,
            usage=self.usage,
            model_options=model.provider_options or {},
        )
        logger.info(
            "chat_turn_started",
            chat_id=request.id,
            model=request.selected_chat_model,
            tools=list(tools),
        )
        return turn, messages

    async def _save_assistant_message(self) -> None:
        message = self.accumulator.to_message()
        if message["id"] in self.saved_message_ids or not self.accumulator.has_content:
            return
        async with get_session_context() as session:
            await save_messages(
                session,
                [
                    {
                        "id": message["id"],
                        "chat_id": self.request.id,
                        "role": "assistant",
                        "parts": message["parts"],
                        "attachments": [],
                    }
                ],
                model_id=self.request.selected_model_id,
            )
        self.saved_message_ids.add(message["id"])

    async def _record_usage(self) -> None:
        model = self.prepared.model
        if not (self.usage.prompt_tokens or self.usage.completion_tokens):
            return
        async with get_session_context() as session:
            await record_usage(
                session,
                user_id=self.user.id,
                prompt_tokens=self.usage.prompt_tokens,
                completion_tokens=self.usage.completion_tokens,
                cost_per_million_input=model.cost_per_million_input_tokens,
                cost_per_million_output=model.cost_per_million_output_tokens,
                transaction_type=self.transaction_type,
                message_id=self.message_id if self.message_id in self.saved_message_ids else None,
                model_id=model.id,
                agent_id=self.request.agent_id,
                description=f"Chat usage ({model.model_display_name})",
            )

    async def _on_finish(self) -> None:
        await self._save_assistant_message()
        await self._record_usage()
        logger.info(
            "chat_turn_finished",
            chat_id=self.request.id,
            prompt_tokens=self.usage.prompt_tokens,
            completion_tokens=self.usage.completion_tokens,
        )

    async def _on_error(self, error: Exception) -> str:
        tally = self.usage.as_payload()
        logger.error("chat_turn_failed", chat_id=self.request.id, error=str(error), usage=tally)
        try:
            await self._save_assistant_message()
        except Exception as e:
            logger.error("partial_message_save_failed", chat_id=self.request.id, error=str(e))
        try:
            await self._record_usage()
        except Exception as e:
            logger.error("usage_record_failed", chat_id=self.request.id, error=str(e))
        return f"Error: {error} (Usage tally: {json.dumps(tally)})"

    async def run(self) -> None:
        try:
            turn, messages = await self._build_turn()
            final = await run_chat_graph(turn, messages, max_steps=settings.chat_max_steps)
            self.writer.write_finish_message(final.get("finish_reason", "unknown"), self.usage.as_payload())
            await self._on_finish()
        except Exception as e:
            self.writer.write_error(await self._on_error(e))
        finally:
            self.writer.close()

    async def stream(self) -> AsyncIterator[str]:
        """Protocol lines of the turn; the turn keeps running if the client goes away."""
        if self.prepared.is_new:
            schedule_title_generation(self.request.id, self.prepared.user_message)
        _spawn(self.run())
        async for line in self.writer:
            yield line


def stream_chat(request: ChatRequest, prepared: PreparedChat, user: SessionUser) -> AsyncIterator[str]:
    return ChatTurnRunner(request, prepared, user).stream()


async def delete_chat(session: AsyncSession, chat_id: str, user: SessionUser) -> None:
    """
    Delete a chat the user owns.

    Raises:
        NotFoundError: No such chat
        PermissionDeniedError: The chat belongs to someone else
    """
    chat = await get_chat_by_id(session, chat_id)
    if chat is None:
        raise NotFoundError("Chat not found")
    if chat.user_id != user.id:
        raise PermissionDeniedError("Unauthorized")
    await delete_chat_by_id(session, chat_id)
