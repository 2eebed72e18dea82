"""Text documents, written from a condensed view of the conversation."""

import json
from typing import Any

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, ToolMessage

from agentchat.ai.prompts import ARTICLE_PROMPT, TEXT_DOCUMENT_PROMPT, update_document_prompt
from agentchat.artifacts.base import DocumentHandler, stream_text
from agentchat.models import ArtifactKind, Document
from agentchat.streaming import DataStreamWriter

SEARCH_TOOLS = {"searchTool", "newsSearch"}
MAX_SEARCH_RESULTS = 5
SNIPPET_LIMIT = 200
CODE_LIMIT = 300
STRING_RESULT_LIMIT = 300
HISTORY_SIZE_LIMIT = 100 * 1024
HISTORY_TAIL = 20

ROLE_PREFIXES = {"user": "USER", "assistant": "ASSISTANT", "tool": "TOOL"}


def _truncate(value: str, limit: int) -> str:
    return value[:limit] + "..." if len(value) > limit else value


def _tool_result(message: ToolMessage) -> Any:
    content = message.content
    if isinstance(content, str):
        try:
            return json.loads(content)
        except json.JSONDecodeError:
            return content
    return content


def summarize_search_result(result: Any) -> str:
    result = result if isinstance(result, dict) else {}
    query = result.get("query") or "unknown query"
    items = result.get("results") if isinstance(result.get("results"), list) else []

    summaries = []
    for index, item in enumerate(items[:MAX_SEARCH_RESULTS], start=1):
        title = item.get("title") or "No title"
        url = item.get("url") or item.get("link") or ""
        snippet = item.get("snippet") or item.get("description") or item.get("content") or ""
        extra = []
        if item.get("authors"):
            authors = item["authors"]
            extra.append(f"Authors: {', '.join(authors) if isinstance(authors, list) else authors}")
        if item.get("date") or item.get("published_date"):
            extra.append(f"Date: {item.get('date') or item.get('published_date')}")
        if item.get("source"):
            extra.append(f"Source: {item['source']}")
        summaries.append(
            f"Result {index}: {title}\nURL: {url}\n{' | '.join(extra)}\nSummary: {_truncate(snippet, SNIPPET_LIMIT)}"
        )

    note = ""
    if len(items) > MAX_SEARCH_RESULTS:
        note = f"\n\nNote: Only showing {MAX_SEARCH_RESULTS} of {len(items)} results"
    return f'Search results for "{query}" ({len(items)} results found):{note}\n\n' + "\n\n".join(summaries)


def format_tool_result(tool_name: str | None, result: Any) -> str:
    """One-line summary of a tool result for artifact prompts."""
    name = tool_name or "Unknown tool"
    lowered = name.lower()
    summary = f"{name} result: Tool completed successfully"

    if any(k in lowered for k in ("code", "file", "git")):
        if isinstance(result, dict) and (result.get("code") or result.get("content")):
            code = str(result.get("code") or result.get("content"))
            language = result.get("language", "")
            summary = f"{name} result ({language}): \n```\n{_truncate(code, CODE_LIMIT)}\n```"
        elif isinstance(result, dict) and result.get("message"):
            summary = f"{name} result: {result['message']}"
    elif "image" in lowered or "vision" in lowered:
        if isinstance(result, dict) and result.get("description"):
            summary = f"{name} result: {result['description']}"
        elif isinstance(result, dict) and result.get("caption"):
            summary = f'{name} result: Image described as "{result["caption"]}"'
    elif isinstance(result, (dict, list)):
        summary = f"{name} result: {_truncate(json.dumps(result, default=str), SNIPPET_LIMIT)}"
    elif isinstance(result, str) and result:
        summary = f"{name} result: {_truncate(result, STRING_RESULT_LIMIT)}"
    return summary


def filter_messages(messages: list[BaseMessage]) -> list[dict[str, str]]:
    """Reduce history to user text, assistant text and tool result summaries."""
    filtered = []
    for message in messages:
        if isinstance(message, HumanMessage):
            content = message.content if isinstance(message.content, str) else "User query"
            filtered.append({"role": "user", "content": content})
        elif isinstance(message, AIMessage):
            if isinstance(message.content, str):
                content = message.content
            else:
                content = " ".join(
                    block.get("text", "")
                    for block in message.content
                    if isinstance(block, dict) and block.get("type") == "text"
                )
            filtered.append({"role": "assistant", "content": content})
        elif isinstance(message, ToolMessage):
            result = _tool_result(message)
            if message.name in SEARCH_TOOLS:
                content = summarize_search_result(result)
            else:
                content = format_tool_result(message.name, result)
            filtered.append({"role": "tool", "content": content})
    return filtered


def conversation_text(messages: list[BaseMessage]) -> str:
    filtered = filter_messages(messages)
    if len(json.dumps(filtered)) > HISTORY_SIZE_LIMIT:
        filtered = filtered[-HISTORY_TAIL:]
    return "\n\n".join(f"{ROLE_PREFIXES.get(m['role'], m['role'].upper())}: {m['content']}" for m in filtered)


class TextDocumentHandler(DocumentHandler):
    kind = ArtifactKind.TEXT

    async def on_create_document(
        self,
        *,
        title: str,
        writer: DataStreamWriter,
        messages: list[BaseMessage],
    ) -> str:
        prompt = (
            f"{ARTICLE_PROMPT}\n"
            "Based on the conversation history, write a document about the user's requests.\n"
            f"Conversation history:\n{conversation_text(messages)}\n"
            f"Document title: {title}\n"
        )
        draft = ""
        async for delta in stream_text(TEXT_DOCUMENT_PROMPT, prompt):
            draft += delta
            writer.write_data({"type": "text-delta", "content": delta})
        return draft

    async def on_update_document(
        self,
        *,
        document: Document,
        description: str,
        writer: DataStreamWriter,
    ) -> str:
        draft = ""
        async for delta in stream_text(update_document_prompt(document.content, "text"), description):
            draft += delta
            writer.write_data({"type": "text-delta", "content": delta})
        return draft
