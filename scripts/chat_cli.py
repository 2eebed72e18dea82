#!/usr/bin/env python3
"""Chat with an agentchat server from the terminal."""

import argparse
import asyncio
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from agentchat.chat.messages import UIMessage
from agentchat.chat.orchestrator import ChatRequest
from agentchat.client import ChatStreamClient
from agentchat.errors import InsufficientCreditsError, PermissionDeniedError
from agentchat.streaming import ArtifactState, MessageAccumulator, StreamPartType
from agentchat.utils import generate_uuid


async def chat(base_url: str, api_key: str, model: str, agent_id: str | None) -> None:
    client = ChatStreamClient(base_url, api_key)
    chat_id = generate_uuid()
    history: list[UIMessage] = []

    try:
        model_id = next((m["id"] for m in await client.list_models() if m["model"] == model), None)
        if model_id is None:
            print(f"✗ Unknown model: {model}")
            return
        print(f"Chat {chat_id} with {model}. Empty line to quit.\n")

        while True:
            text = input("you> ").strip()
            if not text:
                break

            history.append(UIMessage(id=generate_uuid(), role="user", content=text))
            accumulator = MessageAccumulator()
            artifact = ArtifactState()
            request = ChatRequest(
                id=chat_id,
                messages=history,
                selected_chat_model=model,
                selected_model_id=model_id,
                agent_id=agent_id,
            )

            print("assistant> ", end="", flush=True)
            try:
                async for part in client.stream_chat(request, accumulator, artifact):
                    if part.type == StreamPartType.TEXT:
                        print(part.value, end="", flush=True)
                    elif part.type == StreamPartType.TOOL_CALL:
                        print(f"\n  [tool {part.value['toolName']}]", flush=True)
                    elif part.type == StreamPartType.ERROR:
                        print(f"\n  [error] {part.value}", flush=True)
            except (PermissionDeniedError, InsufficientCreditsError) as e:
                print(f"\n✗ {e}")
                history.pop()
                continue
            print()

            if artifact.is_visible:
                print(f"\n--- {artifact.kind}: {artifact.title} ---\n{artifact.content}\n---")

            message = accumulator.to_message()
            history.append(
                UIMessage(
                    id=message["id"],
                    role="assistant",
                    content=message["content"],
                    parts=message["parts"],
                )
            )

            if len(history) == 2:
                print(f"(title: {await client.fetch_title_with_retry(chat_id)})")
    finally:
        await client.close()


def main():
    parser = argparse.ArgumentParser(description="Terminal chat client")
    parser.add_argument("--url", default="http://localhost:8000", help="Server base URL")
    parser.add_argument("--api-key", default=os.environ.get("AGENTCHAT_API_KEY"), help="User API key")
    parser.add_argument("--model", default="gpt-4o", help="Chat model")
    parser.add_argument("--agent-id", help="Agent to chat with")

    args = parser.parse_args()
    if not args.api_key:
        parser.error("an API key is required (--api-key or AGENTCHAT_API_KEY)")
    asyncio.run(chat(args.url, args.api_key, args.model, args.agent_id))


if __name__ == "__main__":
    main()
