"""HTTP client for the chat API."""

from agentchat.client.chat import ChatStreamClient

__all__ = ["ChatStreamClient"]
