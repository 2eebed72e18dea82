"""Domain exceptions and the action result shape."""

from typing import Any

from pydantic import BaseModel

INSUFFICIENT_CREDITS_MESSAGE = (
    "You have insufficient credits to continue. "
    "Please purchase more credits to continue chatting."
)


class AgentChatError(Exception):
    """Base class for application errors."""


class NotFoundError(AgentChatError):
    pass


class PermissionDeniedError(AgentChatError):
    pass


class InsufficientCreditsError(AgentChatError):
    def __init__(self, message: str = INSUFFICIENT_CREDITS_MESSAGE):
        super().__init__(message)


class ValidationError(AgentChatError):
    pass


class ToolExecutionError(AgentChatError):
    pass


class StorageError(AgentChatError):
    pass


class ActionResult(BaseModel):
    """Outcome of a mutating operation exposed over the API."""

    success: bool
    data: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, data: Any = None) -> "ActionResult":
        return cls(success=True, data=data)
