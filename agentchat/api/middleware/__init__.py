"""API middleware and request dependencies."""

from agentchat.api.middleware.auth import get_current_user, get_optional_user, require_admin
from agentchat.api.middleware.rate_limit import RateLimitMiddleware

__all__ = ["RateLimitMiddleware", "get_current_user", "get_optional_user", "require_admin"]
