"""Language model registry.

Every provider is reached through its OpenAI-compatible endpoint, so one
``ChatOpenAI`` client class covers them all.
"""

from dataclasses import dataclass
from typing import Any

from langchain_openai import ChatOpenAI

from agentchat.config import settings
from agentchat.errors import NotFoundError

DEFAULT_CHAT_MODEL = settings.default_chat_model

TITLE_MODEL = "title-model"
ARTIFACT_MODEL = "artifact-model"


@dataclass(frozen=True)
class ProviderConfig:
    api_key_setting: str
    base_url_setting: str


PROVIDERS: dict[str, ProviderConfig] = {
    "openai": ProviderConfig("openai_api_key", "openai_base_url"),
    "groq": ProviderConfig("groq_api_key", "groq_base_url"),
    "deepseek": ProviderConfig("deepseek_api_key", "deepseek_base_url"),
    "mistral": ProviderConfig("mistral_api_key", "mistral_base_url"),
    "xai": ProviderConfig("xai_api_key", "xai_base_url"),
    "perplexity": ProviderConfig("perplexity_api_key", "perplexity_base_url"),
    "anthropic": ProviderConfig("anthropic_api_key", "anthropic_base_url"),
    "google": ProviderConfig("google_api_key", "google_base_url"),
}

MODEL_PROVIDERS: dict[str, str] = {
    # OpenAI
    "gpt-4o-mini": "openai",
    "gpt-4o": "openai",
    "o1-mini": "openai",
    "o1": "openai",
    "o3-mini": "openai",
    # Perplexity
    "sonar-pro": "perplexity",
    "sonar": "perplexity",
    "sonar-reasoning-pro": "perplexity",
    "r1-1776": "perplexity",
    # Mistral
    "pixtral-large-latest": "mistral",
    "mistral-small-latest": "mistral",
    "mistral-large-latest": "mistral",
    # Groq
    "llama-3.3-70b-versatile": "groq",
    "llama-3.1-8b-instant": "groq",
    "gemma2-9b-it": "groq",
    "mixtral-8x7b-32768": "groq",
    "qwen-qwq-32b": "groq",
    "mistral-saba-24b": "groq",
    # DeepSeek
    "deepseek-chat": "deepseek",
    "deepseek-reasoner": "deepseek",
    # Anthropic
    "claude-3-5-sonnet-20241022": "anthropic",
    "claude-3-5-haiku-20241022": "anthropic",
    "claude-3-7-sonnet-20250219": "anthropic",
    # Google
    "gemini-2.0-flash-exp": "google",
    "gemini-1.5-pro": "google",
    "gemini-1.5-flash": "google",
    # xAI
    "grok-2-1212": "xai",
    "grok-2-latest": "xai",
}

# Models whose endpoints reject tool definitions
NO_TOOL_MODELS = {
    "o1-mini",
    "deepseek-reasoner",
    "sonar",
    "sonar-pro",
    "sonar-reasoning-pro",
    "r1-1776",
}

# Models that stream their chain of thought in ``reasoning_content``
REASONING_MODELS = {"deepseek-reasoner", "qwen-qwq-32b", "sonar-reasoning-pro", "r1-1776"}


def resolve_model(identifier: str) -> str:
    """Map the title/artifact aliases to their configured models."""
    if identifier == TITLE_MODEL:
        return settings.title_model
    if identifier == ARTIFACT_MODEL:
        return settings.artifact_model
    return identifier


def provider_for(identifier: str) -> str:
    model = resolve_model(identifier)
    provider = MODEL_PROVIDERS.get(model)
    if provider is None:
        raise NotFoundError(f"Unknown model: {identifier}")
    return provider


def supports_tools(identifier: str) -> bool:
    return resolve_model(identifier) not in NO_TOOL_MODELS


def supports_reasoning(identifier: str) -> bool:
    return resolve_model(identifier) in REASONING_MODELS


def get_chat_model(identifier: str, **options: Any) -> ChatOpenAI:
    """Build a streaming chat client for a registered model.

    ``options`` are passed through to ``ChatOpenAI`` (temperature,
    max_tokens, model_kwargs from a model's provider options, ...).
    """
    model = resolve_model(identifier)
    config = PROVIDERS[provider_for(model)]
    base_url = getattr(settings, config.base_url_setting)
    kwargs: dict[str, Any] = {
        "model": model,
        "api_key": getattr(settings, config.api_key_setting) or "missing",
        "stream_usage": True,
    }
    if base_url:
        kwargs["base_url"] = base_url
    kwargs.update(options)
    return ChatOpenAI(**kwargs)
