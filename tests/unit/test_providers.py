"""Tests for the model registry."""

import pytest

from agentchat.ai.providers import (
    TITLE_MODEL,
    get_chat_model,
    provider_for,
    resolve_model,
    supports_reasoning,
    supports_tools,
)
from agentchat.config import settings
from agentchat.errors import NotFoundError


class TestProviders:
    """Tests for resolving models to providers."""

    def test_alias_resolution(self):
        assert resolve_model(TITLE_MODEL) == settings.title_model
        assert resolve_model("gpt-4o") == "gpt-4o"

    def test_provider_lookup(self):
        assert provider_for("gpt-4o-mini") == "openai"
        assert provider_for("deepseek-reasoner") == "deepseek"

    def test_unknown_model(self):
        with pytest.raises(NotFoundError):
            provider_for("not-a-model")

    def test_capabilities(self):
        assert supports_tools("gpt-4o")
        assert not supports_tools("o1-mini")
        assert supports_reasoning("deepseek-reasoner")
        assert not supports_reasoning("gpt-4o")

    def test_chat_model_options(self):
        llm = get_chat_model("gpt-4o-mini", temperature=0.2)

        assert llm.model_name == "gpt-4o-mini"
        assert llm.temperature == 0.2
        assert llm.stream_usage is True
