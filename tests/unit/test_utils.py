"""Tests for shared helpers."""

from agentchat.utils import generate_agent_slug, generate_uuid, parse_agent_slug, slugify


class TestSlugs:
    """Tests for agent slug handling."""

    def test_slugify(self):
        assert slugify("  My Cool Agent!! ") == "my-cool-agent"
        assert slugify("snake_case name") == "snake-case-name"

    def test_generate_and_parse(self):
        agent_id = generate_uuid()
        slug = generate_agent_slug("Travel Planner", agent_id)

        assert slug == f"travel-planner_{agent_id}"
        assert parse_agent_slug(slug) == ("travel-planner", agent_id)

    def test_parse_without_separator(self):
        assert parse_agent_slug("abc-123") == ("", "abc-123")

    def test_uuid_unique(self):
        assert generate_uuid() != generate_uuid()
