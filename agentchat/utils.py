"""Small shared helpers."""

import re
from uuid import uuid4


def generate_uuid() -> str:
    return str(uuid4())


def slugify(value: str) -> str:
    """Lowercase, strip punctuation and join words with hyphens."""
    value = value.lower()
    value = re.sub(r"[^\w\s-]", "", value)
    value = re.sub(r"[\s_-]+", "-", value)
    return value.strip("-")


def generate_agent_slug(name: str, agent_id: str) -> str:
    return f"{slugify(name)}_{agent_id}"


def parse_agent_slug(slug: str) -> tuple[str, str]:
    """Split an agent slug into (slugified name, agent id).

    The id follows the last underscore; a slug without one is all id.
    """
    name, sep, agent_id = slug.rpartition("_")
    if not sep:
        return "", slug
    return name, agent_id
