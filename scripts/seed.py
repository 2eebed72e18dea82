#!/usr/bin/env python3
"""Seed models, tools and tool groups, and optionally an admin user."""

import argparse
import asyncio
import sys
from decimal import Decimal
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from agentchat.database import dispose_engine, get_session_context
from agentchat.models import Model, Tool, ToolGroup, ToolGroupTool, TransactionType, User
from agentchat.repositories.credits import add_credits
from agentchat.services.auth import get_auth_service

# (display name, model, provider, type, $ per 1M input, $ per 1M output)
MODELS = [
    ("GPT-4o", "gpt-4o", "openai", "text-large", "2.50", "10.00"),
    ("GPT-4o mini", "gpt-4o-mini", "openai", "text-small", "0.15", "0.60"),
    ("o3-mini", "o3-mini", "openai", "reasoning", "1.10", "4.40"),
    ("Llama 3.3 70B", "llama-3.3-70b-versatile", "groq", "text-large", "0.59", "0.79"),
    ("Llama 3.1 8B", "llama-3.1-8b-instant", "groq", "text-small", "0.05", "0.08"),
    ("Qwen QwQ 32B", "qwen-qwq-32b", "groq", "reasoning", "0.29", "0.39"),
    ("DeepSeek V3", "deepseek-chat", "deepseek", "text-large", "0.27", "1.10"),
    ("DeepSeek R1", "deepseek-reasoner", "deepseek", "reasoning", "0.55", "2.19"),
    ("Mistral Large", "mistral-large-latest", "mistral", "text-large", "2.00", "6.00"),
    ("Sonar Pro", "sonar-pro", "perplexity", "search", "3.00", "15.00"),
    ("Grok 2", "grok-2-1212", "xai", "text-large", "2.00", "10.00"),
]

TOOLS = {
    "getWeather": "Weather",
    "retrieveTool": "Read web page",
    "searchTool": "Web search",
    "newsSearch": "News search",
    "imageSearch": "Image search",
    "createImage": "Create image",
    "createLogo": "Create logo",
    "knowledgeSearch": "Knowledge search",
    "createDocument": "Create document",
    "updateDocument": "Update document",
    "requestSuggestions": "Request suggestions",
    "createTextDocument": "Create text document",
    "createCodeDocument": "Create code document",
    "createImageDocument": "Create image document",
    "createSheetDocument": "Create spreadsheet",
    "createReactDocument": "Create React component",
}

TOOL_GROUPS = {
    "web": ("Web", ["retrieveTool", "searchTool", "newsSearch", "imageSearch"]),
    "artifacts": (
        "Artifacts",
        [
            "createDocument",
            "updateDocument",
            "requestSuggestions",
            "createTextDocument",
            "createCodeDocument",
            "createImageDocument",
            "createSheetDocument",
            "createReactDocument",
        ],
    ),
    "images": ("Images", ["createImage", "createLogo"]),
    "utilities": ("Utilities", ["getWeather"]),
    "knowledge": ("Knowledge", ["knowledgeSearch"]),
}


async def seed_catalogue(session) -> None:
    existing = set((await session.execute(select(Model.model))).scalars().all())
    for display_name, model, provider, model_type, cost_in, cost_out in MODELS:
        if model in existing:
            continue
        session.add(
            Model(
                model_display_name=display_name,
                model=model,
                provider=provider,
                model_type=model_type,
                cost_per_million_input_tokens=Decimal(cost_in),
                cost_per_million_output_tokens=Decimal(cost_out),
            )
        )
    print(f"✓ Models seeded ({len(MODELS)} known)")

    tools = {t.tool: t for t in (await session.execute(select(Tool))).scalars().all()}
    for name, display_name in TOOLS.items():
        if name not in tools:
            tools[name] = Tool(tool=name, tool_display_name=display_name)
            session.add(tools[name])
    await session.flush()
    print(f"✓ Tools seeded ({len(TOOLS)} known)")

    groups = {g.name: g for g in (await session.execute(select(ToolGroup))).scalars().all()}
    for name, (display_name, tool_names) in TOOL_GROUPS.items():
        if name in groups:
            continue
        group = ToolGroup(name=name, display_name=display_name)
        session.add(group)
        await session.flush()
        for tool_name in tool_names:
            session.add(ToolGroupTool(tool_group_id=group.id, tool_id=tools[tool_name].id))
    print(f"✓ Tool groups seeded ({len(TOOL_GROUPS)} known)")


async def seed_admin(session, email: str, credits: Decimal) -> str | None:
    result = await session.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none() is not None:
        print(f"⚠ User {email} already exists, skipping")
        return None

    user = User(email=email, name="Admin", is_admin=True)
    session.add(user)
    await session.flush()

    await add_credits(
        session,
        user.id,
        credits,
        transaction_type=TransactionType.PROMOTIONAL.value,
        description="Initial credits",
    )
    api_key, _ = await get_auth_service().create_api_key(session, user.id, "seed")
    print(f"✓ Admin {email} created with {credits} credits")
    return api_key


async def seed(admin_email: str | None, credits: Decimal) -> None:
    api_key = None
    async with get_session_context() as session:
        await seed_catalogue(session)
        if admin_email:
            api_key = await seed_admin(session, admin_email, credits)
    await dispose_engine()

    if api_key:
        print(f"\nAPI key (shown once): {api_key}")


def main():
    parser = argparse.ArgumentParser(description="Seed the agentchat database")
    parser.add_argument("--admin-email", help="Create an admin user with this email")
    parser.add_argument("--credits", type=Decimal, default=Decimal("10"), help="Initial admin credits")

    args = parser.parse_args()
    asyncio.run(seed(args.admin_email, args.credits))


if __name__ == "__main__":
    main()
