#!/usr/bin/env python3
"""Scrape a website and ingest it as knowledge of an agent."""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from agentchat.config import settings
from agentchat.database import dispose_engine, get_session_context
from agentchat.integrations.knowledge_base import WebScraper, get_kb_client
from agentchat.models import KnowledgeType
from agentchat.repositories.agents import insert_knowledge


async def ingest(agent_id: str, url: str, title: str, max_pages: int) -> None:
    """Scrape a website and ingest its content."""
    print(f"Scraping {url} (max {max_pages} pages)...")

    scraper = WebScraper(base_url=url, max_pages=max_pages, timeout=settings.kb_scrape_timeout)
    try:
        pages = await scraper.scrape()
    finally:
        await scraper.close()

    print(f"Scraped {len(pages)} pages.")

    if not pages:
        print("No content found. Nothing to ingest.")
        return

    async with get_session_context() as session:
        item = await insert_knowledge(
            session,
            agent_id=agent_id,
            title=title,
            content={"pages": [{"url": p["url"], "title": p["title"]} for p in pages]},
            type=KnowledgeType.URL.value,
            source_url=url,
        )
        chunks_created = await get_kb_client().ingest_item(session, agent_id, item.id, pages)
    await dispose_engine()

    print(f"Ingested {chunks_created} chunks for agent {agent_id}.")


def main():
    parser = argparse.ArgumentParser(description="Scrape and ingest a website into an agent's knowledge")
    parser.add_argument("--agent-id", required=True, help="Agent UUID to attach the knowledge to")
    parser.add_argument("--url", required=True, help="Base URL to scrape")
    parser.add_argument("--title", help="Knowledge item title (default: the URL)")
    parser.add_argument(
        "--max-pages",
        type=int,
        default=settings.kb_scrape_max_pages,
        help=f"Maximum pages to scrape (default: {settings.kb_scrape_max_pages})",
    )

    args = parser.parse_args()
    asyncio.run(ingest(args.agent_id, args.url, args.title or args.url, args.max_pages))


if __name__ == "__main__":
    main()
