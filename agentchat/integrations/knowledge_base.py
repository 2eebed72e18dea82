"""Agent knowledge: site crawling, chunking, embedding and similarity search."""

from collections import deque
from typing import Any, Iterator
from urllib.parse import urldefrag, urljoin, urlparse

import httpx
import structlog
from bs4 import BeautifulSoup
from langchain_openai import OpenAIEmbeddings
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from agentchat.config import settings
from agentchat.models import KnowledgeChunk

logger = structlog.get_logger()

CHARS_PER_TOKEN = 4
EMBED_BATCH_SIZE = 100
BOILERPLATE_TAGS = ["script", "style", "noscript", "nav", "header", "footer", "aside"]


def extract_text(soup: BeautifulSoup) -> str:
    """Main readable text of a page, without navigation chrome or scripts."""
    for tag in soup.find_all(BOILERPLATE_TAGS):
        tag.decompose()
    root = soup.find("main") or soup.find("article") or soup.body
    return root.get_text(separator="\n", strip=True) if root else ""


class WebScraper:
    """Breadth-first crawl of one site, staying on the start URL's host."""

    def __init__(self, base_url: str, max_pages: int = 20, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.host = urlparse(self.base_url).netloc
        self.max_pages = max_pages
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers={"User-Agent": "AgentChatKnowledgeBot/1.0"},
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _same_site(self, url: str) -> bool:
        parsed = urlparse(url)
        return parsed.scheme in ("http", "https") and parsed.netloc == self.host

    @staticmethod
    def _canonical(url: str) -> str:
        """URL without fragment, query or trailing slash, for visit tracking."""
        parsed = urlparse(urldefrag(url).url)
        return f"{parsed.scheme}://{parsed.netloc}{parsed.path.rstrip('/')}"

    async def _fetch_html(self, url: str) -> httpx.Response | None:
        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("scrape_page_error", url=url, error=str(e))
            return None
        if "text/html" not in response.headers.get("content-type", ""):
            return None
        return response

    async def scrape(self) -> list[dict[str, Any]]:
        """
        Crawl the site and return its pages.

        Returns:
            List of dicts: [{"url": str, "title": str, "content": str}, ...]
        """
        queue = deque([self.base_url])
        seen: set[str] = set()
        pages: list[dict[str, Any]] = []

        while queue and len(seen) < self.max_pages:
            url = queue.popleft()
            key = self._canonical(url)
            if key in seen:
                continue
            seen.add(key)

            response = await self._fetch_html(url)
            if response is None:
                continue

            soup = BeautifulSoup(response.text, "lxml")
            title = soup.title.string.strip() if soup.title and soup.title.string else ""
            # Navigation is stripped by extract_text, so links come first
            links = [urljoin(url, a["href"]) for a in soup.find_all("a", href=True)]
            content = extract_text(soup)
            if content:
                pages.append({"url": str(response.url), "title": title, "content": content})

            queue.extend(
                link for link in links if self._same_site(link) and self._canonical(link) not in seen
            )

        logger.info("scrape_completed", url=self.base_url, pages=len(pages), visited=len(seen))
        return pages


def _overlap_tail(lines: list[str], budget: int) -> list[str]:
    """Trailing lines of a chunk that fit in the overlap budget."""
    kept: list[str] = []
    used = 0
    for line in reversed(lines):
        used += len(line)
        if used > budget:
            break
        kept.append(line)
    kept.reverse()
    return kept


def chunk_text(text: str, chunk_size: int = 500, chunk_overlap: int = 50) -> list[str]:
    """
    Split text on line boundaries into chunks of about ``chunk_size`` tokens.

    Sizes are estimated at four characters per token. Each chunk after the
    first repeats the trailing lines of the previous one, up to
    ``chunk_overlap`` tokens.
    """
    budget = chunk_size * CHARS_PER_TOKEN
    overlap_budget = chunk_overlap * CHARS_PER_TOKEN

    chunks: list[str] = []
    window: list[str] = []
    size = 0
    for line in (raw.strip() for raw in text.splitlines()):
        if not line:
            continue
        if window and size + len(line) > budget:
            chunks.append("\n".join(window))
            window = _overlap_tail(window, overlap_budget)
            size = sum(len(w) for w in window)
        window.append(line)
        size += len(line)

    if window:
        chunks.append("\n".join(window))
    return chunks


def _page_chunks(pages: list[dict[str, Any]]) -> Iterator[dict[str, Any]]:
    for page in pages:
        pieces = chunk_text(
            page["content"],
            chunk_size=settings.kb_chunk_size,
            chunk_overlap=settings.kb_chunk_overlap,
        )
        for index, content in enumerate(pieces):
            yield {
                "source_url": page.get("url"),
                "title": page.get("title", ""),
                "content": content,
                "chunk_index": index,
            }


class KnowledgeBaseClient:
    """Embeds knowledge items of agents and finds the chunks closest to a query."""

    def __init__(self) -> None:
        self._embeddings: OpenAIEmbeddings | None = None

    @property
    def embeddings(self) -> OpenAIEmbeddings:
        if self._embeddings is None:
            self._embeddings = OpenAIEmbeddings(
                model=settings.kb_embedding_model,
                dimensions=settings.kb_embedding_dimensions,
                api_key=settings.openai_api_key,
            )
        return self._embeddings

    async def ingest_item(
        self,
        session: AsyncSession,
        agent_id: str,
        knowledge_item_id: str,
        pages: list[dict[str, Any]],
    ) -> int:
        """
        Replace the stored chunks of one knowledge item with fresh ones.

        Returns:
            Number of chunks created
        """
        await session.execute(
            delete(KnowledgeChunk).where(KnowledgeChunk.knowledge_item_id == knowledge_item_id)
        )

        chunks = list(_page_chunks(pages))
        if not chunks:
            logger.warning("no_chunks_generated", agent_id=agent_id, knowledge_item_id=knowledge_item_id)
            return 0

        for start in range(0, len(chunks), EMBED_BATCH_SIZE):
            batch = chunks[start : start + EMBED_BATCH_SIZE]
            vectors = await self.embeddings.aembed_documents([c["content"] for c in batch])
            for chunk, vector in zip(batch, vectors, strict=True):
                session.add(
                    KnowledgeChunk(
                        agent_id=agent_id,
                        knowledge_item_id=knowledge_item_id,
                        embedding=vector,
                        extra_data={},
                        **chunk,
                    )
                )

        await session.flush()
        logger.info("knowledge_ingested", agent_id=agent_id, knowledge_item_id=knowledge_item_id, chunks=len(chunks))
        return len(chunks)

    async def search(
        self,
        session: AsyncSession,
        agent_id: str,
        query: str,
        top_k: int = 5,
        threshold: float = 0.3,
    ) -> list[dict[str, Any]]:
        """
        Chunks of the agent's knowledge with cosine similarity of at least
        ``threshold``, most similar first.
        """
        vector = await self.embeddings.aembed_query(query)
        distance = KnowledgeChunk.embedding.cosine_distance(vector)

        result = await session.execute(
            select(KnowledgeChunk.content, KnowledgeChunk.source_url, KnowledgeChunk.title, distance.label("distance"))
            .where(KnowledgeChunk.agent_id == agent_id, distance <= 1.0 - threshold)
            .order_by(distance)
            .limit(top_k)
        )
        return [
            {
                "content": row.content,
                "source_url": row.source_url,
                "title": row.title,
                "score": 1.0 - float(row.distance),
            }
            for row in result.all()
        ]


_kb_client: KnowledgeBaseClient | None = None


def get_kb_client() -> KnowledgeBaseClient:
    """Get or create the knowledge base client singleton."""
    global _kb_client
    if _kb_client is None:
        _kb_client = KnowledgeBaseClient()
    return _kb_client
