"""
Search Hackernews stories through the Algolia search API
"""

import asyncio
import logging
from typing import List, Optional

import httpx
from pydantic import BaseModel, ValidationError

from core.entities import Article
from core.errors import UpstreamMalformed, UpstreamUnavailable
from ingestion.base import ProviderPage, SearchProvider

logger = logging.getLogger(__name__)

ITEM_URL = "https://news.ycombinator.com/item?id={id}"
UNKNOWN_AUTHOR = "Unknown"
UNTITLED = "Untitled"


class AlgoliaHit(BaseModel):
    """
    Raw hit as returned by Algolia; every field except objectID is optional.
    """
    objectID: str
    title: Optional[str] = None
    story_title: Optional[str] = None
    url: Optional[str] = None
    author: Optional[str] = None
    created_at: Optional[str] = None
    story_text: Optional[str] = None
    comment_text: Optional[str] = None


class AlgoliaResponse(BaseModel):
    hits: List[AlgoliaHit]
    page: int
    nbPages: int
    nbHits: int


def normalize_hit(hit: AlgoliaHit) -> Optional[Article]:
    """Turn a raw hit into an Article, or None if it has nothing to show."""
    if not (hit.title or hit.story_title or hit.url):
        return None

    return Article(
        id=hit.objectID,
        title=hit.title or hit.story_title or UNTITLED,
        url=hit.url or ITEM_URL.format(id=hit.objectID),
        author=hit.author or UNKNOWN_AUTHOR,
        created_at=hit.created_at,
        text=hit.story_text or hit.comment_text or "",
    )


class HackerNewsSearchProvider(SearchProvider):
    name = "hackernews"

    def __init__(
        self,
        base_url: str = "https://hn.algolia.com/api/v1",
        tags: str = "story",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.tags = tags
        self.timeout = timeout
        self.transport = transport

    async def _get(self, endpoint: str, params: dict) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.get(endpoint, params=params)
            resp.raise_for_status()
            return resp

    async def search(self, query: Optional[str], *, page: int, limit: int) -> ProviderPage:
        params = {"tags": self.tags, "page": page, "hitsPerPage": limit}
        if query:
            endpoint = f"{self.base_url}/search"
            params["query"] = query
        else:
            # No query: most recent stories, a distinct Algolia endpoint
            endpoint = f"{self.base_url}/search_by_date"

        try:
            # httpx timeouts bound each connect/read step; this bounds the whole request
            resp = await asyncio.wait_for(self._get(endpoint, params), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.error(f"Hackernews search timed out after {self.timeout}s: {e}")
            raise UpstreamUnavailable("Upstream HackerNews API timed out") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"Hackernews API error {e.response.status_code}: {e.response.text[:200]}")
            raise UpstreamUnavailable("Upstream HackerNews API error") from e
        except httpx.HTTPError as e:
            logger.error(f"Hackernews API unreachable: {e}")
            raise UpstreamUnavailable("Upstream HackerNews API unreachable") from e

        try:
            data = AlgoliaResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            logger.error(f"Malformed Hackernews payload: {e}")
            raise UpstreamMalformed() from e

        articles = [a for a in (normalize_hit(hit) for hit in data.hits) if a is not None]
        return ProviderPage(
            articles=articles,
            page=data.page,
            total_pages=data.nbPages,
            total_results=data.nbHits,
        )
