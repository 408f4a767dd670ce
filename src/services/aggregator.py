"""
ResultAggregator - enriches one page of provider results with local ratings
and comments.

The provider call runs first (item ids are unknown until it returns), then
ratings and comments for every item are fetched concurrently. Nothing derived
here is persisted; summaries are recomputed on every request.
"""
import asyncio
import logging
from typing import Optional, Tuple

from core.entities import (
    Article,
    EnrichedItem,
    EnrichedResultPage,
    Identity,
    RatingSummary,
)
from core.errors import Internal, InvalidArgument
from ingestion.base import SearchProvider
from services.annotations import AnnotationStore

logger = logging.getLogger(__name__)


def normalize_query(query: Optional[str]) -> Optional[str]:
    """Blank queries mean "browse recent"."""
    if query is None:
        return None
    query = query.strip()
    return query or None


class ResultAggregator:
    def __init__(
        self,
        provider: SearchProvider,
        store: AnnotationStore,
        *,
        page_size: int = 20,
        max_page_size: int = 100,
        strict_enrichment: bool = False,
        max_concurrency: int = 8,
    ):
        self.provider = provider
        self.store = store
        self.page_size = page_size
        self.max_page_size = max_page_size
        self.strict_enrichment = strict_enrichment
        self.max_concurrency = max_concurrency

    def normalize_paging(self, page: int, limit: Optional[int]) -> Tuple[int, int]:
        if page < 0:
            raise InvalidArgument("page must be >= 0")
        if limit is not None and limit < 0:
            raise InvalidArgument("limit must be >= 0")
        if not limit:
            # omitted or 0 means the default page size
            limit = self.page_size
        return page, min(limit, self.max_page_size)

    async def fetch_page(
        self,
        query: Optional[str],
        page: int = 0,
        limit: Optional[int] = None,
        viewer: Optional[Identity] = None,
    ) -> EnrichedResultPage:
        """
        Search the provider and enrich every hit, preserving provider order.

        Raises:
            InvalidArgument: bad page or limit
            UpstreamUnavailable / UpstreamMalformed: provider failure
            Internal: annotation failure while strict_enrichment is on
        """
        query = normalize_query(query)
        page, limit = self.normalize_paging(page, limit)

        provider_page = await self.provider.search(query, page=page, limit=limit)

        semaphore = asyncio.Semaphore(self.max_concurrency)
        items = await asyncio.gather(
            *(self._enrich(article, viewer, semaphore) for article in provider_page.articles)
        )

        logger.info(
            f"Served {'search' if query else 'recent'} page {provider_page.page} "
            f"with {len(items)} items"
        )
        return EnrichedResultPage(
            items=list(items),
            page=provider_page.page,
            total_pages=provider_page.total_pages,
            total_results=provider_page.total_results,
        )

    async def _enrich(
        self,
        article: Article,
        viewer: Optional[Identity],
        semaphore: asyncio.Semaphore,
    ) -> EnrichedItem:
        async with semaphore:
            try:
                ratings, comments = await asyncio.gather(
                    self.store.list_ratings(article.id),
                    self.store.list_comments(article.id),
                )
            except Internal as e:
                if self.strict_enrichment:
                    raise
                logger.warning(f"Annotations unavailable for item {article.id}: {e}")
                return EnrichedItem(
                    article=article,
                    summary=RatingSummary.from_values([]),
                    annotations_available=False,
                )

        viewer_rating = None
        if viewer is not None:
            viewer_rating = next(
                (r.value for r in ratings if r.user_id == viewer.user_id), None
            )

        return EnrichedItem(
            article=article,
            summary=RatingSummary.from_values(r.value for r in ratings),
            viewer_rating=viewer_rating,
            comments=comments,
        )
