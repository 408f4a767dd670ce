"""
Base classes for search providers
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from core.entities import Article


@dataclass(frozen=True)
class ProviderPage:
    """
    One page of normalized results plus the provider's own paging metadata.
    """
    articles: List[Article]
    page: int
    total_pages: int
    total_results: int


class SearchProvider(ABC):
    """
    Base interface for external search providers.
    """

    name: str

    @abstractmethod
    async def search(self, query: Optional[str], *, page: int, limit: int) -> ProviderPage:
        """
        Fetch one page of results.
        query=None requests most-recent ordering instead of relevance.
        Must raise UpstreamUnavailable / UpstreamMalformed on failure.
        """
        raise NotImplementedError
