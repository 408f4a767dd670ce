"""
Source Factory - Creates the search provider from configuration.
"""
import logging

from ingestion.base import SearchProvider
from ingestion.hackernews import HackerNewsSearchProvider
from services.config import SearchConfig

logger = logging.getLogger(__name__)


def create_search_provider(search_config: SearchConfig) -> SearchProvider:
    """
    Create a search provider from configuration.

    Args:
        search_config: Configuration for the provider

    Returns:
        Configured SearchProvider instance

    Raises:
        ValueError: If provider type is unknown
    """
    provider_type = search_config.provider.lower()

    if provider_type == "hackernews":
        provider = HackerNewsSearchProvider(
            base_url=search_config.base_url,
            tags=search_config.tags,
            timeout=search_config.timeout_seconds,
        )
    else:
        raise ValueError(f"Unknown search provider: {provider_type}")

    logger.info(f"Created {provider_type} search provider: {search_config.base_url}")
    return provider
