"""Dependency wiring shared by the HTTP API and the CLI."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from ingestion.base import SearchProvider
from ingestion.source_factory import create_search_provider
from services.aggregator import ResultAggregator
from services.annotations import AnnotationStore
from services.config import Config
from services.database import Database
from services.tokens import TokenService
from services.users import UserDirectory


@dataclass(slots=True)
class Services:
    """Concrete services built from one Config."""

    config: Config
    database: Database
    users: UserDirectory
    tokens: TokenService
    store: AnnotationStore
    aggregator: ResultAggregator


def build_services(config: Config, provider: Optional[SearchProvider] = None) -> Services:
    """Instantiate the default stack; a provider may be injected for tests."""

    database = Database(config.DATABASE_PATH)
    users = UserDirectory(database)
    store = AnnotationStore(database, users)
    aggregator = ResultAggregator(
        provider or create_search_provider(config.search),
        store,
        page_size=config.search.page_size,
        max_page_size=config.search.max_page_size,
        strict_enrichment=config.aggregation.strict_enrichment,
        max_concurrency=config.aggregation.max_concurrency,
    )
    tokens = TokenService(config.TOKEN_SECRET, ttl=timedelta(hours=config.TOKEN_TTL_HOURS))

    return Services(
        config=config,
        database=database,
        users=users,
        tokens=tokens,
        store=store,
        aggregator=aggregator,
    )


__all__ = ["Services", "build_services"]
