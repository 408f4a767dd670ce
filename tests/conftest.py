"""
Shared fixtures: a temp-file database, the user directory, the annotation
store and an in-memory search provider.
"""

from typing import List, Optional

import pytest

from core.entities import Article
from ingestion.base import ProviderPage, SearchProvider
from services.annotations import AnnotationStore
from services.database import Database
from services.users import UserDirectory


class FakeProvider(SearchProvider):
    """Serves a fixed list of articles and records every call."""

    name = "fake"

    def __init__(self, articles: Optional[List[Article]] = None, error: Optional[Exception] = None):
        self.articles = articles or []
        self.error = error
        self.calls = []

    async def search(self, query, *, page, limit):
        self.calls.append((query, page, limit))
        if self.error is not None:
            raise self.error
        return ProviderPage(
            articles=self.articles[:limit],
            page=page,
            total_pages=7,
            total_results=140,
        )


def make_articles(count: int) -> List[Article]:
    return [
        Article(
            id=str(100 + i),
            title=f"Story {i}",
            url=f"https://example.com/{i}",
            author="pg",
            created_at=f"2024-06-{10 + i:02d}T12:00:00Z",
        )
        for i in range(count)
    ]


@pytest.fixture
def provider():
    return FakeProvider(make_articles(3))


@pytest.fixture
async def database(tmp_path):
    db = Database(str(tmp_path / "test.db"))
    await db.init_tables()
    return db


@pytest.fixture
def users(database):
    return UserDirectory(database)


@pytest.fixture
def store(database, users):
    return AnnotationStore(database, users)


@pytest.fixture
async def alice(users):
    return await users.register("alice", "alice-password")


@pytest.fixture
async def bob(users):
    return await users.register("bob", "bob-password")
