from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional


@dataclass(frozen=True)
class Article:
    """
    Canonical representation of one search hit from the provider.
    Never stored locally.
    """
    id: str
    title: str
    url: str
    author: str
    created_at: Optional[str]
    text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "author": self.author,
            "created_at": self.created_at,
            "text": self.text,
        }


@dataclass(frozen=True)
class Identity:
    """
    Authenticated caller, extracted from a verified bearer token.
    """
    user_id: int
    username: str


@dataclass(frozen=True)
class Rating:
    user_id: int
    item_id: str
    value: int

    def to_dict(self) -> Dict[str, Any]:
        return {"userId": self.user_id, "itemId": self.item_id, "rating": self.value}


@dataclass(frozen=True)
class RatingEntry:
    """
    One rating row with the rater's resolved username.
    """
    user_id: int
    username: str
    value: int

    def to_dict(self) -> Dict[str, Any]:
        return {"userId": self.user_id, "username": self.username, "rating": self.value}


@dataclass(frozen=True)
class Comment:
    id: int
    user_id: int
    username: str
    item_id: str
    text: str
    created_at: str
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "_id": self.id,
            "itemId": self.item_id,
            "text": self.text,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "username": self.username,
        }


@dataclass(frozen=True)
class RatingSummary:
    """
    Mean and count over all ratings of one item. Derived on every read.
    """
    average: Optional[float]
    count: int

    @classmethod
    def from_values(cls, values: Iterable[int]) -> "RatingSummary":
        values = list(values)
        if not values:
            return cls(average=None, count=0)
        return cls(average=sum(values) / len(values), count=len(values))

    def to_dict(self) -> Dict[str, Any]:
        return {"average": self.average, "count": self.count}


@dataclass
class EnrichedItem:
    """
    Article plus its locally owned annotations.
    """
    article: Article
    summary: RatingSummary
    viewer_rating: Optional[int] = None
    comments: List[Comment] = field(default_factory=list)
    annotations_available: bool = True

    def to_dict(self) -> Dict[str, Any]:
        payload = self.article.to_dict()
        payload.update({
            "rating": self.summary.to_dict(),
            "viewerRating": self.viewer_rating,
            "comments": [c.to_dict() for c in self.comments],
            "annotationsAvailable": self.annotations_available,
        })
        return payload


@dataclass
class EnrichedResultPage:
    items: List[EnrichedItem]
    page: int
    total_pages: int
    total_results: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [item.to_dict() for item in self.items],
            "page": self.page,
            "totalPages": self.total_pages,
            "totalResults": self.total_results,
        }
