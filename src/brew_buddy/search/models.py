"""Value types shared by the store, the ranker, and the search service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

Vector = list[float]


@dataclass(slots=True)
class ItemVector:
    """Active catalog item with its stored description embedding blob."""

    url: str
    name: str
    origin: str
    description: str
    embedding: bytes


@dataclass(slots=True)
class SearchMatch:
    """One ranked candidate."""

    item: ItemVector
    score: float

    @property
    def percent(self) -> float:
        """Score shown as a percentage; negative similarity stays negative."""

        return self.score * 100


@dataclass(slots=True)
class SearchResult:
    """Outcome of one vibe search."""

    query: str
    normalized_query: str
    from_cache: bool
    candidates_count: int
    matches: list[SearchMatch] = field(default_factory=list)


@dataclass(slots=True)
class SearchHistoryEntry:
    """Cached query vector metadata."""

    query_text: str
    created_at: datetime
