"""Vibe search: resolve the query vector, rank stored items, keep the top K."""

from __future__ import annotations

import logging
from typing import Protocol

from brew_buddy.embedding.cache import QueryVectorCache
from brew_buddy.search.models import ItemVector, SearchResult
from brew_buddy.search.ranker import DEFAULT_TOP_K, top_matches


class ItemVectorStore(Protocol):
    """Storage used by the search service."""

    def list_item_vectors(self) -> list[ItemVector]: ...


class SearchService:
    """Coordinates query resolution and ranking for one search."""

    def __init__(
        self,
        *,
        store: ItemVectorStore,
        query_cache: QueryVectorCache,
        top_k: int = DEFAULT_TOP_K,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.query_cache = query_cache
        self.top_k = top_k
        self.logger = logger or logging.getLogger(__name__)

    def search(self, text: str, *, limit: int | None = None) -> SearchResult:
        if not text.strip():
            raise ValueError("Search query must not be empty.")

        resolved = self.query_cache.resolve(text)
        candidates = self.store.list_item_vectors()
        self.logger.debug("Ranking %d embedded items for %r", len(candidates), resolved.query_text)
        matches = top_matches(
            resolved.vector,
            candidates,
            limit=self.top_k if limit is None else limit,
            logger=self.logger,
        )
        return SearchResult(
            query=text,
            normalized_query=resolved.query_text,
            from_cache=resolved.from_cache,
            candidates_count=len(candidates),
            matches=matches,
        )
