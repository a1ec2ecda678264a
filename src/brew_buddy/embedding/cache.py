"""Cache-aside resolution of query vectors backed by the search-history table."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError

from brew_buddy.embedding.backends import Embedder, embed_one
from brew_buddy.embedding.codec import VectorDecodeError, VectorEncodeError, decode_vector
from brew_buddy.search.models import Vector


class QueryCacheStore(Protocol):
    """Storage used by the query cache."""

    def get_cached_query(self, query_text: str) -> bytes | None: ...

    def save_cached_query(self, query_text: str, vector: Sequence[float]) -> bool: ...


@dataclass(slots=True)
class ResolvedVector:
    """Query vector plus where it came from."""

    query_text: str
    vector: Vector
    from_cache: bool


def normalize_query(text: str) -> str:
    """Cache key for a query: lower-cased and trimmed."""

    return text.strip().lower()


class QueryVectorCache:
    """Returns cached query vectors, embedding and persisting them on a miss."""

    def __init__(
        self,
        *,
        store: QueryCacheStore,
        embedder: Embedder,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.logger = logger or logging.getLogger(__name__)

    def resolve(self, text: str) -> ResolvedVector:
        """Resolve ``text`` to a vector.

        A hit never calls the backend. On a miss the backend's error propagates
        to the caller; a failure to persist the fresh vector does not.
        """

        query_text = normalize_query(text)
        cached = self.store.get_cached_query(query_text)
        if cached is not None:
            try:
                vector = decode_vector(cached)
            except VectorDecodeError:
                self.logger.warning("Ignoring corrupt cached vector for %r", query_text)
            else:
                self.logger.debug("Cache hit for %r", query_text)
                return ResolvedVector(query_text=query_text, vector=vector, from_cache=True)

        self.logger.info("Cache miss for %r. Calling %s...", query_text, self.embedder.model_name)
        vector = embed_one(self.embedder, query_text)
        try:
            inserted = self.store.save_cached_query(query_text, vector)
        except (SQLAlchemyError, VectorEncodeError) as error:
            self.logger.warning("Failed to save query %r to cache: %s", query_text, error)
        else:
            if not inserted:
                self.logger.debug(
                    "Query %r was cached concurrently; keeping the stored vector",
                    query_text,
                )
        return ResolvedVector(query_text=query_text, vector=vector, from_cache=False)
