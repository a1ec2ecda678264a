"""Bulk embedding stage for catalog items missing a description vector."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError

from brew_buddy.embedding.backends import Embedder, EmbeddingError, embed_one
from brew_buddy.embedding.codec import VectorEncodeError


class EmbeddingStore(Protocol):
    """Storage used by the embedding stage."""

    def fetch_unembedded(self) -> dict[str, str]: ...

    def save_embedding(self, url: str, vector: Sequence[float]) -> bool: ...


@dataclass(slots=True)
class EmbedSummary:
    """Result of one bulk embedding pass."""

    pending_count: int = 0
    embedded_count: int = 0
    failed_count: int = 0
    missing_count: int = 0


class EmbeddingStageService:
    """Embeds every unembedded active item, one request at a time.

    Per-item failures are logged and skipped. A fixed delay follows every
    attempt to stay under the backend's request-rate ceiling. Items are
    processed in whatever order the store returns them.
    """

    def __init__(
        self,
        *,
        store: EmbeddingStore,
        embedder: Embedder,
        delay_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.delay_seconds = delay_seconds
        self._sleep = sleep
        self.logger = logger or logging.getLogger(__name__)

    def run(self) -> EmbedSummary:
        targets = self.store.fetch_unembedded()
        summary = EmbedSummary(pending_count=len(targets))
        if not targets:
            self.logger.info("All active items are already embedded.")
            return summary

        self.logger.info("Found %d items to embed...", len(targets))
        for url, text in targets.items():
            self.logger.info("Embedding: %s", _preview(text))
            try:
                self._embed_item(url, text, summary)
            finally:
                self._pause()

        self.logger.info(
            "Embedded %d of %d items (%d failed).",
            summary.embedded_count,
            summary.pending_count,
            summary.failed_count,
        )
        return summary

    def _embed_item(self, url: str, text: str, summary: EmbedSummary) -> None:
        try:
            vector = embed_one(self.embedder, text)
        except EmbeddingError as error:
            self.logger.warning("Error embedding %s: %s", url, error)
            summary.failed_count += 1
            return

        try:
            saved = self.store.save_embedding(url, vector)
        except (SQLAlchemyError, VectorEncodeError) as error:
            self.logger.warning("Error saving embedding for %s: %s", url, error)
            summary.failed_count += 1
            return

        if saved:
            summary.embedded_count += 1
        else:
            self.logger.info("Item disappeared before its vector was saved: %s", url)
            summary.missing_count += 1

    def _pause(self) -> None:
        if self.delay_seconds > 0:
            self._sleep(self.delay_seconds)


def _preview(text: str, limit: int = 40) -> str:
    flat = " ".join(text.split())
    return flat if len(flat) <= limit else flat[:limit] + "..."
