"""End-to-end sweep orchestration: render, extract, reconcile, embed."""

from __future__ import annotations

import logging
from collections.abc import Callable

from sqlalchemy.exc import SQLAlchemyError

from brew_buddy.catalog.extractor import extract_items
from brew_buddy.catalog.models import (
    ExtractionError,
    ReconciliationError,
    SweepCounters,
    SweepError,
    SweepStage,
    SweepStatus,
    SweepSummary,
)
from brew_buddy.catalog.repository import SQLiteRepository
from brew_buddy.config import Settings, SiteConfig
from brew_buddy.embedding.backends import Embedder, build_embedder, close_embedder
from brew_buddy.embedding.service import EmbeddingStageService
from brew_buddy.http.renderer import PageRenderer, RenderError

EmbedderFactory = Callable[[], Embedder]


class SweepOrchestrator:
    """Coordinates one full sweep of the vendor's listing.

    The listing is rendered and extracted before any write. Mark-inactive and
    reconciliation then share one short transaction, so a run that stops at
    any stage leaves the previous catalog intact. Embedding runs after the
    commit; its failures are recorded on the summary and never fail the sweep.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        repository: SQLiteRepository,
        renderer: PageRenderer,
        site: SiteConfig,
        embedder_factory: EmbedderFactory | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.settings = settings
        self.repository = repository
        self.renderer = renderer
        self.site = site
        self.logger = logger or logging.getLogger(__name__)
        self.embedder_factory = embedder_factory or self._default_embedder

    def run(self, *, auto_embed: bool = True) -> SweepSummary:
        counters = SweepCounters()
        try:
            rendered = self.renderer.render(self.site)
            rendered.raise_for_error()
        except RenderError as error:
            raise SweepError(SweepStage.RENDER, str(error)) from error

        try:
            drafts = extract_items(rendered.html, self.site, logger=self.logger)
        except ExtractionError as error:
            raise SweepError(SweepStage.EXTRACT, str(error)) from error
        counters.extracted_count = len(drafts)

        # The write lock is taken here, after all network I/O is done.
        with self.repository.sweep() as transaction:
            try:
                counters.marked_inactive_count = transaction.mark_all_inactive()
            except SQLAlchemyError as error:
                raise SweepError(SweepStage.MARK_INACTIVE, str(error)) from error
            self.logger.info("Marked %d items inactive.", counters.marked_inactive_count)

            if drafts:
                try:
                    outcome = transaction.upsert_batch(drafts)
                except ReconciliationError as error:
                    raise SweepError(SweepStage.RECONCILE, str(error)) from error
                counters.inserted_count = outcome.inserted_count
                counters.updated_count = outcome.updated_count
                counters.affected_count = outcome.affected_count

        active_count, inactive_count = self.repository.count_items()
        summary = SweepSummary(
            status=SweepStatus.SUCCEEDED if drafts else SweepStatus.EMPTY,
            counters=counters,
            active_count=active_count,
            inactive_count=inactive_count,
        )
        if not drafts:
            self.logger.warning("No items extracted; every stored item is now inactive.")
            return summary

        self.logger.info(
            "Upserted %d items (%d new, %d updated).",
            counters.affected_count,
            counters.inserted_count,
            counters.updated_count,
        )
        if auto_embed:
            self._embed(summary)
        return summary

    def _embed(self, summary: SweepSummary) -> None:
        try:
            embedder = self.embedder_factory()
        except (ValueError, RuntimeError) as error:
            self.logger.warning("Skipping embeddings: %s", error)
            summary.embedding_skipped_reason = str(error)
            return

        try:
            result = EmbeddingStageService(
                store=self.repository,
                embedder=embedder,
                delay_seconds=self.settings.embedding.bulk_delay_seconds,
                logger=self.logger,
            ).run()
        except SQLAlchemyError as error:
            self.logger.warning("Embedding stopped by a database error: %s", error)
            summary.embedding_skipped_reason = f"database error: {error}"
            return
        finally:
            close_embedder(embedder)
        summary.counters.embedded_count = result.embedded_count
        summary.counters.embed_failed_count = result.failed_count

    def _default_embedder(self) -> Embedder:
        self.settings.validate_for_embedding()
        return build_embedder(self.settings.embedding, logger=self.logger)


def run_sweep(
    *,
    settings: Settings,
    repository: SQLiteRepository,
    renderer: PageRenderer,
    site: SiteConfig,
    auto_embed: bool = True,
    logger: logging.Logger | None = None,
) -> SweepSummary:
    """Run one sweep with provided dependencies."""

    return SweepOrchestrator(
        settings=settings,
        repository=repository,
        renderer=renderer,
        site=site,
        logger=logger,
    ).run(auto_embed=auto_embed)
