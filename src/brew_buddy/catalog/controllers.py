"""Controllers for catalog CLI commands."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from brew_buddy.catalog.models import CatalogItem, SweepSummary
from brew_buddy.catalog.pipeline import run_sweep
from brew_buddy.catalog.repository import SQLiteRepository
from brew_buddy.config import Settings, SiteConfig
from brew_buddy.embedding.backends import build_embedder, close_embedder
from brew_buddy.embedding.service import EmbeddingStageService, EmbedSummary
from brew_buddy.http.renderer import PlaywrightRenderer


@dataclass(slots=True)
class ScrapeCommand:
    """CLI inputs for scrape command."""

    db_path: Path | None
    config_path: Path | None
    auto_embed: bool


@dataclass(slots=True)
class EmbedCommand:
    """CLI inputs for embed command."""

    db_path: Path | None


@dataclass(slots=True)
class CatalogListCommand:
    """CLI inputs for list command."""

    db_path: Path | None
    limit: int | None


class CatalogCliController:
    """Coordinates catalog command execution."""

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger(__name__)

    def scrape(self, command: ScrapeCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path, config_path=command.config_path)
        site = SiteConfig.from_yaml(settings.config_path)
        renderer = PlaywrightRenderer(settings=settings.render, logger=self.logger)
        with open_repository(settings, logger=self.logger) as repository:
            summary = run_sweep(
                settings=settings,
                repository=repository,
                renderer=renderer,
                site=site,
                auto_embed=command.auto_embed,
                logger=self.logger,
            )
        return _sweep_lines(summary, auto_embed=command.auto_embed)

    def embed(self, command: EmbedCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        settings.validate_for_embedding()
        embedder = build_embedder(settings.embedding, logger=self.logger)
        try:
            with open_repository(settings, logger=self.logger) as repository:
                summary = EmbeddingStageService(
                    store=repository,
                    embedder=embedder,
                    delay_seconds=settings.embedding.bulk_delay_seconds,
                    logger=self.logger,
                ).run()
        finally:
            close_embedder(embedder)
        return _embed_lines(summary)

    def list_items(self, command: CatalogListCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with open_repository(settings, logger=self.logger) as repository:
            items = repository.list_active_items()
            active_count, inactive_count = repository.count_items()

        if not items:
            return ["No active coffees. Run `brew-buddy scrape` first."]

        shown = items if command.limit is None else items[: command.limit]
        lines = [
            f"Active coffees: {active_count} (inactive: {inactive_count})",
        ]
        lines.extend(_item_line(item) for item in shown)
        if len(shown) < len(items):
            lines.append(f"... {len(items) - len(shown)} more")
        return lines


@contextmanager
def open_repository(
    settings: Settings,
    *,
    logger: logging.Logger | None = None,
) -> Iterator[SQLiteRepository]:
    repository = SQLiteRepository(settings.db_path, logger=logger)
    try:
        repository.init_schema()
        yield repository
    finally:
        repository.close()


def _sweep_lines(summary: SweepSummary, *, auto_embed: bool) -> list[str]:
    counters = summary.counters
    lines = [
        "Sweep completed: "
        f"status={summary.status.value} "
        f"extracted={counters.extracted_count} "
        f"inserted={counters.inserted_count} "
        f"updated={counters.updated_count} "
        f"marked_inactive={counters.marked_inactive_count} "
        f"active={summary.active_count} "
        f"inactive={summary.inactive_count}",
    ]
    if not counters.extracted_count:
        lines.append("Embeddings: skipped (no items extracted)")
    elif not auto_embed:
        lines.append("Embeddings: disabled (--no-embed)")
    elif summary.embedding_skipped_reason:
        lines.append(f"Embeddings: skipped ({summary.embedding_skipped_reason})")
    else:
        lines.append(
            "Embeddings: "
            f"embedded={counters.embedded_count} "
            f"failed={counters.embed_failed_count}",
        )
    return lines


def _embed_lines(summary: EmbedSummary) -> list[str]:
    if not summary.pending_count:
        return ["All active coffees are already embedded."]
    return [
        "Embedding completed: "
        f"pending={summary.pending_count} "
        f"embedded={summary.embedded_count} "
        f"failed={summary.failed_count} "
        f"missing={summary.missing_count}",
    ]


def _item_line(item: CatalogItem) -> str:
    details = [f"${item.price:.2f}"]
    if item.origin:
        details.append(item.origin)
    if item.stock_status:
        details.append(item.stock_status)
    if not item.has_embedding:
        details.append("not embedded")
    return f"- {item.name} [{', '.join(details)}] {item.url}"
