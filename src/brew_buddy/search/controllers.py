"""Controllers for vibe search and search-history CLI commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from brew_buddy.catalog.controllers import open_repository
from brew_buddy.config import Settings
from brew_buddy.embedding.backends import build_embedder, close_embedder
from brew_buddy.embedding.cache import QueryVectorCache, normalize_query
from brew_buddy.search.models import SearchMatch, SearchResult
from brew_buddy.search.service import SearchService


@dataclass(slots=True)
class SearchCommand:
    """CLI inputs for search command."""

    db_path: Path | None
    query: str
    limit: int | None


@dataclass(slots=True)
class HistoryListCommand:
    """CLI inputs for search-history list command."""

    db_path: Path | None


@dataclass(slots=True)
class HistoryClearCommand:
    """CLI inputs for search-history clear command."""

    db_path: Path | None
    query: str


@dataclass(slots=True)
class HistoryClearAllCommand:
    """CLI inputs for search-history clear-all command."""

    db_path: Path | None


class SearchCliController:
    """Coordinates search command execution."""

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger(__name__)

    def search(self, command: SearchCommand) -> list[str]:
        if not command.query.strip():
            raise ValueError("Search query must not be empty.")
        settings = Settings.from_env(db_path=command.db_path)
        settings.validate_for_search()
        settings.validate_for_embedding()

        embedder = build_embedder(settings.embedding, logger=self.logger)
        try:
            with open_repository(settings, logger=self.logger) as repository:
                service = SearchService(
                    store=repository,
                    query_cache=QueryVectorCache(
                        store=repository,
                        embedder=embedder,
                        logger=self.logger,
                    ),
                    top_k=settings.search.top_k,
                    logger=self.logger,
                )
                result = service.search(command.query, limit=command.limit)
        finally:
            close_embedder(embedder)
        return _search_lines(result)

    def history_list(self, command: HistoryListCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with open_repository(settings, logger=self.logger) as repository:
            entries = repository.list_search_history()
        if not entries:
            return ["Search history is empty."]
        lines = [f"Search history ({len(entries)}):"]
        lines.extend(
            f"- {entry.query_text} (cached {entry.created_at.isoformat(timespec='seconds')})"
            for entry in entries
        )
        return lines

    def history_clear(self, command: HistoryClearCommand) -> list[str]:
        query_text = normalize_query(command.query)
        if not query_text:
            raise ValueError("Query to clear must not be empty.")
        settings = Settings.from_env(db_path=command.db_path)
        with open_repository(settings, logger=self.logger) as repository:
            removed = repository.clear_search_history(query_text)
        if not removed:
            return [f"No search history entry for {query_text!r}."]
        return [f"Removed {query_text!r} from search history."]

    def history_clear_all(self, command: HistoryClearAllCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with open_repository(settings, logger=self.logger) as repository:
            removed = repository.clear_all_search_history()
        return [f"Cleared {removed} search history entries."]


def _search_lines(result: SearchResult) -> list[str]:
    source = "cached vector" if result.from_cache else "fresh vector"
    lines = [f"Top matches for {result.normalized_query!r} ({source}):"]
    if not result.candidates_count:
        lines.append("No embedded coffees to search. Run `brew-buddy embed` first.")
        return lines
    lines.extend(_match_line(rank, match) for rank, match in enumerate(result.matches, start=1))
    return lines


def _match_line(rank: int, match: SearchMatch) -> str:
    origin = f" ({match.item.origin})" if match.item.origin else ""
    return f"#{rank} [{match.percent:.1f}% match] {match.item.name}{origin}"
