"""CLI entrypoint for brew-buddy."""

import logging
from collections.abc import Callable
from pathlib import Path

import rich_click as click
from sqlalchemy.exc import SQLAlchemyError

from brew_buddy import __version__
from brew_buddy.catalog.controllers import (
    CatalogCliController,
    CatalogListCommand,
    EmbedCommand,
    ScrapeCommand,
)
from brew_buddy.catalog.models import SweepError
from brew_buddy.embedding.backends import EmbeddingAuthError, EmbeddingError
from brew_buddy.search.controllers import (
    HistoryClearAllCommand,
    HistoryClearCommand,
    HistoryListCommand,
    SearchCliController,
    SearchCommand,
)

click.rich_click.USE_MARKDOWN = True
LOGGER = logging.getLogger("brew_buddy")
CATALOG_CONTROLLER = CatalogCliController(logger=LOGGER)
SEARCH_CONTROLLER = SearchCliController(logger=LOGGER)

_db_path_option = click.option(
    "--db-path",
    type=click.Path(path_type=Path),
    default=None,
    help="SQLite DB path.",
)


@click.group()
@click.version_option(version=__version__, prog_name="brew-buddy")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def brew_buddy(verbose: bool) -> None:
    """Coffee catalog tracker with **vibe search** over tasting descriptions."""

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )


@brew_buddy.command("scrape")
@_db_path_option
@click.option(
    "--config-path",
    type=click.Path(path_type=Path),
    default=None,
    help="Site config YAML path.",
)
@click.option(
    "--no-embed",
    is_flag=True,
    default=False,
    help="Skip embedding newly scraped coffees.",
)
def scrape(db_path: Path | None, config_path: Path | None, no_embed: bool) -> None:
    """Sweep the vendor listing and reconcile the catalog."""

    _emit(
        lambda: CATALOG_CONTROLLER.scrape(
            ScrapeCommand(db_path=db_path, config_path=config_path, auto_embed=not no_embed),
        ),
    )


@brew_buddy.command("embed")
@_db_path_option
def embed(db_path: Path | None) -> None:
    """Embed every active coffee that has no description vector yet."""

    _emit(lambda: CATALOG_CONTROLLER.embed(EmbedCommand(db_path=db_path)))


@brew_buddy.command("list")
@_db_path_option
@click.option(
    "--limit",
    type=click.IntRange(min=1),
    default=None,
    help="Max number of coffees to print.",
)
def list_items(db_path: Path | None, limit: int | None) -> None:
    """Show the active catalog, newest first."""

    _emit(lambda: CATALOG_CONTROLLER.list_items(CatalogListCommand(db_path=db_path, limit=limit)))


@brew_buddy.command("search")
@_db_path_option
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=100),
    default=None,
    help="Number of matches to print (default BREW_BUDDY_SEARCH_TOP_K).",
)
@click.argument("query", nargs=-1, required=True)
def search(db_path: Path | None, limit: int | None, query: tuple[str, ...]) -> None:
    """Find coffees whose descriptions match the vibe of QUERY."""

    _emit(
        lambda: SEARCH_CONTROLLER.search(
            SearchCommand(db_path=db_path, query=" ".join(query), limit=limit),
        ),
    )


@brew_buddy.group("search-history")
def search_history() -> None:
    """Inspect and clear cached query vectors."""


@search_history.command("list")
@_db_path_option
def search_history_list(db_path: Path | None) -> None:
    """List cached queries, newest first."""

    _emit(lambda: SEARCH_CONTROLLER.history_list(HistoryListCommand(db_path=db_path)))


@search_history.command("clear")
@_db_path_option
@click.argument("query", nargs=-1, required=True)
def search_history_clear(db_path: Path | None, query: tuple[str, ...]) -> None:
    """Remove one cached query."""

    _emit(
        lambda: SEARCH_CONTROLLER.history_clear(
            HistoryClearCommand(db_path=db_path, query=" ".join(query)),
        ),
    )


@search_history.command("clear-all")
@_db_path_option
def search_history_clear_all(db_path: Path | None) -> None:
    """Remove every cached query."""

    _emit(lambda: SEARCH_CONTROLLER.history_clear_all(HistoryClearAllCommand(db_path=db_path)))


def _emit(produce: Callable[[], list[str]]) -> None:
    try:
        lines = produce()
    except SweepError as error:
        raise click.ClickException(str(error)) from error
    except EmbeddingAuthError as error:
        raise click.ClickException(f"embedding credentials rejected: {error}") from error
    except EmbeddingError as error:
        raise click.ClickException(f"embedding failed: {error}") from error
    except SQLAlchemyError as error:
        raise click.ClickException(f"database error: {error}") from error
    except (ValueError, RuntimeError) as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    brew_buddy()
