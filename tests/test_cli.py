from __future__ import annotations

from pathlib import Path

import allure
import pytest
from click.testing import CliRunner

import brew_buddy.catalog.controllers as catalog_controllers
import brew_buddy.embedding.backends as backends
from brew_buddy.config import SiteConfig
from brew_buddy.http.renderer import RenderResult
from brew_buddy.main import brew_buddy

pytestmark = [
    allure.epic("Operator CLI"),
    allure.feature("Commands"),
]

_SITE_YAML = """
category_url: "https://shop.example.com/coffee/green-coffee.html"
selectors:
  product_row: "tbody.product-items tr.product-item"
  link: "a.product-item-link"
  price: "span.price"
  origin: "td.origin"
  stock_button: "button.action.tocart"
  description: "div.short-description"
  description_is_next_row: true
disallowed_keywords:
  - blend
"""


class _FakeRenderer:
    html = ""
    error: str | None = None

    def __init__(self, **_: object) -> None:
        pass

    def render(self, site: SiteConfig) -> RenderResult:
        if self.error is not None:
            return RenderResult(url=site.category_url, html="", is_success=False, error=self.error)
        return RenderResult(url=site.category_url, html=self.html, is_success=True)


@pytest.fixture()
def cli_env(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    listing_html: str,
) -> dict[str, Path]:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(_SITE_YAML, encoding="utf-8")
    db_path = tmp_path / "coffee.db"
    monkeypatch.setenv("BREW_BUDDY_CONFIG_PATH", str(config_path))
    monkeypatch.setenv("BREW_BUDDY_DB_PATH", str(db_path))
    monkeypatch.setenv("BREW_BUDDY_EMBEDDING_BACKEND", "hashing")
    monkeypatch.setenv("BREW_BUDDY_EMBEDDING_DELAY_SECONDS", "0")

    renderer = type("_ListingRenderer", (_FakeRenderer,), {"html": listing_html})
    monkeypatch.setattr(catalog_controllers, "PlaywrightRenderer", renderer)
    return {"config_path": config_path, "db_path": db_path}


def test_scrape_reports_counts_and_embeds(cli_env: dict[str, Path]) -> None:
    result = CliRunner().invoke(brew_buddy, ["scrape"])

    assert result.exit_code == 0, result.output
    assert (
        "Sweep completed: status=succeeded extracted=2 inserted=2 updated=0 "
        "marked_inactive=0 active=2 inactive=0"
    ) in result.output
    assert "Embeddings: embedded=2 failed=0" in result.output


def test_scrape_no_embed_then_embed(cli_env: dict[str, Path]) -> None:
    runner = CliRunner()

    scraped = runner.invoke(brew_buddy, ["scrape", "--no-embed"])
    assert scraped.exit_code == 0, scraped.output
    assert "Embeddings: disabled (--no-embed)" in scraped.output

    embedded = runner.invoke(brew_buddy, ["embed"])
    assert embedded.exit_code == 0, embedded.output
    assert "Embedding completed: pending=2 embedded=2 failed=0 missing=0" in embedded.output

    again = runner.invoke(brew_buddy, ["embed"])
    assert "All active coffees are already embedded." in again.output


def test_scrape_render_failure_names_the_stage(
    cli_env: dict[str, Path],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    broken = type("_BrokenRenderer", (_FakeRenderer,), {"error": "timeout: 90000ms exceeded"})
    monkeypatch.setattr(catalog_controllers, "PlaywrightRenderer", broken)

    result = CliRunner().invoke(brew_buddy, ["scrape"])

    assert result.exit_code != 0
    assert "render stage failed" in result.output


def test_scrape_with_missing_config_fails_cleanly(
    cli_env: dict[str, Path],
    tmp_path: Path,
) -> None:
    result = CliRunner().invoke(
        brew_buddy,
        ["scrape", "--config-path", str(tmp_path / "missing.yaml")],
    )

    assert result.exit_code != 0
    assert "Failed to read config file" in result.output


def test_search_prints_ranked_matches_and_uses_cache(cli_env: dict[str, Path]) -> None:
    runner = CliRunner()
    runner.invoke(brew_buddy, ["scrape"])

    first = runner.invoke(brew_buddy, ["search", "Kenya", "Kiambu"])
    assert first.exit_code == 0, first.output
    assert "Top matches for 'kenya kiambu' (fresh vector):" in first.output
    assert "#1 [" in first.output
    assert "% match] Kenya Kiambu (Kenya)" in first.output
    assert "#2 [" in first.output

    second = runner.invoke(brew_buddy, ["search", "kenya kiambu"])
    assert "(cached vector)" in second.output


def test_search_before_embedding_explains_next_step(cli_env: dict[str, Path]) -> None:
    result = CliRunner().invoke(brew_buddy, ["search", "chocolate"])

    assert result.exit_code == 0, result.output
    assert "No embedded coffees to search" in result.output


def test_search_without_gemini_key_fails(
    cli_env: dict[str, Path],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("BREW_BUDDY_EMBEDDING_BACKEND", "gemini")

    result = CliRunner().invoke(brew_buddy, ["search", "chocolate"])

    assert result.exit_code != 0
    assert "GEMINI_API_KEY" in result.output


def test_search_history_list_clear_and_clear_all(cli_env: dict[str, Path]) -> None:
    runner = CliRunner()
    runner.invoke(brew_buddy, ["scrape"])
    runner.invoke(brew_buddy, ["search", "funky and bright"])
    runner.invoke(brew_buddy, ["search", "chocolate"])

    listed = runner.invoke(brew_buddy, ["search-history", "list"])
    assert "Search history (2):" in listed.output
    assert "- funky and bright (cached " in listed.output

    cleared = runner.invoke(brew_buddy, ["search-history", "clear", "Funky", "and", "Bright"])
    assert "Removed 'funky and bright' from search history." in cleared.output

    missing = runner.invoke(brew_buddy, ["search-history", "clear", "funky and bright"])
    assert "No search history entry for 'funky and bright'." in missing.output

    wiped = runner.invoke(brew_buddy, ["search-history", "clear-all"])
    assert "Cleared 1 search history entries." in wiped.output

    empty = runner.invoke(brew_buddy, ["search-history", "list"])
    assert "Search history is empty." in empty.output


def test_list_shows_active_catalog(cli_env: dict[str, Path]) -> None:
    runner = CliRunner()

    assert "No active coffees" in runner.invoke(brew_buddy, ["list"]).output

    runner.invoke(brew_buddy, ["scrape", "--no-embed"])
    result = runner.invoke(brew_buddy, ["list"])

    assert result.exit_code == 0, result.output
    assert "Active coffees: 2 (inactive: 0)" in result.output
    assert (
        "- Example Coffee One [$25.50, Decaf, In Stock, not embedded] https://example.com/coffee1"
    ) in result.output


def test_embed_with_unavailable_local_model_fails_cleanly(
    cli_env: dict[str, Path],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    class _MissingPackage:
        def __init__(self, model_name: str) -> None:
            raise ImportError("No module named 'sentence_transformers'")

    monkeypatch.setattr(backends, "SentenceTransformerEmbedder", _MissingPackage)
    monkeypatch.setenv("BREW_BUDDY_EMBEDDING_BACKEND", "sentence-transformers")

    result = CliRunner().invoke(brew_buddy, ["embed"])

    assert result.exit_code == 1
    assert "Install brew-buddy[local-embeddings]" in result.output
    assert not isinstance(result.exception, RuntimeError)
