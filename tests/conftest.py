"""Shared test fixtures."""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest

from brew_buddy.catalog.repository import SQLiteRepository
from brew_buddy.config import Selectors, SiteConfig

LISTING_URL = "https://shop.example.com/coffee/green-coffee.html"

LISTING_HTML = """
<html>
<body>
  <table id="table-products-list">
    <tbody class="products list items product-items">
      <tr class="item product product-item">
        <td class="origin" data-th="Origin">Decaf</td>
        <td class="product-item-name" data-th="Name">
          <h2><a class="product-item-link" href="https://example.com/coffee1">Example Coffee One</a></h2>
        </td>
        <td class="product-price-info" data-th="Price">
          <span class="price">$25.50</span>
        </td>
        <td class="product-actions">
          <button type="button" class="action tocart primary">Add to Cart</button>
        </td>
      </tr>
      <tr class="catalog-quickview-content">
        <td colspan="4">
          <div class="short-description">This is the description for coffee one.</div>
        </td>
      </tr>

      <tr class="item product product-item">
        <td class="origin" data-th="Origin">Colombia</td>
        <td class="product-item-name" data-th="Name">
          <h2><a class="product-item-link" href="https://example.com/coffee2">Example Espresso Blend</a></h2>
        </td>
        <td class="product-price-info" data-th="Price">
          <span class="price">$19.99</span>
        </td>
        <td class="product-actions">
          <button type="button" class="action tocart primary">Add to Cart</button>
        </td>
      </tr>
      <tr class="catalog-quickview-content">
        <td colspan="4">
          <div class="short-description">This is a blend description.</div>
        </td>
      </tr>

      <tr class="item product product-item">
        <td class="origin" data-th="Origin">Kenya</td>
        <td class="product-item-name" data-th="Name">
          <h2><a class="product-item-link" href="https://example.com/coffee3">Kenya Kiambu</a></h2>
        </td>
        <td class="product-price-info" data-th="Price">
          <span class="price">$22.00</span>
        </td>
        <td class="product-actions">
        </td>
      </tr>
      <tr class="catalog-quickview-content">
        <td colspan="4">
          <div class="short-description">This is the description for coffee three.</div>
        </td>
      </tr>
    </tbody>
  </table>
</body>
</html>
"""


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer environment variables out of tests."""
    for name in list(os.environ):
        if name.startswith("BREW_BUDDY_") or name in {"GEMINI_API_KEY", "DB_PATH", "CONFIG_PATH"}:
            monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def listing_html() -> str:
    return LISTING_HTML


@pytest.fixture()
def site_config() -> SiteConfig:
    return SiteConfig(
        category_url=LISTING_URL,
        selectors=Selectors(
            product_row="tbody.product-items tr.product-item",
            link="a.product-item-link",
            price="span.price",
            origin="td.origin",
            stock_button="button.action.tocart",
            description="div.short-description",
            description_is_next_row=True,
        ),
        disallowed_keywords=("blend",),
    )


@pytest.fixture()
def repository(tmp_path: Path) -> Iterator[SQLiteRepository]:
    repo = SQLiteRepository(tmp_path / "coffee.db")
    repo.init_schema()
    try:
        yield repo
    finally:
        repo.close()
