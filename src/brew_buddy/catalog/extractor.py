"""Selector-driven extraction of candidate items from a rendered listing page."""

from __future__ import annotations

import logging
import re
from urllib.parse import urljoin

import soupsieve
from bs4 import BeautifulSoup, Tag
from bs4.exceptions import ParserRejectedMarkup

from brew_buddy.catalog.models import ExtractionError, ItemDraft, StockStatus
from brew_buddy.config import Selectors, SiteConfig

_NON_PRICE_CHARS = re.compile(r"[^\d.]+")
_WHITESPACE = re.compile(r"\s+")

_ROW_SELECTOR_FIELDS = (
    "link",
    "price",
    "origin",
    "stock_button",
    "stock_coming_soon",
    "description",
    "region",
    "tasting_notes",
    "processing",
    "score",
)


def extract_items(
    html: str,
    site: SiteConfig,
    *,
    logger: logging.Logger | None = None,
) -> list[ItemDraft]:
    """Turn one rendered listing page into filtered item drafts.

    Rows without a name or URL and rows whose name contains a disallowed
    keyword are skipped. A document that cannot be parsed, or a selector that
    is not valid CSS, fails the whole call with ``ExtractionError``.
    """

    log = logger or logging.getLogger(__name__)
    selectors = site.selectors
    _validate_selectors(selectors)

    if not html or not html.strip():
        raise ExtractionError("Listing document is empty.")
    try:
        document = BeautifulSoup(html, "html.parser")
    except ParserRejectedMarkup as error:
        raise ExtractionError(f"Listing document could not be parsed: {error}") from error

    rows = document.select(selectors.product_row)
    log.debug("Matched %d rows with %r", len(rows), selectors.product_row)

    drafts: list[ItemDraft] = []
    for index, row in enumerate(rows):
        draft = _extract_row(row, site=site, index=index, log=log)
        if draft is not None:
            drafts.append(draft)
    return drafts


def parse_price(text: str) -> float:
    """Parse price text by keeping only digits and dots; garbage yields 0.0."""

    cleaned = _NON_PRICE_CHARS.sub("", text or "")
    if not cleaned:
        return 0.0
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def classify_stock(row: Tag, selectors: Selectors) -> StockStatus:
    if selectors.stock_button and row.select_one(selectors.stock_button) is not None:
        return StockStatus.IN_STOCK
    if selectors.stock_coming_soon and row.select_one(selectors.stock_coming_soon) is not None:
        return StockStatus.COMING_SOON
    return StockStatus.OUT_OF_STOCK


def find_excluded_keyword(name: str, keywords: tuple[str, ...]) -> str | None:
    """Return the first disallowed keyword contained in ``name`` (case-insensitive)."""

    lowered = name.lower()
    for keyword in keywords:
        needle = keyword.strip().lower()
        if needle and needle in lowered:
            return keyword
    return None


def _extract_row(
    row: Tag,
    *,
    site: SiteConfig,
    index: int,
    log: logging.Logger,
) -> ItemDraft | None:
    selectors = site.selectors

    link = row.select_one(selectors.link)
    name = _text(link)
    url = _href(link, base_url=site.category_url)
    if not name or not url:
        log.debug("Skipping row %d: missing name or link", index)
        return None

    keyword = find_excluded_keyword(name, site.disallowed_keywords)
    if keyword is not None:
        log.info("Skipping (keyword %r): %s", keyword, name)
        return None

    draft = ItemDraft(
        url=url,
        name=name,
        price=parse_price(_select_text(row, selectors.price)),
        origin=_select_text(row, selectors.origin),
        region=_select_text(row, selectors.region),
        tasting_notes=_select_text(row, selectors.tasting_notes),
        processing=_select_text(row, selectors.processing),
        description=_description(row, selectors),
        stock_status=classify_stock(row, selectors),
    )
    if selectors.score:
        score = parse_price(_select_text(row, selectors.score))
        draft.score = score if score > 0 else None

    if not draft.name or not draft.url:
        return None
    return draft


def _description(row: Tag, selectors: Selectors) -> str:
    if not selectors.description:
        return ""
    if not selectors.description_is_next_row:
        return _select_all_text(row, selectors.description)

    next_row = row.find_next_sibling()
    if next_row is None:
        return ""
    return _select_all_text(next_row, selectors.description)


def _validate_selectors(selectors: Selectors) -> None:
    if not selectors.product_row:
        raise ExtractionError("Selector map has no product_row selector.")
    if not selectors.link:
        raise ExtractionError("Selector map has no link selector.")

    for name in ("product_row", *_ROW_SELECTOR_FIELDS):
        value = getattr(selectors, name)
        if not value:
            continue
        try:
            soupsieve.compile(value)
        except soupsieve.SelectorSyntaxError as error:
            raise ExtractionError(f"Invalid CSS selector for {name}: {value!r}") from error


def _select_text(row: Tag, selector: str) -> str:
    if not selector:
        return ""
    return _text(row.select_one(selector))


def _select_all_text(row: Tag, selector: str) -> str:
    return _collapse(" ".join(node.get_text(" ") for node in row.select(selector)))


def _text(node: Tag | None) -> str:
    if node is None:
        return ""
    return _collapse(node.get_text(" "))


def _href(node: Tag | None, *, base_url: str) -> str:
    if node is None:
        return ""
    href = node.get("href")
    if not isinstance(href, str) or not href.strip():
        return ""
    return urljoin(base_url, href.strip())


def _collapse(value: str) -> str:
    return _WHITESPACE.sub(" ", value).strip()
