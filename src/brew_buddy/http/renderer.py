"""Headless-browser rendering of the vendor's listing page."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from playwright.sync_api import Browser, Page, sync_playwright
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from brew_buddy.config import RenderSettings, SiteConfig

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36"
)


class RenderError(Exception):
    """The listing page could not be rendered."""


@dataclass(slots=True)
class RenderResult:
    """Result of rendering one listing page."""

    url: str
    html: str
    is_success: bool
    error: str | None = None

    def raise_for_error(self) -> None:
        if not self.is_success:
            raise RenderError(self.error or f"failed to render {self.url}")


class PageRenderer(Protocol):
    """Anything that turns a site config into rendered listing HTML."""

    def render(self, site: SiteConfig) -> RenderResult:
        """Render the listing page; failures are reported in the result."""
        raise NotImplementedError


class PlaywrightRenderer:
    """Chromium renderer that dismisses consent overlays and waits for the list."""

    def __init__(
        self,
        *,
        settings: RenderSettings | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
        logger: logging.Logger | None = None,
    ) -> None:
        self.settings = settings or RenderSettings()
        self.user_agent = user_agent
        self.logger = logger or logging.getLogger(__name__)

    def render(self, site: SiteConfig) -> RenderResult:
        url = site.category_url
        try:
            with sync_playwright() as playwright:
                self.logger.info("Launching headless browser...")
                browser = playwright.chromium.launch(
                    headless=self.settings.headless,
                    args=["--no-sandbox"],
                )
                try:
                    html = self._render_page(browser, site)
                finally:
                    browser.close()
        except PlaywrightTimeoutError as exc:
            self.logger.warning("Timeout rendering %s: %s", url, exc)
            return RenderResult(url=url, html="", is_success=False, error=f"timeout: {exc}")
        except PlaywrightError as exc:
            self.logger.warning("Browser error rendering %s: %s", url, exc)
            return RenderResult(url=url, html="", is_success=False, error=str(exc))

        return RenderResult(url=url, html=html, is_success=True)

    def _render_page(self, browser: Browser, site: SiteConfig) -> str:
        selectors = site.selectors
        context = browser.new_context(user_agent=self.user_agent)
        try:
            page = context.new_page()
            page.set_default_timeout(_ms(self.settings.navigation_timeout_seconds))

            self.logger.info("Navigating to: %s", site.category_url)
            page.goto(site.category_url, wait_until="domcontentloaded")
            self._wait_stable(page, self.settings.navigation_timeout_seconds)

            self._dismiss(page, selectors.cookie_button, label="cookie button")
            self._dismiss(page, selectors.newsletter_popup, label="newsletter popup")

            wait_selector = selectors.product_list_wait or selectors.product_row
            self.logger.info("Waiting for product list: %s", wait_selector)
            page.wait_for_selector(
                wait_selector,
                state="attached",
                timeout=_ms(self.settings.list_wait_timeout_seconds),
            )
            return page.content()
        finally:
            context.close()

    def _dismiss(self, page: Page, selector: str, *, label: str) -> None:
        if not selector:
            return
        self.logger.info("Looking for %s: %s", label, selector)
        try:
            page.click(selector, timeout=_ms(self.settings.dismiss_timeout_seconds))
        except PlaywrightError as exc:
            self.logger.info("No %s dismissed, continuing: %s", label, _first_line(str(exc)))
            return
        self._wait_stable(page, self.settings.dismiss_timeout_seconds)

    def _wait_stable(self, page: Page, timeout_seconds: float) -> None:
        try:
            page.wait_for_load_state("networkidle", timeout=_ms(timeout_seconds))
        except PlaywrightTimeoutError:
            self.logger.debug("Network did not go idle within %.0fs", timeout_seconds)


def _ms(seconds: float) -> float:
    return max(0.0, seconds) * 1000.0


def _first_line(text: str) -> str:
    return text.strip().splitlines()[0] if text.strip() else ""
