"""
Seller Radar — Page Controllers

The orchestrator drives the page it scans (snapshot, scroll, click "load
more") through a PageController. Two implementations:

- StaticPageController: a fixed sequence of already-parsed documents. Each
  scroll or load-more click reveals the next one, which is how fetched HTML
  and test fixtures model a lazily growing results page.
- PlaywrightPageController: a live Playwright Page, duck-typed.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence

import structlog
from bs4 import BeautifulSoup

from seller_radar.extraction.document import SoupDocumentAdapter, parse_html

logger = structlog.get_logger(__name__)


class PageController(Protocol):
    """Interaction capability over the page being scanned."""

    @property
    def url(self) -> str: ...

    async def snapshot(self) -> Any: ...

    async def scroll_to_bottom(self) -> None: ...

    async def scroll_to_top(self) -> None: ...

    async def click_load_more(self, selectors: Sequence[str]) -> bool: ...


class StaticPageController:
    """
    Page backed by one or more parsed documents.

    Usage:
        page = StaticPageController(url, [first_doc, after_scroll_doc])
        doc = await page.snapshot()
    """

    def __init__(self, url: str, documents: Sequence[BeautifulSoup] | BeautifulSoup) -> None:
        if isinstance(documents, BeautifulSoup):
            documents = [documents]
        if not documents:
            raise ValueError("StaticPageController needs at least one document")
        self._url = url
        self._documents = list(documents)
        self._index = 0
        self._adapter = SoupDocumentAdapter()
        self.scroll_count = 0
        self.click_count = 0

    @classmethod
    def from_html(cls, url: str, *markups: str) -> StaticPageController:
        return cls(url, [parse_html(markup, url) for markup in markups])

    @property
    def url(self) -> str:
        return self._url

    async def snapshot(self) -> BeautifulSoup:
        return self._documents[self._index]

    async def scroll_to_bottom(self) -> None:
        self.scroll_count += 1
        self._advance()

    async def scroll_to_top(self) -> None:
        return None

    async def click_load_more(self, selectors: Sequence[str]) -> bool:
        current = self._documents[self._index]
        for selector in selectors:
            if self._adapter.query_one(current, selector) is not None:
                self.click_count += 1
                self._advance()
                return True
        return False

    def _advance(self) -> None:
        if self._index < len(self._documents) - 1:
            self._index += 1


class PlaywrightPageController:
    """
    Live browser page.

    Args:
        page: Playwright Page object (already navigated).
    """

    def __init__(self, page: Any) -> None:
        self._page = page

    @property
    def url(self) -> str:
        return self._page.url

    async def snapshot(self) -> BeautifulSoup:
        content = await self._page.content()
        return parse_html(content, self.url)

    async def scroll_to_bottom(self) -> None:
        await self._page.evaluate("window.scrollTo(0, document.body.scrollHeight)")

    async def scroll_to_top(self) -> None:
        await self._page.evaluate("window.scrollTo(0, 0)")

    async def click_load_more(self, selectors: Sequence[str]) -> bool:
        for selector in selectors:
            element = await self._page.query_selector(selector)
            if element is None:
                continue
            if not await element.is_visible():
                continue
            try:
                await element.click()
            except Exception as e:
                # Playwright raises its own error types; a stale or covered control is a miss
                logger.debug(
                    "page_load_more_click_failed",
                    selector=selector,
                    error=str(e),
                    source="page",
                )
                continue
            logger.debug("page_load_more_clicked", selector=selector, source="page")
            return True
        return False
