"""
Seller Radar — Document Query Adapter

The core never touches a browser or an HTTP client directly. It consumes this
capability: query a parsed document (or fragment) with CSS selectors, read an
element's text and attributes, walk to parents/children, and fetch a URL as a
parsed document.

Elements are BeautifulSoup Tags; selectors are evaluated by soupsieve. An
unsupported or malformed selector is an extraction miss, not an error.
"""

from __future__ import annotations

import re
from typing import Any, Protocol

import httpx
import structlog
from bs4 import BeautifulSoup, Comment, Tag
from soupsieve import SelectorSyntaxError

from seller_radar.config import settings
from seller_radar.errors import DocumentParseError, FetchError

logger = structlog.get_logger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_BLANK_LINES_RE = re.compile(r"\n\s*\n+")
_HIDDEN_TAGS = {"script", "style", "noscript", "template"}
_BLOCK_TAGS = {
    "address", "article", "aside", "body", "dd", "div", "dl", "dt", "footer", "form",
    "h1", "h2", "h3", "h4", "h5", "h6", "header", "li", "main", "nav", "ol", "p",
    "section", "table", "td", "th", "title", "tr", "ul",
}

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


def _block_ancestor(node: Any) -> Any:
    """Nearest block-level ancestor; inline text inside one block reads as one line."""
    current = node.parent
    while current is not None and current.name not in _BLOCK_TAGS:
        current = current.parent
    return current


class DocumentAdapter(Protocol):
    """Query capability consumed by the extractor and the card finder."""

    def query_all(self, root: Any, selector: str) -> list[Any]: ...

    def query_one(self, root: Any, selector: str) -> Any | None: ...

    def text(self, element: Any) -> str: ...

    def attribute(self, element: Any, name: str) -> str | None: ...

    def parent(self, element: Any) -> Any | None: ...

    def children(self, element: Any) -> list[Any]: ...

    def tag_name(self, element: Any) -> str: ...

    def html(self, element: Any) -> str: ...

    def document_text(self, document: Any) -> str: ...

    async def fetch_document(self, url: str) -> Any: ...


def parse_html(markup: str | bytes, url: str = "") -> BeautifulSoup:
    """
    Parse HTML into a document.

    Raises:
        DocumentParseError: if the content has no document body.
    """
    if not markup:
        raise DocumentParseError(url, "empty document")
    soup = BeautifulSoup(markup, "html.parser")
    if soup.body is None and soup.find(True) is None:
        raise DocumentParseError(url, "content is not an HTML document")
    return soup


class SoupDocumentAdapter:
    """
    Query-only adapter over BeautifulSoup trees.

    fetch_document() is not supported; use HttpDocumentAdapter for that.
    """

    def query_all(self, root: Any, selector: str) -> list[Tag]:
        if root is None:
            return []
        try:
            return list(root.select(selector))
        except (SelectorSyntaxError, NotImplementedError, ValueError) as e:
            logger.debug(
                "document_selector_unsupported",
                selector=selector,
                error=str(e),
                source="document",
            )
            return []

    def query_one(self, root: Any, selector: str) -> Tag | None:
        matches = self.query_all(root, selector)
        return matches[0] if matches else None

    def text(self, element: Any) -> str:
        if element is None:
            return ""
        return " ".join(element.get_text(" ", strip=True).split())

    def attribute(self, element: Any, name: str) -> str | None:
        if not isinstance(element, Tag):
            return None
        value = element.get(name)
        if value is None:
            return None
        if isinstance(value, list):
            return " ".join(value)
        return str(value)

    def parent(self, element: Any) -> Tag | None:
        parent = getattr(element, "parent", None)
        if isinstance(parent, Tag) and parent.name != "[document]":
            return parent
        return None

    def children(self, element: Any) -> list[Tag]:
        if element is None:
            return []
        return [child for child in element.children if isinstance(child, Tag)]

    def tag_name(self, element: Any) -> str:
        return (getattr(element, "name", "") or "").lower()

    def html(self, element: Any) -> str:
        return str(element) if element is not None else ""

    def document_text(self, document: Any) -> str:
        """Full visible text of a document, one block per line."""
        if document is None:
            return ""
        body = document.body if isinstance(document, BeautifulSoup) and document.body else document

        lines: list[str] = []
        parts: list[str] = []
        current_block: Any = None
        for string in body.find_all(string=True):
            if isinstance(string, Comment):
                continue
            if string.parent is not None and string.parent.name in _HIDDEN_TAGS:
                continue
            cleaned = _WHITESPACE_RE.sub(" ", string).strip()
            if not cleaned:
                continue
            block = _block_ancestor(string)
            if block is not current_block and parts:
                lines.append(" ".join(parts))
                parts = []
            current_block = block
            parts.append(cleaned)
        if parts:
            lines.append(" ".join(parts))
        return _BLANK_LINES_RE.sub("\n", "\n".join(lines)).strip()

    async def fetch_document(self, url: str) -> BeautifulSoup:
        raise FetchError(url, "this adapter cannot fetch documents")


class HttpDocumentAdapter(SoupDocumentAdapter):
    """
    Adapter that fetches pages over HTTP with httpx.

    Usage:
        async with HttpDocumentAdapter() as adapter:
            doc = await adapter.fetch_document("https://www.amazon.com/dp/B0ABCDEFGH")
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        user_agent: str | None = None,
    ) -> None:
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout if timeout is not None else settings.FETCH_TIMEOUT_SECONDS
        self.user_agent = user_agent

    async def __aenter__(self) -> HttpDocumentAdapter:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                headers=DEFAULT_HEADERS,
            )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch_document(self, url: str) -> BeautifulSoup:
        """
        GET a URL and parse it.

        Raises:
            FetchError: on transport errors or non-success status.
            DocumentParseError: if the body is not an HTML document.
        """
        assert self._client is not None, "Adapter not initialized. Use 'async with'."

        headers = {"User-Agent": self.user_agent} if self.user_agent else None
        try:
            response = await self._client.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise FetchError(url, f"{type(e).__name__}: {e}") from e

        if response.status_code >= 400:
            raise FetchError(url, f"HTTP {response.status_code}", status_code=response.status_code)

        logger.debug(
            "document_fetched",
            url=url,
            status_code=response.status_code,
            length=len(response.text),
            source="document",
        )
        return parse_html(response.text, url)
