"""
End-to-end tests for the one-shot scan entrypoint.

The marketplace is mocked with respx; the result cache is a temporary
SQLite file so persistence across runs can be checked.
"""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest
import respx

from seller_radar.config import ScanStatus, settings
from seller_radar.errors import FetchError
from seller_radar.main import create_cache, main, parse_args, scan_url

from tests.conftest import SEARCH_URL

OPERATOR_DETAIL = (
    '<html><body><div id="merchant-info">Ships from and sold by Amazon.com.</div></body></html>'
)


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}"


@pytest.fixture(autouse=True)
def no_waiting(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "FETCH_JITTER_MIN_SECONDS", 0.0)
    monkeypatch.setattr(settings, "FETCH_JITTER_MAX_SECONDS", 0.0)
    monkeypatch.setattr(settings, "FETCH_BASE_BACKOFF_SECONDS", 0.0)
    monkeypatch.setattr(settings, "SCAN_DELAY_MS", 0)
    monkeypatch.setattr(settings, "MARKETPLACE_BASE_URL", "https://www.amazon.com")


@pytest.fixture
def marketplace(search_html, detail_html, profile_html, profile_us_html):
    with respx.mock(assert_all_called=False) as mock:
        mock.get(SEARCH_URL).mock(return_value=httpx.Response(200, text=search_html))
        mock.get("https://www.amazon.com/sp?ie=UTF8&seller=A1SZTOP00001X").mock(
            return_value=httpx.Response(200, text=profile_html)
        )
        mock.get("https://www.amazon.com/shops/acme-outdoors").mock(
            return_value=httpx.Response(200, text=profile_us_html)
        )
        mock.get("https://www.amazon.com/dp/B0DETAIL03").mock(
            return_value=httpx.Response(200, text=detail_html)
        )
        mock.get("https://www.amazon.com/dp/B0AMZN0004").mock(
            return_value=httpx.Response(200, text=OPERATOR_DETAIL)
        )
        yield mock


class TestScanUrl:
    async def test_scan_search_page(self, marketplace, database_url: str) -> None:
        session = await scan_url(SEARCH_URL, database_url)

        assert session.status is ScanStatus.COMPLETED
        assert session.total == 5
        assert session.processed == 5
        assert session.matched_count == 3
        assert session.unknown_count == 1
        assert session.error_count == 0
        assert session.cache_total == 4
        assert session.cache_matched == 3

    async def test_results_persist_between_runs(self, marketplace, database_url: str) -> None:
        await scan_url(SEARCH_URL, database_url)

        engine, cache = await create_cache(database_url)
        try:
            entry = await cache.get("A1SZTOP00001X")
            assert entry is not None
            assert entry.result.confidence == 1.0
            assert (await cache.stats()).total == 4
        finally:
            await engine.dispose()

    @respx.mock
    async def test_unreachable_page_raises(self, database_url: str) -> None:
        respx.get(SEARCH_URL).mock(return_value=httpx.Response(503))

        with pytest.raises(FetchError) as exc_info:
            await scan_url(SEARCH_URL, database_url)

        assert exc_info.value.url == SEARCH_URL


class TestCli:
    def test_parse_args(self) -> None:
        args = parse_args([SEARCH_URL, "--database-url", "sqlite+aiosqlite:///x.db", "--log-level", "debug"])
        assert args.url == SEARCH_URL
        assert args.database_url == "sqlite+aiosqlite:///x.db"
        assert args.log_level == "debug"

    async def test_main_success(self, marketplace, database_url: str) -> None:
        assert await main([SEARCH_URL, "--database-url", database_url]) == 0

    @respx.mock
    async def test_main_fetch_failure(self, database_url: str) -> None:
        respx.get(SEARCH_URL).mock(return_value=httpx.Response(404))
        assert await main([SEARCH_URL, "--database-url", database_url]) == 1
