"""
Seller Radar — Shared pytest Fixtures & Configuration

Provides common fixtures for all test modules:
- HTML page fixtures (search results, item detail, seller profiles)
- Parsed documents and a query adapter
- In-memory SQLite session factory for the SQL cache
- A recording sleeper so backoff and pacing never wait in real time
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncGenerator

import pytest
from bs4 import BeautifulSoup
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from seller_radar.extraction.document import SoupDocumentAdapter, parse_html
from seller_radar.models.base import Base


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

pytest_plugins = ("pytest_asyncio",)

FIXTURES = Path(__file__).parent / "fixtures"

SEARCH_URL = "https://www.amazon.com/s?k=usb+charger"
PRODUCT_URL = "https://www.amazon.com/Wireless-Earbuds/dp/B0DETAIL03"


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for anyio tests."""
    return "asyncio"


# ---------------------------------------------------------------------------
# Fixture Loaders
# ---------------------------------------------------------------------------


def load_fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


@pytest.fixture(scope="session")
def search_html() -> str:
    """Search results page: five visible cards, one hidden, one pagination row."""
    return load_fixture("search_page.html")


@pytest.fixture(scope="session")
def detail_html() -> str:
    """Item detail page sold by a Dongguan store that ships from China."""
    return load_fixture("detail_page.html")


@pytest.fixture(scope="session")
def profile_html() -> str:
    """Seller profile with a Shenzhen business address and +86 phone."""
    return load_fixture("profile_page.html")


@pytest.fixture(scope="session")
def profile_us_html() -> str:
    """Seller profile with a Denver business address."""
    return load_fixture("profile_page_us.html")


@pytest.fixture
def adapter() -> SoupDocumentAdapter:
    return SoupDocumentAdapter()


@pytest.fixture
def search_doc(search_html: str) -> BeautifulSoup:
    return parse_html(search_html, SEARCH_URL)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """
    Async session factory over in-memory SQLite (aiosqlite).

    Creates a fresh database for each test, ensuring isolation.
    """
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


# ---------------------------------------------------------------------------
# Utility Fixtures
# ---------------------------------------------------------------------------


class RecordingSleep:
    """Awaitable sleeper that records requested delays and returns immediately."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeClock:
    """Settable UTC clock for expiry tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
