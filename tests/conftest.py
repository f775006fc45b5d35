"""pytest fixtures shared across all tests."""

from __future__ import annotations

from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from threatpulse.models.base import Base
from threatpulse.pipeline.feed import NvdFeedClient

# Use SQLite in-memory for tests — no PostgreSQL required.
# Each test function gets its own fresh DB to avoid cross-test pollution.
TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

FEED_URL = "https://nvd.test/rest/json/cves/2.0"


@pytest_asyncio.fixture
async def engine():
    """Create a fresh in-memory SQLite engine per test function."""
    eng = create_async_engine(
        TEST_DB_URL,
        echo=False,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=True)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Yield an async session bound to the test engine."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_nvd_item():
    """Build one raw NVD CVE API 2.0 item."""

    def _make(
        cve_id: str | None = "CVE-2024-0001",
        description: str = "A vulnerability in some product.",
        score: float | None = None,
        metric: str = "cvssMetricV31",
        published: str | None = "2024-01-09T10:00:00.000",
        lang: str = "en",
        references: list[str] | None = None,
    ) -> dict[str, Any]:
        cve: dict[str, Any] = {
            "descriptions": [{"lang": lang, "value": description}],
            "references": [{"url": u} for u in (references or [])],
            "metrics": {},
        }
        if cve_id is not None:
            cve["id"] = cve_id
        if published is not None:
            cve["published"] = published
        if score is not None:
            cve["metrics"][metric] = [{"cvssData": {"baseScore": score}}]
        return {"cve": cve}

    return _make


@pytest.fixture
def make_feed_client():
    """Build an NvdFeedClient served by an in-process mock transport.

    The returned client exposes the captured requests as ``.requests``.
    """

    def _make(
        items: list[dict[str, Any]] | None = None,
        status_code: int = 200,
        body: Any = None,
        content: bytes | None = None,
        exc: Exception | None = None,
        api_key: str = "",
    ) -> NvdFeedClient:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if exc is not None:
                raise exc
            if content is not None:
                return httpx.Response(status_code, content=content)
            payload = body
            if payload is None:
                payload = {
                    "resultsPerPage": len(items or []),
                    "startIndex": 0,
                    "totalResults": len(items or []),
                    "vulnerabilities": items or [],
                }
            return httpx.Response(status_code, json=payload)

        client = NvdFeedClient(
            api_url=FEED_URL,
            page_size=100,
            timeout=5.0,
            api_key=api_key,
            transport=httpx.MockTransport(handler),
        )
        client.requests = requests  # type: ignore[attr-defined]
        return client

    return _make


@pytest_asyncio.fixture
async def client(session_factory, make_feed_client):
    """HTTPX async test client wired to the FastAPI app with a test DB.

    The feed is empty unless a test sets ``app.state.test_feed``.
    """
    from threatpulse.api.app import create_app
    from threatpulse.api.dependencies import (
        get_db,
        get_feed_client,
        get_pipeline_session_factory,
    )
    from threatpulse.core.limiter import limiter

    limiter.reset()
    app = create_app()
    app.state.test_feed = make_feed_client([])

    async def override_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_pipeline_session_factory] = lambda: session_factory
    app.dependency_overrides[get_feed_client] = lambda: app.state.test_feed

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        ac.app = app  # type: ignore[attr-defined]
        yield ac
