"""Tests for the pipeline trigger and the CVE / alert read APIs."""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from threatpulse.models.asset import Asset
from threatpulse.models.cve import Cve


async def _seed(session_factory, *rows) -> None:
    async with session_factory() as session:
        session.add_all(rows)
        await session.commit()


@pytest.mark.asyncio
async def test_trigger_run_creates_cves_and_alerts(
    client, session_factory, make_feed_client, make_nvd_item
):
    await _seed(session_factory, Asset(name="web-01", device_type="linux"))
    client.app.state.test_feed = make_feed_client(
        [make_nvd_item("CVE-2024-0001", description="Heap overflow in the Linux kernel.", score=9.8)]
    )

    r = await client.post("/api/v1/pipeline/run")
    assert r.status_code == 200
    data = r.json()
    assert data["success"] is True
    assert data["stage"] == "done"
    assert data["fetched"] == 1
    assert data["inserted"] == 1
    assert data["alerts_created"] == 1

    r2 = await client.get("/api/v1/alerts")
    assert r2.json()["total"] == 1
    alert = r2.json()["items"][0]
    assert alert["cve"] == "CVE-2024-0001"
    assert alert["severity"] == "critical"
    assert alert["asset_name"] == "web-01"
    assert alert["status"] == "new"


@pytest.mark.asyncio
async def test_trigger_run_feed_failure_returns_502(client, make_feed_client):
    client.app.state.test_feed = make_feed_client(status_code=500, content=b"boom")

    r = await client.post("/api/v1/pipeline/run")
    assert r.status_code == 502
    data = r.json()
    assert data["success"] is False
    assert data["stage"] == "fetch_failed"
    assert "500" in data["error"]


@pytest.mark.asyncio
async def test_trigger_run_store_failure_returns_503(client):
    failing = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("connection reset")))

    with patch("threatpulse.pipeline.orchestrator.latest_published_at", new=failing):
        r = await client.post("/api/v1/pipeline/run")

    assert r.status_code == 503
    data = r.json()
    assert data["success"] is False
    assert data["stage"] == "store_unavailable"


@pytest.mark.asyncio
async def test_trigger_run_scoped_to_site(client, session_factory, make_feed_client, make_nvd_item):
    site_a, site_b = uuid.uuid4(), uuid.uuid4()
    await _seed(
        session_factory,
        Asset(name="a", device_type="linux", site_id=site_a),
        Asset(name="b", device_type="linux", site_id=site_b),
    )
    client.app.state.test_feed = make_feed_client(
        [make_nvd_item("CVE-2024-0002", description="linux local privilege escalation")]
    )

    r = await client.post("/api/v1/pipeline/run", params={"site_id": [str(site_a)]})
    assert r.status_code == 200
    assert r.json()["alerts_created"] == 1

    r2 = await client.get("/api/v1/alerts", params={"site_id": str(site_b)})
    assert r2.json()["total"] == 0


@pytest.mark.asyncio
async def test_trigger_run_is_rate_limited(client):
    statuses = [(await client.post("/api/v1/pipeline/run")).status_code for _ in range(11)]
    assert statuses[:10] == [200] * 10
    assert statuses[10] == 429


@pytest.mark.asyncio
async def test_cves_list_and_filter(client, session_factory):
    published = datetime(2024, 1, 9, tzinfo=timezone.utc)
    await _seed(
        session_factory,
        Cve(cve_id="CVE-2024-0001", severity="critical", cvss_score=9.8, published_at=published),
        Cve(cve_id="CVE-2024-0002", severity="low", cvss_score=2.0, published_at=published),
    )

    r = await client.get("/api/v1/cves")
    assert r.json()["total"] == 2

    r2 = await client.get("/api/v1/cves", params={"severity": "critical"})
    assert r2.json()["total"] == 1
    assert r2.json()["items"][0]["cve_id"] == "CVE-2024-0001"

    r3 = await client.get("/api/v1/cves", params={"severity": "urgent"})
    assert r3.status_code == 422


@pytest.mark.asyncio
async def test_get_cve_by_natural_id(client, session_factory):
    await _seed(session_factory, Cve(cve_id="CVE-2024-0001", severity="high", cvss_score=7.5))

    r = await client.get("/api/v1/cves/cve-2024-0001")
    assert r.status_code == 200
    assert r.json()["severity"] == "high"

    r2 = await client.get("/api/v1/cves/CVE-1999-0001")
    assert r2.status_code == 404
