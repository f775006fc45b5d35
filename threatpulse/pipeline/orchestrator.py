"""One ingestion-and-correlation run.

Stages run in a fixed order, once, with no retry between them::

    idle → window_computed → fetched → normalized_stored
         → correlated → alerts_written → done

A feed failure ends the run at ``fetch_failed`` before anything is written.
A failed store read (including the batch existence checks) ends it at
``store_unavailable``. Per-record write failures only lower the counts.
"""

from __future__ import annotations

import asyncio
import uuid
from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from threatpulse.core.config import Settings, get_settings
from threatpulse.core.errors import FetchError, StoreUnavailableError
from threatpulse.core.logging import get_logger
from threatpulse.models.base import utcnow
from threatpulse.pipeline.correlator import correlate
from threatpulse.pipeline.feed import NvdFeedClient
from threatpulse.pipeline.normalizer import NormalizedCve, SkipReason, normalize
from threatpulse.pipeline.store import (
    WriteOutcome,
    WriteResult,
    latest_published_at,
    load_active_assets,
    load_recent_vulnerabilities,
    store_alerts,
    store_vulnerabilities,
)
from threatpulse.pipeline.window import as_utc, compute_window
from threatpulse.schemas.pipeline import PipelineRunSummary, RunStage

logger = get_logger(__name__)

# Keeps the scheduler and the manual trigger from overlapping inside one process
_run_lock: asyncio.Lock | None = None


def _get_run_lock() -> asyncio.Lock:
    global _run_lock
    if _run_lock is None:
        _run_lock = asyncio.Lock()
    return _run_lock


def fold_results(results: Iterable[WriteResult]) -> Counter[WriteOutcome]:
    return Counter(r.outcome for r in results)


async def _read_or_unavailable(coro, what: str):
    try:
        return await coro
    except SQLAlchemyError as exc:
        raise StoreUnavailableError(f"could not read {what}: {exc}") from exc


async def _rollback_quietly(session: AsyncSession) -> None:
    # The connection may be the thing that broke
    try:
        await session.rollback()
    except SQLAlchemyError as exc:
        logger.warning("Rollback after store failure also failed", error=str(exc))


async def run_pipeline(
    session_factory: async_sessionmaker[AsyncSession],
    feed_client: NvdFeedClient,
    settings: Settings | None = None,
    now: datetime | None = None,
    site_ids: Sequence[uuid.UUID] | None = None,
) -> PipelineRunSummary:
    """Fetch, store, correlate and alert once; always returns a summary."""
    settings = settings or get_settings()
    now = as_utc(now) if now is not None else utcnow()
    summary = PipelineRunSummary(success=False)

    structlog.contextvars.bind_contextvars(run_id=str(uuid.uuid4()))
    try:
        async with session_factory() as session:
            try:
                await _run_stages(session, feed_client, settings, now, site_ids, summary)
            except FetchError as exc:
                summary.stage = RunStage.FETCH_FAILED
                summary.error = str(exc)
                logger.error("Pipeline run aborted", stage=summary.stage.value, error=str(exc))
                return summary
            except StoreUnavailableError as exc:
                await _rollback_quietly(session)
                summary.stage = RunStage.STORE_UNAVAILABLE
                summary.error = str(exc)
                logger.error("Pipeline run aborted", stage=summary.stage.value, error=str(exc))
                return summary

        summary.success = True
        summary.stage = RunStage.DONE
        logger.info(
            "Pipeline run complete",
            fetched=summary.fetched,
            inserted=summary.inserted,
            skipped=summary.skipped,
            rejected=summary.rejected,
            failed=summary.failed,
            alerts_created=summary.alerts_created,
        )
        return summary
    finally:
        structlog.contextvars.unbind_contextvars("run_id")


async def _run_stages(
    session: AsyncSession,
    feed_client: NvdFeedClient,
    settings: Settings,
    now: datetime,
    site_ids: Sequence[uuid.UUID] | None,
    summary: PipelineRunSummary,
) -> None:
    # 1. Window
    latest = await _read_or_unavailable(latest_published_at(session), "latest CVE timestamp")
    # Don't hold a transaction open across the network call
    await _read_or_unavailable(session.commit(), "latest CVE timestamp")
    window = compute_window(
        latest,
        now=now,
        lookback=timedelta(days=settings.feed_lookback_days),
        max_span=timedelta(days=settings.feed_max_window_days),
    )
    summary.window_start, summary.window_end = window.start, window.end
    summary.stage = RunStage.WINDOW_COMPUTED
    logger.info(
        "Computed fetch window",
        resumed=latest is not None,
        span_hours=round(window.span.total_seconds() / 3600, 2),
    )

    # 2. Fetch
    page = await feed_client.fetch(window)
    summary.fetched = len(page.items)
    summary.total_results = page.total_results
    summary.stage = RunStage.FETCHED
    if page.total_results > len(page.items):
        logger.warning(
            "Feed window holds more CVEs than one page, remainder left for the next run",
            fetched=len(page.items),
            total_results=page.total_results,
        )

    # 3. Normalize & store
    records: list[NormalizedCve] = []
    rejected: Counter[str] = Counter()
    for item in page.items:
        normalized = normalize(item)
        if isinstance(normalized, SkipReason):
            rejected[normalized.value] += 1
            continue
        records.append(normalized)
    if rejected:
        logger.warning("Rejected unusable feed items", reasons=dict(rejected))

    stored = await _read_or_unavailable(
        store_vulnerabilities(session, records, now=now), "stored CVE ids"
    )
    outcomes = fold_results(stored)
    summary.inserted = outcomes[WriteOutcome.INSERTED]
    summary.skipped = outcomes[WriteOutcome.SKIPPED]
    summary.failed = outcomes[WriteOutcome.FAILED]
    summary.rejected = sum(rejected.values())
    summary.stage = RunStage.NORMALIZED_STORED
    logger.info(
        "Stored CVEs",
        inserted=summary.inserted,
        skipped=summary.skipped,
        failed=summary.failed,
    )

    # 4. Correlate
    assets = await _read_or_unavailable(load_active_assets(session, site_ids), "active assets")
    if not assets:
        logger.info("No active assets, skipping correlation")
        summary.stage = RunStage.ALERTS_WRITTEN
        return

    since = now - timedelta(hours=settings.correlation_window_hours)
    vulnerabilities = await _read_or_unavailable(
        load_recent_vulnerabilities(session, since), "recent CVEs"
    )
    matches = correlate(vulnerabilities, assets)
    summary.stage = RunStage.CORRELATED
    logger.info(
        "Correlated assets with recent CVEs",
        assets=len(assets),
        cves=len(vulnerabilities),
        matches=len(matches),
    )

    # 5. Alerts
    written = await _read_or_unavailable(store_alerts(session, matches, now=now), "existing alerts")
    alert_outcomes = fold_results(written)
    summary.alerts_created = alert_outcomes[WriteOutcome.INSERTED]
    summary.failed += alert_outcomes[WriteOutcome.FAILED]
    summary.stage = RunStage.ALERTS_WRITTEN


async def run_once(
    site_ids: Sequence[uuid.UUID] | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    feed_client: NvdFeedClient | None = None,
) -> PipelineRunSummary:
    """Entry point for the scheduler, the API trigger and the CLI.

    Collaborators default to the configured database and NVD endpoint.
    """
    from threatpulse.core.database import get_session_factory

    settings = get_settings()
    async with _get_run_lock():
        return await run_pipeline(
            session_factory or get_session_factory(),
            feed_client or NvdFeedClient.from_settings(settings),
            settings=settings,
            site_ids=site_ids,
        )
