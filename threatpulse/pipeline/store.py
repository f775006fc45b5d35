"""Store access for the pipeline: batch reads and idempotent writes.

Writes are keyed by natural key (``Cve.cve_id`` and ``(asset_id, cve_id)``
for alerts). Every insert runs in its own transaction so one failing row
never takes the rest of the batch down with it; the unique constraints
decide between concurrent writers (first write wins).
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from threatpulse.core.errors import RecordPersistenceError
from threatpulse.core.logging import get_logger
from threatpulse.models.alert import Alert
from threatpulse.models.asset import Asset
from threatpulse.models.base import utcnow
from threatpulse.models.cve import Cve
from threatpulse.pipeline.correlator import AssetProfile, Match, VulnerabilityProfile
from threatpulse.pipeline.normalizer import NormalizedCve
from threatpulse.pipeline.window import as_utc

logger = get_logger(__name__)


class WriteOutcome(str, Enum):
    INSERTED = "inserted"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class WriteResult:
    key: str
    outcome: WriteOutcome
    error: RecordPersistenceError | None = None


# ── Reads ────────────────────────────────────────────────────────────────────


async def latest_published_at(session: AsyncSession) -> datetime | None:
    result = await session.execute(select(func.max(Cve.published_at)))
    value = result.scalar_one_or_none()
    return as_utc(value) if value is not None else None


async def load_active_assets(
    session: AsyncSession,
    site_ids: Sequence[uuid.UUID] | None = None,
) -> list[AssetProfile]:
    query = select(Asset).where(Asset.is_active.is_(True))
    if site_ids:
        query = query.where(Asset.site_id.in_(list(site_ids)))
    assets = (await session.execute(query)).scalars().all()
    return [
        AssetProfile(
            id=a.id,
            asset_type=a.device_type,
            vendor=a.vendor,
            os_version=a.os_version,
            site_id=a.site_id,
        )
        for a in assets
    ]


async def load_recent_vulnerabilities(
    session: AsyncSession, since: datetime
) -> list[VulnerabilityProfile]:
    """CVEs created (ingested) at or after ``since``."""
    query = select(Cve).where(Cve.created_at >= since).order_by(Cve.published_at)
    rows = (await session.execute(query)).scalars().all()
    return [
        VulnerabilityProfile(
            id=row.id,
            cve_id=row.cve_id,
            description=row.description,
            affected_products=tuple(row.affected_products or ()),
        )
        for row in rows
    ]


# ── Writes ───────────────────────────────────────────────────────────────────


async def _insert(session: AsyncSession, row: Cve | Alert, key: str) -> WriteResult:
    session.add(row)
    try:
        await session.commit()
    except IntegrityError:
        # Another writer got there first
        await session.rollback()
        logger.info("Insert conflict, treating as existing", key=key)
        return WriteResult(key, WriteOutcome.SKIPPED)
    except SQLAlchemyError as exc:
        await session.rollback()
        error = RecordPersistenceError(key, str(exc))
        logger.error("Failed to persist record", key=key, error=str(exc))
        return WriteResult(key, WriteOutcome.FAILED, error)
    return WriteResult(key, WriteOutcome.INSERTED)


async def store_vulnerabilities(
    session: AsyncSession,
    records: Iterable[NormalizedCve],
    now: datetime | None = None,
) -> list[WriteResult]:
    """Insert records whose ``cve_id`` is not stored yet; skip the rest.

    Insert failures are returned as results. A failing existence check
    raises, since nothing can be decided without it.
    """
    records = list(records)
    now = now or utcnow()

    keys = sorted({r.cve_id for r in records})
    seen: set[str] = set()
    if keys:
        result = await session.execute(select(Cve.cve_id).where(Cve.cve_id.in_(keys)))
        seen = set(result.scalars().all())

    results: list[WriteResult] = []
    for record in records:
        if record.cve_id in seen:
            logger.debug("CVE already stored", cve_id=record.cve_id)
            results.append(WriteResult(record.cve_id, WriteOutcome.SKIPPED))
            continue
        seen.add(record.cve_id)

        row = Cve(
            id=uuid.uuid4(),
            cve_id=record.cve_id,
            description=record.description,
            cvss_score=record.cvss_score,
            severity=record.severity.value,
            published_at=record.published_at,
            reference_links=list(record.reference_links),
            affected_products=list(record.affected_products),
            source=record.source,
            created_at=now,
            updated_at=now,
        )
        outcome = await _insert(session, row, record.cve_id)
        if outcome.outcome is WriteOutcome.INSERTED:
            logger.info("Inserted CVE", cve_id=record.cve_id, severity=record.severity.value)
        results.append(outcome)

    return results


async def store_alerts(
    session: AsyncSession,
    matches: Iterable[Match],
    now: datetime | None = None,
) -> list[WriteResult]:
    """Insert one ``new`` alert per matched pair that has none yet.

    Same failure split as :func:`store_vulnerabilities`.
    """
    matches = list(matches)
    now = now or utcnow()
    if not matches:
        return []

    asset_ids = list({m.asset.id for m in matches})
    cve_ids = list({m.vulnerability.id for m in matches})
    result = await session.execute(
        select(Alert.asset_id, Alert.cve_id).where(
            Alert.asset_id.in_(asset_ids),
            Alert.cve_id.in_(cve_ids),
        )
    )
    seen = {(asset_id, cve_id) for asset_id, cve_id in result.all()}

    results: list[WriteResult] = []
    for match in matches:
        pair = (match.asset.id, match.vulnerability.id)
        key = f"{match.asset.id}/{match.vulnerability.cve_id}"
        if pair in seen:
            results.append(WriteResult(key, WriteOutcome.SKIPPED))
            continue
        seen.add(pair)

        alert = Alert(
            id=uuid.uuid4(),
            asset_id=match.asset.id,
            cve_id=match.vulnerability.id,
            site_id=match.asset.site_id,
            status="new",
            notified=False,
            created_at=now,
            updated_at=now,
        )
        outcome = await _insert(session, alert, key)
        if outcome.outcome is WriteOutcome.INSERTED:
            logger.info(
                "Created alert",
                asset_id=str(match.asset.id),
                cve_id=match.vulnerability.cve_id,
            )
        results.append(outcome)

    return results
