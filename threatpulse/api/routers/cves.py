"""CVEs API router — browse ingested vulnerabilities."""

from __future__ import annotations

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from threatpulse.api.dependencies import get_db
from threatpulse.models.cve import Cve
from threatpulse.schemas.cve import CveList, CveOut

router = APIRouter(prefix="/cves", tags=["cves"])

DbDep = Annotated[AsyncSession, Depends(get_db)]

SeverityFilter = Literal["critical", "high", "medium", "low"]


@router.get("", response_model=CveList)
async def list_cves(
    db: DbDep,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    severity: SeverityFilter | None = Query(None),
) -> CveList:
    query = select(Cve)
    count_query = select(func.count()).select_from(Cve)
    if severity:
        query = query.where(Cve.severity == severity)
        count_query = count_query.where(Cve.severity == severity)
    query = query.order_by(Cve.published_at.desc()).offset(skip).limit(limit)

    total = (await db.execute(count_query)).scalar_one()
    cves = (await db.execute(query)).scalars().all()
    return CveList(total=total, items=list(cves))


@router.get("/{cve_id}", response_model=CveOut)
async def get_cve(cve_id: str, db: DbDep) -> Cve:
    result = await db.execute(select(Cve).where(Cve.cve_id == cve_id.upper()))
    cve = result.scalar_one_or_none()
    if not cve:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=f"CVE {cve_id!r} not found"
        )
    return cve
