"""Alerts API router — read the alerts produced by correlation."""

from __future__ import annotations

import uuid
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from threatpulse.api.dependencies import get_db
from threatpulse.models.alert import Alert
from threatpulse.schemas.alert import AlertList

router = APIRouter(prefix="/alerts", tags=["alerts"])

DbDep = Annotated[AsyncSession, Depends(get_db)]

StatusFilter = Literal["new", "read", "dismissed"]


@router.get("", response_model=AlertList)
async def list_alerts(
    db: DbDep,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    status_filter: StatusFilter | None = Query(None, alias="status"),
    site_id: uuid.UUID | None = Query(None),
) -> AlertList:
    query = select(Alert).options(selectinload(Alert.cve), selectinload(Alert.asset))
    count_query = select(func.count()).select_from(Alert)
    if status_filter:
        query = query.where(Alert.status == status_filter)
        count_query = count_query.where(Alert.status == status_filter)
    if site_id:
        query = query.where(Alert.site_id == site_id)
        count_query = count_query.where(Alert.site_id == site_id)
    query = query.order_by(Alert.created_at.desc()).offset(skip).limit(limit)

    total = (await db.execute(count_query)).scalar_one()
    alerts = (await db.execute(query)).scalars().all()
    return AlertList(total=total, items=list(alerts))
