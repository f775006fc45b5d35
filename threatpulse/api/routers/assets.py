"""Assets API router — the inventory correlation reads from."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from threatpulse.api.dependencies import get_db
from threatpulse.models.asset import Asset
from threatpulse.schemas.asset import AssetCreate, AssetList, AssetOut, AssetUpdate

router = APIRouter(prefix="/assets", tags=["assets"])

DbDep = Annotated[AsyncSession, Depends(get_db)]


async def _get_asset_or_404(asset_id: uuid.UUID, db: AsyncSession) -> Asset:
    result = await db.execute(select(Asset).where(Asset.id == asset_id))
    asset = result.scalar_one_or_none()
    if not asset:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Asset not found")
    return asset


@router.get("", response_model=AssetList)
async def list_assets(
    db: DbDep,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    active_only: bool = Query(False),
    site_id: uuid.UUID | None = Query(None),
) -> AssetList:
    query = select(Asset)
    count_query = select(func.count()).select_from(Asset)
    if active_only:
        query = query.where(Asset.is_active.is_(True))
        count_query = count_query.where(Asset.is_active.is_(True))
    if site_id:
        query = query.where(Asset.site_id == site_id)
        count_query = count_query.where(Asset.site_id == site_id)
    query = query.offset(skip).limit(limit).order_by(Asset.created_at.desc())

    total = (await db.execute(count_query)).scalar_one()
    assets = (await db.execute(query)).scalars().all()
    return AssetList(total=total, items=list(assets))


@router.get("/{asset_id}", response_model=AssetOut)
async def get_asset(asset_id: uuid.UUID, db: DbDep) -> Asset:
    return await _get_asset_or_404(asset_id, db)


@router.post("", response_model=AssetOut, status_code=status.HTTP_201_CREATED)
async def create_asset(payload: AssetCreate, db: DbDep) -> Asset:
    asset = Asset(**payload.model_dump(exclude_none=True))
    db.add(asset)
    await db.flush()
    await db.refresh(asset)
    return asset


@router.patch("/{asset_id}", response_model=AssetOut)
async def update_asset(asset_id: uuid.UUID, payload: AssetUpdate, db: DbDep) -> Asset:
    asset = await _get_asset_or_404(asset_id, db)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(asset, field, value)
    await db.flush()
    await db.refresh(asset)
    return asset


@router.delete("/{asset_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_asset(asset_id: uuid.UUID, db: DbDep) -> None:
    asset = await _get_asset_or_404(asset_id, db)
    await db.delete(asset)
