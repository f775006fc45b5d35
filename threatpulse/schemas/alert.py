"""Schemas for Alert resources."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


class AlertOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    asset_id: uuid.UUID
    site_id: uuid.UUID | None
    status: str
    notified: bool
    created_at: datetime

    # Flattened from the related rows
    cve: str | None = None
    severity: str | None = None
    cvss_score: float | None = None
    asset_name: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_orm(cls, data: Any) -> Any:
        """Replace the CVE surrogate key with its natural id and copy display fields."""
        cve = getattr(data, "cve", None)
        if cve is not None and hasattr(cve, "cve_id"):
            return {
                "id": data.id,
                "asset_id": data.asset_id,
                "site_id": data.site_id,
                "status": data.status,
                "notified": data.notified,
                "created_at": data.created_at,
                "cve": cve.cve_id,
                "severity": cve.severity,
                "cvss_score": cve.cvss_score,
                "asset_name": data.asset.name if data.asset is not None else None,
            }
        return data


class AlertList(BaseModel):
    total: int
    items: list[AlertOut]
