"""Schemas for CVE resources."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class CveOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    cve_id: str
    description: str | None
    severity: str
    cvss_score: float | None
    published_at: datetime | None
    reference_links: list[str] | None = None
    affected_products: list[str] | None = None
    source: str | None = None
    created_at: datetime


class CveList(BaseModel):
    total: int
    items: list[CveOut]
