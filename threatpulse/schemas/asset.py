"""Schemas for Asset resources."""

from __future__ import annotations

import ipaddress
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AssetBase(BaseModel):
    site_id: uuid.UUID | None = None
    name: str | None = None
    ip: str | None = None
    hostname: str | None = None
    vendor: str | None = None
    os_family: str | None = None
    os_version: str | None = None
    notes: str | None = None

    @field_validator("ip", mode="before")
    @classmethod
    def _validate_ip(cls, v: str | None) -> str | None:
        if v is None:
            return v
        try:
            ipaddress.ip_address(v)
        except ValueError:
            raise ValueError(f"Invalid IP address: {v!r}")
        return v


class AssetCreate(AssetBase):
    device_type: str = Field(..., min_length=1, max_length=100)
    is_active: bool = True


class AssetUpdate(AssetBase):
    device_type: str | None = Field(default=None, min_length=1, max_length=100)
    is_active: bool | None = None


class AssetOut(AssetBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    device_type: str
    is_active: bool
    last_seen: datetime | None
    created_at: datetime
    updated_at: datetime


class AssetList(BaseModel):
    total: int
    items: list[AssetOut]
