"""Schemas for pipeline runs."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class RunStage(str, Enum):
    IDLE = "idle"
    WINDOW_COMPUTED = "window_computed"
    FETCHED = "fetched"
    NORMALIZED_STORED = "normalized_stored"
    CORRELATED = "correlated"
    ALERTS_WRITTEN = "alerts_written"
    DONE = "done"
    # Terminal failures
    FETCH_FAILED = "fetch_failed"
    STORE_UNAVAILABLE = "store_unavailable"


class PipelineRunSummary(BaseModel):
    success: bool
    stage: RunStage = RunStage.IDLE
    fetched: int = 0
    inserted: int = 0
    skipped: int = 0
    alerts_created: int = 0
    rejected: int = Field(default=0, description="Feed items the normalizer could not use")
    failed: int = Field(default=0, description="Records that hit a persistence error")
    total_results: int | None = Field(default=None, description="Matches reported by the feed")
    window_start: datetime | None = None
    window_end: datetime | None = None
    error: str | None = None
