"""Publication-date window for the next feed pull."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

DEFAULT_LOOKBACK = timedelta(days=7)


@dataclass(frozen=True)
class FetchWindow:
    start: datetime
    end: datetime

    @property
    def span(self) -> timedelta:
        return self.end - self.start


def as_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def compute_window(
    latest_published_at: datetime | None,
    now: datetime | None = None,
    lookback: timedelta = DEFAULT_LOOKBACK,
    max_span: timedelta | None = None,
) -> FetchWindow:
    """Compute ``[start, end)`` for the next pull.

    ``end`` is ``now``. ``start`` resumes exactly at the newest stored
    publication time, or ``now - lookback`` when nothing is stored. A stored
    time in the future (clock skew) is clamped to ``now``. When ``max_span``
    is given the window never covers more than that, keeping the newest part.
    """
    end = as_utc(now) if now is not None else datetime.now(timezone.utc)

    if latest_published_at is None:
        start = end - lookback
    else:
        start = min(as_utc(latest_published_at), end)

    if max_span is not None and end - start > max_span:
        start = end - max_span

    return FetchWindow(start=start, end=end)
