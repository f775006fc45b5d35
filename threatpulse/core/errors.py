"""Pipeline exception hierarchy.

Only FetchError and StoreUnavailableError end a run. RecordPersistenceError
is raised per record, logged, and folded into the run summary counts.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for ingestion/correlation failures."""


class FetchError(PipelineError):
    """The vulnerability feed was unreachable or returned an unusable response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"Feed error {self.status_code}: {self.message}"
        return f"Feed error: {self.message}"


class RecordPersistenceError(PipelineError):
    """A single vulnerability or alert row could not be written."""

    def __init__(self, key: str, message: str) -> None:
        self.key = key
        self.message = message
        super().__init__(f"{key}: {message}")


class StoreUnavailableError(PipelineError):
    """A read the run depends on failed (timestamps, assets, recent CVEs, existence checks)."""
