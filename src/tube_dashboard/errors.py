"""Error types raised by the table and webhook clients."""

from __future__ import annotations

from typing import Dict, List


class DashboardError(Exception):
    """Base class for failures surfaced to the user as a notification."""


class ConfigError(DashboardError):
    """An endpoint or credential is missing or still a placeholder."""


class ValidationError(DashboardError):
    """Required user input is empty or otherwise unusable."""


class NetworkError(DashboardError):
    """The request never produced an HTTP response (offline, DNS, reset)."""


class FetchError(DashboardError):
    """A remote service answered with a non-2xx status."""

    def __init__(self, message: str, status: int, reason: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.reason = reason


class GenerationError(DashboardError):
    """A webhook answered 2xx but without the expected payload."""


class BulkDeleteError(DashboardError):
    """Some deletes of a bulk clear failed; the others went through."""

    def __init__(self, deleted: List[int], failures: Dict[int, DashboardError]) -> None:
        self.deleted = deleted
        self.failures = failures
        failed_ids = ", ".join(str(row_id) for row_id in sorted(failures))
        super().__init__(
            f"Failed to delete {len(failures)} of {len(deleted) + len(failures)} rows "
            f"(ids: {failed_ids})."
        )
