"""Daily scan allowance bookkeeping."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import UUID
from zoneinfo import ZoneInfo

from nutriscan.domain.users import ScanQuota


class ScanHistoryRepository(Protocol):
    """Persistence interface for the append-only scan ledger."""

    def count_scans(self, user_id: UUID, start: datetime, end: datetime) -> int:
        """Count scans with ``start <= created_at < end``."""

    def add_scan(self, user_id: UUID, created_at: datetime) -> None:
        """Append a scan row."""


def day_bounds(now: datetime, timezone_name: str) -> tuple[datetime, datetime]:
    """Return the UTC bounds of the calendar day containing ``now``.

    The day is midnight to midnight in ``timezone_name``; the start is
    inclusive and the end exclusive.
    """
    tz = ZoneInfo(timezone_name)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    local = now.astimezone(tz)
    start = local.replace(hour=0, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=1)
    return start.astimezone(UTC), end.astimezone(UTC)


@dataclass
class QuotaTracker:
    """Compute how many scans a user has left today."""

    repository: ScanHistoryRepository
    daily_allowance: int = 5
    timezone_name: str = "UTC"

    def remaining(self, user_id: UUID, now: datetime | None = None) -> int:
        """Return the remaining scans for today, never below zero."""
        return self.quota_status(user_id, now).remaining

    def quota_status(self, user_id: UUID, now: datetime | None = None) -> ScanQuota:
        """Return allowance, used and remaining scans for today."""
        start, end = day_bounds(now or datetime.now(tz=UTC), self.timezone_name)
        used = self.repository.count_scans(user_id, start, end)
        return ScanQuota(
            allowance=self.daily_allowance,
            used=used,
            remaining=max(self.daily_allowance - used, 0),
        )
