"""Domain models for users and their daily figures."""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class UserRecord:
    """Represents a user stored in the database."""

    id: UUID
    name: str
    email: str | None


@dataclass(frozen=True)
class DailySummary:
    """Nutrition totals for one calendar day."""

    name: str | None
    calories: float
    protein: float
    sugar: float


@dataclass(frozen=True)
class ScanQuota:
    """Scan allowance usage for one calendar day."""

    allowance: int
    used: int
    remaining: int
