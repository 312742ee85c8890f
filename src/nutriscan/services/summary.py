"""Daily nutrition totals and the user's eating history."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol
from uuid import UUID

from nutriscan.domain.errors import NotFound
from nutriscan.domain.foods import ConsumedFood, FoodGroup, HistoryEntry
from nutriscan.domain.users import DailySummary, UserRecord
from nutriscan.services.cache import Cache
from nutriscan.services.quota import day_bounds

_logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
_DANGLING = ""


class ConsumptionRepository(Protocol):
    """Read-only queries over food history joined to foods."""

    def list_consumed(
        self, user_id: UUID, start: datetime | None, end: datetime | None
    ) -> list[ConsumedFood]:
        """Return history rows in ``[start, end)``, newest first.

        A ``None`` bound leaves that side of the window open.
        """


class FoodGroupRepository(Protocol):
    """Read-only access to the tag catalog."""

    def get_food_groups(self, group_ids: list[int]) -> list[FoodGroup]:
        """Return the groups that exist among ``group_ids``."""


class UserRepository(Protocol):
    """Read-only access to users."""

    def get_user(self, user_id: UUID) -> UserRecord | None:
        """Return a user by id, if present."""


@dataclass
class TagResolver:
    """Resolve tag ids to names through a bounded TTL cache.

    Only ids missing from the cache are fetched. Ids with no food group are
    cached as dangling so they are not re-queried until their entry expires.
    """

    repository: FoodGroupRepository
    cache: Cache
    ttl_seconds: int = 600

    def resolve(self, tag_ids: list[int]) -> list[str]:
        """Return names for ``tag_ids`` in order, dropping dangling ids."""
        names = self.lookup(tag_ids)
        return [names[tag_id] for tag_id in tag_ids if names.get(tag_id)]

    def lookup(self, tag_ids: list[int]) -> dict[int, str]:
        """Return a mapping of id to name; dangling ids map to an empty string."""
        found: dict[int, str] = {}
        missing: list[int] = []
        for tag_id in dict.fromkeys(tag_ids):
            cached = self.cache.get(_cache_key(tag_id))
            if isinstance(cached, str):
                found[tag_id] = cached
            else:
                missing.append(tag_id)
        if missing:
            groups = {
                group.id: group.name
                for group in self.repository.get_food_groups(missing)
            }
            for tag_id in missing:
                name = groups.get(tag_id, _DANGLING)
                if name == _DANGLING:
                    _logger.warning("Dangling food group reference: %s", tag_id)
                self.cache.set(_cache_key(tag_id), name, ttl_seconds=self.ttl_seconds)
                found[tag_id] = name
        return found


@dataclass
class NutritionAggregator:
    """Compute daily totals and the history listing for a user."""

    consumption_repository: ConsumptionRepository
    user_repository: UserRepository
    tag_resolver: TagResolver
    timezone_name: str = "UTC"

    def daily_summary(self, user_id: UUID, now: datetime | None = None) -> DailySummary:
        """Return today's calories, protein and sugar, rounded to cents."""
        user = self.user_repository.get_user(user_id)
        if user is None:
            raise NotFound(f"User {user_id} not found")
        start, end = day_bounds(now or datetime.now(tz=UTC), self.timezone_name)
        rows = self.consumption_repository.list_consumed(user_id, start, end)
        calories = sum((Decimal(str(row.food.calories)) for row in rows), Decimal(0))
        protein = sum((Decimal(str(row.food.protein)) for row in rows), Decimal(0))
        sugar = sum((Decimal(str(row.food.sugar)) for row in rows), Decimal(0))
        return DailySummary(
            name=user.name,
            calories=round_cents(calories),
            protein=round_cents(protein),
            sugar=round_cents(sugar),
        )

    def history(self, user_id: UUID) -> list[HistoryEntry]:
        """Return the user's history, newest first, with tag names."""
        rows = self.consumption_repository.list_consumed(user_id, None, None)
        names = self.tag_resolver.lookup([tag for row in rows for tag in row.food.tags])
        entries = [
            HistoryEntry(
                food_id=row.food.id,
                name=row.food.name,
                grade=row.food.grade,
                tags=[names[tag] for tag in row.food.tags if names.get(tag)],
                image_url=row.food.image_url,
                type=row.food.type,
                rating=row.history.rating,
                eaten_at=row.history.created_at,
            )
            for row in rows
        ]
        return sorted(entries, key=lambda entry: entry.eaten_at, reverse=True)


def round_cents(value: Decimal | float | None) -> float:
    """Round to two decimals, halves away from zero; ``None`` becomes zero."""
    if value is None:
        return 0.0
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    return float(amount.quantize(_CENT, rounding=ROUND_HALF_UP))


def _cache_key(tag_id: int) -> str:
    return f"food_group:{tag_id}"
