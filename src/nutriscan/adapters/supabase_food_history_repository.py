"""Supabase repository for user food history."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from nutriscan.adapters.supabase_food_repository import FOOD_COLUMNS, parse_food
from nutriscan.domain.foods import ConsumedFood, FoodHistoryEntry
from nutriscan.services.catalog import UserFoodHistoryRepository
from nutriscan.services.saving import FoodHistoryRepository
from nutriscan.services.summary import ConsumptionRepository

HISTORY_COLUMNS = "id, user_id, food_id, rating, created_at"


@dataclass
class SupabaseFoodHistoryRepository(
    FoodHistoryRepository, ConsumptionRepository, UserFoodHistoryRepository
):
    """Supabase implementation for food history rows."""

    client: Client

    def create_entry(
        self, user_id: UUID, food_id: int, created_at: datetime
    ) -> FoodHistoryEntry:
        """Insert a history row and return it."""
        response = (
            self.client.table("food_history")
            .insert(
                {
                    "user_id": str(user_id),
                    "food_id": food_id,
                    "created_at": created_at.isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create food history")
        return _parse_entry(response.data[0])

    def get_latest_entry(self, user_id: UUID, food_id: int) -> FoodHistoryEntry | None:
        """Return the user's most recent history row for a food."""
        entries = self._select_entries(user_id, food_id, limit=1)
        return entries[0] if entries else None

    def list_entries(self, user_id: UUID, food_id: int) -> list[FoodHistoryEntry]:
        """Return the user's history rows for a food, newest first."""
        return self._select_entries(user_id, food_id)

    def set_rating(self, entry_id: int, rating: int) -> None:
        """Store a rating on a history row."""
        response = (
            self.client.table("food_history")
            .update({"rating": rating})
            .eq("id", entry_id)
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to update food rating")

    def list_consumed(
        self, user_id: UUID, start: datetime | None, end: datetime | None
    ) -> list[ConsumedFood]:
        """Return history rows joined to foods, newest first."""
        query = (
            self.client.table("food_history")
            .select(f"{HISTORY_COLUMNS}, foods!inner({FOOD_COLUMNS})")
            .eq("user_id", str(user_id))
        )
        if start is not None:
            query = query.gte("created_at", start.isoformat())
        if end is not None:
            query = query.lt("created_at", end.isoformat())
        response = query.order("created_at", desc=True).execute()
        return [
            ConsumedFood(history=_parse_entry(row), food=parse_food(row["foods"]))
            for row in response.data or []
            if row.get("foods")
        ]

    def _select_entries(
        self, user_id: UUID, food_id: int, limit: int | None = None
    ) -> list[FoodHistoryEntry]:
        query = (
            self.client.table("food_history")
            .select(HISTORY_COLUMNS)
            .eq("user_id", str(user_id))
            .eq("food_id", food_id)
            .order("created_at", desc=True)
        )
        if limit is not None:
            query = query.limit(limit)
        response = query.execute()
        return [_parse_entry(row) for row in response.data or []]


def _parse_entry(row: dict[str, object]) -> FoodHistoryEntry:
    rating = row.get("rating")
    return FoodHistoryEntry(
        id=int(row["id"]),
        user_id=UUID(str(row["user_id"])),
        food_id=int(row["food_id"]),
        rating=int(rating) if rating is not None else None,
        created_at=datetime.fromisoformat(str(row["created_at"])),
    )
