"""Supabase repository for food catalog rows and food groups."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from nutriscan.domain.foods import Food, FoodGroup, FoodStatus
from nutriscan.services.catalog import CatalogRepository
from nutriscan.services.recommendations import CandidateRepository
from nutriscan.services.saving import FoodRepository
from nutriscan.services.summary import FoodGroupRepository

FOOD_COLUMNS = (
    "id, name, calories, sugar, protein, fat, carbohydrate, grade, image_url, "
    "tags, type, status, created_at"
)


@dataclass
class SupabaseFoodRepository(
    FoodRepository, CatalogRepository, CandidateRepository, FoodGroupRepository
):
    """Supabase implementation for foods and the food group catalog."""

    client: Client

    def create_food(self, payload: dict[str, object]) -> Food:
        """Insert a food row and return it."""
        response = self.client.table("foods").insert(payload).execute()
        if not response.data:
            raise RuntimeError("Failed to create food")
        return parse_food(response.data[0])

    def get_food(self, food_id: int) -> Food | None:
        """Return a food by id, if present."""
        response = (
            self.client.table("foods")
            .select(FOOD_COLUMNS)
            .eq("id", food_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return parse_food(response.data[0])

    def link_image(self, food_id: int, image_url: str) -> Food | None:
        """Attach the image URL and mark the food complete in one update."""
        response = (
            self.client.table("foods")
            .update({"image_url": image_url, "status": FoodStatus.COMPLETE.value})
            .eq("id", food_id)
            .execute()
        )
        if not response.data:
            return None
        return parse_food(response.data[0])

    def list_pending_foods(self, created_before: datetime) -> list[Food]:
        """Return foods still waiting for an image."""
        response = (
            self.client.table("foods")
            .select(FOOD_COLUMNS)
            .eq("status", FoodStatus.PENDING_IMAGE.value)
            .lt("created_at", created_before.isoformat())
            .order("created_at", desc=False)
            .execute()
        )
        return [parse_food(row) for row in response.data or []]

    def search_foods(
        self, name: str, tags: list[int], offset: int, limit: int
    ) -> tuple[list[Food], int]:
        """Return a page of complete foods matching name and all tags."""
        query = (
            self.client.table("foods")
            .select(FOOD_COLUMNS, count="exact")
            .eq("status", FoodStatus.COMPLETE.value)
        )
        if name:
            query = query.ilike("name", f"%{name}%")
        if tags:
            query = query.contains("tags", tags)
        response = (
            query.order("id", desc=False).range(offset, offset + limit - 1).execute()
        )
        foods = [parse_food(row) for row in response.data or []]
        total = response.count if response.count is not None else len(foods)
        return foods, total

    def list_complete_foods(self, limit: int) -> list[Food]:
        """Return complete foods, best grade first."""
        response = (
            self.client.table("foods")
            .select(FOOD_COLUMNS)
            .eq("status", FoodStatus.COMPLETE.value)
            .order("grade", desc=False)
            .limit(limit)
            .execute()
        )
        return [parse_food(row) for row in response.data or []]

    def get_food_groups(self, group_ids: list[int]) -> list[FoodGroup]:
        """Return the food groups that exist among ``group_ids``."""
        if not group_ids:
            return []
        response = (
            self.client.table("food_groups")
            .select("id, name")
            .in_("id", group_ids)
            .execute()
        )
        return [
            FoodGroup(id=int(row["id"]), name=str(row.get("name", "")))
            for row in response.data or []
        ]


def parse_food(row: dict[str, object]) -> Food:
    """Parse a food row into a domain model."""
    created_raw = row.get("created_at")
    created_at = (
        datetime.fromisoformat(created_raw)
        if isinstance(created_raw, str) and created_raw
        else None
    )
    return Food(
        id=int(row["id"]),
        name=str(row.get("name", "")),
        calories=float(row.get("calories") or 0.0),
        sugar=float(row.get("sugar") or 0.0),
        protein=float(row.get("protein") or 0.0),
        fat=float(row.get("fat") or 0.0),
        carbohydrate=float(row.get("carbohydrate") or 0.0),
        grade=row.get("grade"),
        image_url=row.get("image_url"),
        tags=[int(tag) for tag in row.get("tags") or []],
        type=row.get("type"),
        status=FoodStatus(row.get("status") or FoodStatus.COMPLETE.value),
        created_at=created_at,
    )
