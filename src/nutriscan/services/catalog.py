"""Food catalog browsing."""

import math
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from nutriscan.domain.errors import NotFound, ValidationFailed
from nutriscan.domain.foods import Food, FoodDetail, FoodHistoryEntry, FoodPage
from nutriscan.services.summary import TagResolver

MAX_PAGE_SIZE = 100


class CatalogRepository(Protocol):
    """Persistence interface for catalog queries."""

    def get_food(self, food_id: int) -> Food | None:
        """Return a food by id, if present."""

    def search_foods(
        self, name: str, tags: list[int], offset: int, limit: int
    ) -> tuple[list[Food], int]:
        """Return a page of complete foods and the total match count."""


class UserFoodHistoryRepository(Protocol):
    """Persistence interface for a user's rows about one food."""

    def list_entries(self, user_id: UUID, food_id: int) -> list[FoodHistoryEntry]:
        """Return the user's history rows for a food, newest first."""


@dataclass
class FoodCatalogService:
    """Read-side service for food detail and filtered listings."""

    repository: CatalogRepository
    history_repository: UserFoodHistoryRepository
    tag_resolver: TagResolver

    def get_food_detail(self, user_id: UUID, food_id: int) -> FoodDetail:
        """Return a food with tag names and the caller's rating."""
        food = self.repository.get_food(food_id)
        if food is None:
            raise NotFound(f"Food {food_id} not found", food_id=food_id)
        entries = self.history_repository.list_entries(user_id, food_id)
        rating = next(
            (entry.rating for entry in entries if entry.rating is not None), None
        )
        return FoodDetail(
            food=food,
            tag_names=self.tag_resolver.resolve(food.tags),
            user_rating=rating,
            times_eaten=len(entries),
        )

    def list_foods(
        self,
        page: int = 1,
        limit: int = 10,
        name: str = "",
        tags: list[int] | None = None,
    ) -> FoodPage:
        """Return a page of foods filtered by name and tags."""
        if page < 1:
            raise ValidationFailed("page must be at least 1", details={"field": "page"})
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationFailed(
                f"limit must be between 1 and {MAX_PAGE_SIZE}",
                details={"field": "limit"},
            )
        foods, total = self.repository.search_foods(
            name.strip(), list(tags or []), (page - 1) * limit, limit
        )
        return FoodPage(
            data=foods,
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if total else 0,
        )
