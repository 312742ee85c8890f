"""Food recommendations derived from a user's eating history."""

from collections import Counter
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from nutriscan.domain.foods import ConsumedFood, Food, FoodStatus
from nutriscan.services.summary import ConsumptionRepository

_NEUTRAL_RATING = 3
_GRADE_ORDER = {"A": 0, "B": 1, "C": 2, "D": 3, "E": 4}


class CandidateRepository(Protocol):
    """Source of foods that may be recommended."""

    def list_complete_foods(self, limit: int) -> list[Food]:
        """Return up to ``limit`` foods that have an image linked."""


class RecommendationEngine(Protocol):
    """Ranking algorithm plugged into the recommendation service."""

    def rank(
        self, history: list[ConsumedFood], candidates: list[Food], limit: int
    ) -> list[Food]:
        """Return at most ``limit`` candidates, most relevant first."""


@dataclass
class TagAffinityEngine(RecommendationEngine):
    """Score foods by shared tags with what the user ate and liked."""

    def rank(
        self, history: list[ConsumedFood], candidates: list[Food], limit: int
    ) -> list[Food]:
        """Rank candidates by tag affinity, falling back to grade."""
        affinity: Counter[int] = Counter()
        for row in history:
            weight = (row.history.rating or _NEUTRAL_RATING) - _NEUTRAL_RATING + 1
            for tag in row.food.tags:
                affinity[tag] += weight
        return sorted(
            candidates,
            key=lambda food: (
                -sum(affinity[tag] for tag in set(food.tags)),
                _GRADE_ORDER.get(food.grade or "", len(_GRADE_ORDER)),
                food.name.lower(),
                food.id,
            ),
        )[:limit]


@dataclass
class RecommendationService:
    """Produce a fresh ranked list of foods on every call."""

    consumption_repository: ConsumptionRepository
    candidate_repository: CandidateRepository
    engine: RecommendationEngine
    candidate_pool_size: int = 200

    def recommend(self, user_id: UUID, limit: int = 10) -> list[Food]:
        """Return recommended foods, most relevant first."""
        if limit <= 0:
            return []
        history = self.consumption_repository.list_consumed(user_id, None, None)
        candidates = [
            food
            for food in self.candidate_repository.list_complete_foods(
                self.candidate_pool_size
            )
            if food.status is FoodStatus.COMPLETE
        ]
        if not candidates:
            return []
        return list(self.engine.rank(history, candidates, limit))
