"""Domain models for the food catalog and a user's eating history."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, Field


class FoodStatus(StrEnum):
    """Lifecycle of a food record."""

    PENDING_IMAGE = "pending_image"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Food:
    """A catalog entry with nutrition values."""

    id: int
    name: str
    calories: float
    sugar: float
    protein: float
    fat: float
    carbohydrate: float
    grade: str | None
    image_url: str | None
    tags: list[int]
    type: str | None
    status: FoodStatus
    created_at: datetime | None = None


@dataclass(frozen=True)
class FoodGroup:
    """Tag identifier to display name mapping."""

    id: int
    name: str


@dataclass(frozen=True)
class FoodHistoryEntry:
    """A user ate a food at a point in time."""

    id: int
    user_id: UUID
    food_id: int
    rating: int | None
    created_at: datetime


@dataclass(frozen=True)
class ConsumedFood:
    """History row joined with the nutrition values of its food."""

    history: FoodHistoryEntry
    food: Food


@dataclass(frozen=True)
class HistoryEntry:
    """History row as shown to a user, with tag names resolved."""

    food_id: int
    name: str
    grade: str | None
    tags: list[str]
    image_url: str | None
    type: str | None
    rating: int | None
    eaten_at: datetime


@dataclass(frozen=True)
class FoodDetail:
    """A food with resolved tags and the caller's own interaction with it."""

    food: Food
    tag_names: list[str]
    user_rating: int | None
    times_eaten: int


@dataclass(frozen=True)
class FoodPage:
    """One page of a filtered food listing."""

    data: list[Food]
    total: int
    page: int
    limit: int
    total_pages: int


@dataclass(frozen=True)
class SaveResult:
    """Outcome of a save; warnings list non-fatal step failures."""

    food: Food
    history: FoodHistoryEntry | None
    warnings: list[str] = field(default_factory=list)


class FoodInput(BaseModel):
    """Client-supplied nutrition data for a new food."""

    name: str = Field(min_length=1, max_length=255)
    calories: float = Field(default=0.0, ge=0.0)
    sugar: float = Field(default=0.0, ge=0.0)
    protein: float = Field(default=0.0, ge=0.0)
    fat: float = Field(default=0.0, ge=0.0)
    carbohydrate: float = Field(default=0.0, ge=0.0)
    grade: str | None = Field(default=None, max_length=2)
    tags: list[int] = Field(default_factory=list)
    type: str | None = None
