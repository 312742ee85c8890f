"""Create, upload, link and rate: the save flow for analyzed meals.

The image-bearing save spans the database and blob storage without a shared
transaction. A food is created as ``PENDING_IMAGE`` and only becomes
``COMPLETE`` once the uploaded image is linked. Failures after the create step
leave the draft in place; the user who started the save can retry with its
id to resume at the upload step while the draft still waits for its image.
The upload key depends only on the food id so a retry overwrites.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import UUID

from nutriscan.domain.errors import (
    ImageUploadFailed,
    LinkFailed,
    NotFound,
    PersistenceFailed,
    ValidationFailed,
)
from nutriscan.domain.foods import (
    Food,
    FoodHistoryEntry,
    FoodInput,
    FoodStatus,
    SaveResult,
)

_logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class FoodRepository(Protocol):
    """Persistence interface for food catalog rows."""

    def create_food(self, payload: dict[str, object]) -> Food:
        """Insert a food row and return it."""

    def get_food(self, food_id: int) -> Food | None:
        """Return a food by id, if present."""

    def link_image(self, food_id: int, image_url: str) -> Food | None:
        """Set the image and mark the food complete; None if no row matched."""

    def list_pending_foods(self, created_before: datetime) -> list[Food]:
        """Return foods still waiting for an image, created before a cutoff."""


class FoodHistoryRepository(Protocol):
    """Persistence interface for user food history."""

    def create_entry(
        self, user_id: UUID, food_id: int, created_at: datetime
    ) -> FoodHistoryEntry:
        """Insert a history row and return it."""

    def get_latest_entry(self, user_id: UUID, food_id: int) -> FoodHistoryEntry | None:
        """Return the user's most recent history row for a food."""

    def set_rating(self, entry_id: int, rating: int) -> None:
        """Store a rating on a history row."""


class StorageClient(Protocol):
    """Interface for blob storage."""

    async def upload(
        self, bucket: str, key: str, data: bytes, content_type: str
    ) -> str:
        """Upload bytes, overwriting any object at ``key``; return its URL."""


def image_key(food_id: int) -> str:
    """Return the storage key for a food's image."""
    return f"food/{food_id}"


@dataclass
class SaveOrchestrator:
    """Persist foods and their images with resumable partial failure."""

    food_repository: FoodRepository
    history_repository: FoodHistoryRepository
    storage_client: StorageClient
    bucket: str
    upload_timeout_seconds: float = 20.0

    def save(
        self, user_id: UUID, food_input: FoodInput, rating: int | None = None
    ) -> SaveResult:
        """Save a food without an image; it is complete right away."""
        validate_rating(rating)
        food = self._create_food(food_input, FoodStatus.COMPLETE)
        history = self._create_history(user_id, food)
        history, warnings = self._apply_rating(history, rating)
        return SaveResult(food=food, history=history, warnings=warnings)

    async def save_with_image(  # noqa: PLR0913
        self,
        user_id: UUID,
        food_input: FoodInput | None,
        image_bytes: bytes,
        rating: int | None = None,
        draft_id: int | None = None,
    ) -> SaveResult:
        """Save a food and attach its image, or resume a draft by id."""
        validate_rating(rating)
        if not image_bytes:
            raise ValidationFailed("No image supplied")

        if draft_id is None:
            if food_input is None:
                raise ValidationFailed("Food data is required for a new save")
            food = self._create_food(food_input, FoodStatus.PENDING_IMAGE)
            history = self._create_history(user_id, food)
        else:
            food, history = self._load_draft(user_id, draft_id)

        url = await self._upload(food, image_bytes)
        linked = self._link(food, url)

        history, warnings = self._apply_rating(history, rating)
        return SaveResult(food=linked, history=history, warnings=warnings)

    def record_meal(
        self, user_id: UUID, food_id: int, rating: int | None = None
    ) -> SaveResult:
        """Record that a user ate an existing food."""
        validate_rating(rating)
        food = self._get_food(food_id)
        if food is None:
            raise NotFound(f"Food {food_id} not found", food_id=food_id)
        history = self._create_history(user_id, food)
        history, warnings = self._apply_rating(history, rating)
        return SaveResult(food=food, history=history, warnings=warnings)

    def list_reclaimable_drafts(
        self, older_than: timedelta = timedelta(hours=1), now: datetime | None = None
    ) -> list[Food]:
        """Return drafts that no in-flight save can still complete."""
        cutoff = (now or datetime.now(tz=UTC)) - older_than
        return self.food_repository.list_pending_foods(cutoff)

    def _create_food(self, food_input: FoodInput, status: FoodStatus) -> Food:
        payload = {**food_input.model_dump(), "image_url": None, "status": status.value}
        try:
            food = self.food_repository.create_food(payload)
        except Exception as exc:
            _logger.exception("Failed to create food %r", food_input.name)
            raise PersistenceFailed(
                f"Could not create food: {exc}", step="create"
            ) from exc
        _logger.info("Created food %s (%s)", food.id, status.value)
        return food

    def _get_food(self, food_id: int) -> Food | None:
        try:
            return self.food_repository.get_food(food_id)
        except Exception as exc:
            raise PersistenceFailed(
                f"Could not load food {food_id}: {exc}", step="create", food_id=food_id
            ) from exc

    def _load_draft(
        self, user_id: UUID, draft_id: int
    ) -> tuple[Food, FoodHistoryEntry]:
        """Return a draft and its owner's history row.

        Only the user whose save created the draft may resume it, and only
        while it is still waiting for its image.
        """
        food = self._get_food(draft_id)
        history = self._latest_history(user_id, food) if food is not None else None
        if food is None or history is None:
            raise NotFound(f"Draft food {draft_id} not found", food_id=draft_id)
        if food.status is not FoodStatus.PENDING_IMAGE:
            raise ValidationFailed(
                f"Food {draft_id} already has an image",
                food_id=draft_id,
                details={"field": "draft_id"},
            )
        return food, history

    def _latest_history(self, user_id: UUID, food: Food) -> FoodHistoryEntry | None:
        try:
            return self.history_repository.get_latest_entry(user_id, food.id)
        except Exception as exc:
            raise PersistenceFailed(
                f"Could not read food history: {exc}", step="create", food_id=food.id
            ) from exc

    def _create_history(self, user_id: UUID, food: Food) -> FoodHistoryEntry:
        try:
            return self.history_repository.create_entry(
                user_id, food.id, datetime.now(tz=UTC)
            )
        except Exception as exc:
            _logger.exception("Failed to create history for food %s", food.id)
            raise PersistenceFailed(
                f"Could not create food history: {exc}", step="create", food_id=food.id
            ) from exc

    async def _upload(self, food: Food, image_bytes: bytes) -> str:
        key = image_key(food.id)
        try:
            url = await asyncio.wait_for(
                self.storage_client.upload(
                    self.bucket, key, image_bytes, _content_type(image_bytes)
                ),
                timeout=self.upload_timeout_seconds,
            )
        except Exception as exc:
            _logger.exception("Image upload failed for draft food %s", food.id)
            detail = "timed out" if isinstance(exc, TimeoutError) else str(exc)
            raise ImageUploadFailed(
                f"Image upload failed: {detail}", step="upload", food_id=food.id
            ) from exc
        if not url:
            raise ImageUploadFailed(
                "Storage returned no URL", step="upload", food_id=food.id
            )
        return url

    def _link(self, food: Food, url: str) -> Food:
        try:
            linked = self.food_repository.link_image(food.id, url)
        except Exception as exc:
            _logger.exception("Failed to link image to food %s", food.id)
            raise LinkFailed(
                f"Could not link image: {exc}", step="link", food_id=food.id
            ) from exc
        if linked is None:
            raise LinkFailed(
                "Food row disappeared before image link", step="link", food_id=food.id
            )
        return linked

    def _apply_rating(
        self, history: FoodHistoryEntry, rating: int | None
    ) -> tuple[FoodHistoryEntry, list[str]]:
        if rating is None:
            return history, []
        try:
            self.history_repository.set_rating(history.id, rating)
        except Exception as exc:
            _logger.warning(
                "Rating write failed for history %s", history.id, exc_info=True
            )
            return history, [f"Rating was not saved: {exc}"]
        return replace(history, rating=rating), []


def validate_rating(rating: int | None) -> None:
    """Reject ratings outside the accepted range."""
    if rating is None:
        return
    if isinstance(rating, bool) or not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationFailed(
            f"Rating must be between {MIN_RATING} and {MAX_RATING}",
            details={"field": "food_rate"},
        )


def _content_type(image_bytes: bytes) -> str:
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
