"""Food endpoints: catalog, analysis, saving and recommendations."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

import httpx
from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    Request,
    UploadFile,
    status,
)
from pydantic import ValidationError

from nutriscan.api.dependencies import current_user_id
from nutriscan.api.request_models import RecordMealRequest  # noqa: TC001
from nutriscan.api.responses import envelope
from nutriscan.domain.errors import ValidationFailed
from nutriscan.domain.foods import FoodInput
from nutriscan.services.saving import validate_rating

if TYPE_CHECKING:
    from nutriscan.containers import AppContainer
    from nutriscan.domain.analysis import NutritionEstimate

router = APIRouter(prefix="/food", tags=["food"])

MAX_IMAGE_BYTES = 5 * 1024 * 1024


@router.get("/detail")
async def food_detail(
    request: Request,
    food_id: int = Query(alias="id"),
    user_id: UUID = Depends(current_user_id),
) -> dict[str, object]:
    """Return a food with resolved tags and the caller's rating."""
    container: AppContainer = request.app.state.container
    detail = container.catalog_service.get_food_detail(user_id, food_id)
    return envelope("Food detail", detail)


@router.get("/news")
async def food_news(
    request: Request,
    limit: int = Query(default=10, ge=1, le=50),
    _: UUID = Depends(current_user_id),
) -> dict[str, object]:
    """Return recent health news articles."""
    container: AppContainer = request.app.state.container
    try:
        articles = await container.news_service.latest(limit)
    except httpx.HTTPError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"News feed unavailable: {exc}",
        ) from exc
    return envelope("Latest news", articles)


@router.get("/filter")
async def filter_foods(  # noqa: PLR0913
    request: Request,
    page: int = 1,
    limit: int = 10,
    name: str = "",
    tags: str = "",
    _: UUID = Depends(current_user_id),
) -> dict[str, object]:
    """Return a page of foods matching a name fragment and tag ids."""
    container: AppContainer = request.app.state.container
    result = container.catalog_service.list_foods(
        page=page, limit=limit, name=name, tags=parse_tag_ids(tags)
    )
    return envelope("Foods", result)


@router.post("/save", status_code=status.HTTP_201_CREATED)
async def record_meal(
    request: Request,
    body: RecordMealRequest,
    user_id: UUID = Depends(current_user_id),
) -> dict[str, object]:
    """Record that the caller ate an existing food."""
    container: AppContainer = request.app.state.container
    result = container.save_orchestrator.record_meal(
        user_id, body.food_id, body.food_rate
    )
    return envelope("Food saved to history", result)


@router.post("/analyze/save", status_code=status.HTTP_201_CREATED)
async def analyze_and_save(  # noqa: PLR0913
    request: Request,
    image: UploadFile = File(...),
    metadata: str | None = Form(default=None),
    food_rate: int | None = Form(default=None),
    draft_id: int | None = Form(default=None),
    user_id: UUID = Depends(current_user_id),
) -> dict[str, object]:
    """Analyze a photo and save it as a food, or resume a draft by id.

    A resumed draft already holds its food data, so ``metadata`` may only be
    sent for a new save.
    """
    container: AppContainer = request.app.state.container
    validate_rating(food_rate)
    if draft_id is not None and metadata:
        raise ValidationFailed(
            "metadata cannot be combined with draft_id",
            food_id=draft_id,
            details={"field": "metadata"},
        )
    image_bytes = await _read_image(image)
    food_input = None
    if draft_id is None:
        estimate = await container.analysis_orchestrator.analyze(user_id, image_bytes)
        food_input = merge_food_input(estimate, metadata)
    result = await container.save_orchestrator.save_with_image(
        user_id,
        food_input,
        image_bytes,
        rating=food_rate,
        draft_id=draft_id,
    )
    return envelope("Food analyzed and saved", result)


@router.post("/analyze")
async def analyze_only(
    request: Request,
    image: UploadFile = File(...),
    user_id: UUID = Depends(current_user_id),
) -> dict[str, object]:
    """Analyze a photo without saving anything but the scan."""
    container: AppContainer = request.app.state.container
    image_bytes = await _read_image(image)
    estimate = await container.analysis_orchestrator.analyze(user_id, image_bytes)
    return envelope("Food analyzed", estimate.model_dump())


@router.get("/recommendation")
async def recommendation(
    request: Request,
    limit: int = Query(default=10, ge=1, le=50),
    user_id: UUID = Depends(current_user_id),
) -> dict[str, object]:
    """Return foods recommended from the caller's history."""
    container: AppContainer = request.app.state.container
    foods = container.recommendation_service.recommend(user_id, limit)
    return envelope("Recommended foods", foods)


def parse_tag_ids(raw: str) -> list[int]:
    """Parse a comma separated list of tag ids."""
    parts = [part.strip() for part in raw.split(",") if part.strip()]
    try:
        return [int(part) for part in parts]
    except ValueError as exc:
        raise ValidationFailed(
            "tags must be a comma separated list of integers",
            details={"field": "tags"},
        ) from exc


def merge_food_input(estimate: NutritionEstimate, metadata: str | None) -> FoodInput:
    """Build the food to save, letting client metadata override the estimate."""
    values = estimate.model_dump(include=set(FoodInput.model_fields))
    if metadata:
        try:
            overrides = json.loads(metadata)
        except json.JSONDecodeError as exc:
            raise ValidationFailed(
                "metadata must be valid JSON", details={"field": "metadata"}
            ) from exc
        if not isinstance(overrides, dict):
            raise ValidationFailed(
                "metadata must be a JSON object", details={"field": "metadata"}
            )
        values.update(overrides)
    try:
        return FoodInput.model_validate(values)
    except ValidationError as exc:
        raise ValidationFailed(
            "Invalid food data",
            details={
                "field": "metadata",
                "errors": exc.errors(
                    include_url=False, include_context=False, include_input=False
                ),
            },
        ) from exc


async def _read_image(image: UploadFile) -> bytes:
    data = await image.read()
    if not data:
        raise ValidationFailed("No file uploaded", details={"field": "image"})
    if len(data) > MAX_IMAGE_BYTES:
        raise ValidationFailed(
            f"Image exceeds {MAX_IMAGE_BYTES // (1024 * 1024)} MB",
            details={"field": "image"},
        )
    return data
