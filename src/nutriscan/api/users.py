"""Endpoints for the caller's own figures."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Request

from nutriscan.api.dependencies import current_user_id
from nutriscan.api.responses import envelope

if TYPE_CHECKING:
    from nutriscan.containers import AppContainer

router = APIRouter(prefix="/user", tags=["user"])


@router.get("/summary")
async def daily_summary(
    request: Request,
    user_id: UUID = Depends(current_user_id),
) -> dict[str, object]:
    """Return today's nutrition totals."""
    container: AppContainer = request.app.state.container
    summary = container.nutrition_aggregator.daily_summary(user_id)
    return envelope("Daily summary", summary)


@router.get("/history")
async def food_history(
    request: Request,
    user_id: UUID = Depends(current_user_id),
) -> dict[str, object]:
    """Return everything the caller has eaten, newest first."""
    container: AppContainer = request.app.state.container
    return envelope("Food history", container.nutrition_aggregator.history(user_id))


@router.get("/quota")
async def scan_quota(
    request: Request,
    user_id: UUID = Depends(current_user_id),
) -> dict[str, object]:
    """Return today's scan allowance usage."""
    container: AppContainer = request.app.state.container
    return envelope("Scan quota", container.quota_tracker.quota_status(user_id))
