"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status

from nutriscan.api.responses import envelope

if TYPE_CHECKING:
    from nutriscan.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/drafts", dependencies=[Depends(require_admin)])
async def reclaimable_drafts(
    request: Request,
    older_than_minutes: int = Query(default=60, ge=1),
) -> dict[str, object]:
    """Return foods stuck waiting for an image past the grace period."""
    container: AppContainer = request.app.state.container
    drafts = container.save_orchestrator.list_reclaimable_drafts(
        older_than=timedelta(minutes=older_than_minutes)
    )
    return envelope("Reclaimable drafts", drafts)
