"""FastAPI application factory."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from nutriscan.api.admin import router as admin_router
from nutriscan.api.errors import register_error_handlers
from nutriscan.api.food import router as food_router
from nutriscan.api.users import router as users_router
from nutriscan.app_logging import configure_logging
from nutriscan.containers import AppContainer


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(title="NutriScan", lifespan=lifespan)
    app.state.container = container

    register_error_handlers(app)
    app.include_router(food_router)
    app.include_router(users_router)
    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
