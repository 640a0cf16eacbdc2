"""FastAPI application factory."""

from fastapi import FastAPI

from ..storage import AnalyticsStorage, JsonFileStorage
from .routes import router


def create_app(storage: AnalyticsStorage | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Market Index Analytics",
        description="Seller analytics snapshots and quantity parsing",
        version="0.1.0",
    )

    # Store storage reference
    app.state.storage = storage or JsonFileStorage()

    app.include_router(router)

    return app


# Default app instance for uvicorn
app = create_app()
