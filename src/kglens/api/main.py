"""FastAPI application for kglens.

Provides one-shot graph layout plus stateful interactive views that a thin
client renders frame by frame.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kglens import __version__
from kglens.api.graph import ViewRegistry
from kglens.api.graph import router as graph_router
from kglens.api.routes import router
from kglens.config import Settings, settings
from kglens.layout import LayoutConfig

logger = logging.getLogger(__name__)


def init_state(app: FastAPI, app_settings: Settings) -> None:
    """Attach layout config and the view registry to app state."""
    layout_config = LayoutConfig.from_settings(app_settings)
    app.state.settings = app_settings
    app.state.layout_config = layout_config
    app.state.views = ViewRegistry(layout_config, max_views=app_settings.max_views)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan - startup and shutdown."""
    # Startup
    logger.info("Starting kglens API...")
    logger.info(f"Environment: {app.state.settings.environment.value}")
    logger.info(f"View limit: {app.state.views.max_views}")

    yield

    # Shutdown
    logger.info("Shutting down kglens API...")
    app.state.views.clear()


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="kglens",
        description="Layout and viewport engine for captured knowledge graphs",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS middleware for browser clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Available before the lifespan runs, so plain TestClient use works too
    init_state(app, app_settings or settings)

    # Include routes
    app.include_router(router)
    app.include_router(graph_router)

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(
        "kglens.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
    )
