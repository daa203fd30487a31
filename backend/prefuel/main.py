"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prefuel.application.services import ChangeBus, SnapshotStore
from prefuel.config import Settings, get_settings
from prefuel.infrastructure.dependencies import build_auth_service
from prefuel.infrastructure.logging.log_config import setup_logging
from prefuel.infrastructure.storage.json_snapshot_file import JsonSnapshotFile
from prefuel.presentation.api.errors import register_exception_handlers
from prefuel.presentation.api.router import router as api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan — load the snapshot, open the bus, flush on shutdown."""
    settings: Settings = app.state.settings
    setup_logging(settings)

    # 1. Storage adapter and change bus
    repository = JsonSnapshotFile(
        settings.data_file,
        settings.backup_dir,
        keep=settings.backup_keep,
    )
    bus = ChangeBus(max_pending=settings.subscriber_queue_size)

    # 2. Authoritative store, from disk or the seed set
    store = SnapshotStore(repository, bus)
    store.load()

    app.state.bus = bus
    app.state.store = store
    app.state.auth = build_auth_service(settings)
    logger.info("Serving snapshot from %s", repository.data_file)

    yield

    # Shutdown: end open streams first so no client sees a half-flushed state
    bus.shutdown()
    store.close()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Factory function that builds and configures the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Mount API routes
    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "prefuel.main:app",
        host="0.0.0.0",
        port=4000,
        reload=True,
    )
