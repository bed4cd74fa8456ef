from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from esg_lite.api.errors import register_error_handlers
from esg_lite.api.routes import documents, health, ocr, reports
from esg_lite.config.settings import Settings
from esg_lite.container import Container, build_container
from esg_lite.logging.logger import Log


def create_app(container: Container | None = None) -> FastAPI:
    """Application factory.

    When no container is given one is built from Settings on startup and
    closed on shutdown; a provided container is left to its owner.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if container is not None:
            yield
            return
        settings = Settings()
        Log.configure(settings.log_level)
        app.state.container = build_container(settings)
        Log.info("API started", env=settings.app_env)
        try:
            yield
        finally:
            app.state.container.close()
            Log.info("API stopped")

    app = FastAPI(title="ESG-Lite API", version="0.1.0", lifespan=lifespan)
    if container is not None:
        app.state.container = container

    register_error_handlers(app)
    app.include_router(documents.router)
    app.include_router(ocr.router)
    app.include_router(reports.router)
    app.include_router(health.router)
    return app
