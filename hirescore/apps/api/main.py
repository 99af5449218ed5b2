from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from hirescore import __version__
from hirescore.apps.api.routers import metrics_router, schedule_router
from hirescore.core.db import async_engine
from hirescore.core.logging import configure_logging
from hirescore.core.settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # NOTE: Database migrations are applied separately before starting the app
    # Run: python run_migrations.py
    configure_logging()
    settings = get_settings()
    logger.info("Scheduling API starting (environment=%s)", settings.environment)
    try:
        yield
    finally:
        await async_engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(title="HireScore Scheduling API", version=__version__, lifespan=lifespan)
    app.include_router(schedule_router)
    app.include_router(metrics_router)

    @app.get("/")
    async def root():
        return {"ok": True, "schedule_api": "/api/schedule", "metrics": "/metrics"}

    return app


app = create_app()
