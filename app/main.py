from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.logger_core import build_default_logger


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    core = build_default_logger()
    try:
        yield
    finally:
        await core.aclose()
        build_default_logger.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Hardware Sensor Logger",
        description="Status and manual tick endpoints for the hardware sensor logger.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
