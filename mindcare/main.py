"""MindCare application factory and uvicorn entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mindcare.api.health import router as health_router
from mindcare.api.v1.router import router as v1_router
from mindcare.core.config import get_settings
from mindcare.core.database import close_database, init_database
from mindcare.core.exceptions import setup_exception_handlers
from mindcare.core.logging import setup_logging, setup_request_logging
from mindcare.services.llm_client import close_llm_client, init_llm_client

logger = logging.getLogger("mindcare")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:  # noqa: ARG001
    """Own the database engine and the model client for the process lifetime."""
    settings = get_settings()
    init_database(settings)
    init_llm_client(settings)
    logger.info("MindCare started", extra={"env": settings.app_env})
    try:
        yield
    finally:
        await close_llm_client()
        await close_database()
        logger.info("MindCare stopped")


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings)

    app = FastAPI(
        title="MindCare API",
        description="CBT chat assistant with consent-gated therapist oversight",
        version="0.1.0",
        lifespan=lifespan,
    )

    setup_request_logging(app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(v1_router)
    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "mindcare.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.is_development,
        log_level=settings.app_log_level.lower(),
    )


if __name__ == "__main__":
    run()
