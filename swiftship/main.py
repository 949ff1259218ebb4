"""FastAPI entry-point exposing the exception desk."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI

from swiftship.api.exceptions import router as exceptions_router
from swiftship.api.routes import router as agents_router
from swiftship.config import Config
from swiftship.core.logging import configure_logging, get_logger
from swiftship.runtime import AppContext, build_context

logger = get_logger(name=__name__)

ContextFactory = Callable[[Config], AppContext]


def create_app(context_factory: Optional[ContextFactory] = None, config: Optional[Config] = None) -> FastAPI:
    factory = context_factory or build_context

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start every agent on startup and stop them on shutdown."""
        settings = config or Config.from_env()
        configure_logging(settings.log_level, environment=settings.environment)
        context = factory(settings)
        await context.start()
        app.state.context = context
        logger.info("app_started", environment=settings.environment)
        yield
        await context.stop()

    app = FastAPI(title="SwiftShip Exception Desk", lifespan=lifespan)
    app.include_router(agents_router)
    app.include_router(exceptions_router)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    uvicorn.run("swiftship.main:app", host="127.0.0.1", port=8000)
