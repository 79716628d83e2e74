from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import AppConfig
from .container import AppContainer
from .core.handlers import register_exception_handlers
from .routers import group_membership, health


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_application(config: AppConfig, container: AppContainer | None = None) -> FastAPI:
    container = container or AppContainer.build(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await container.startup(app)
        try:
            yield
        finally:
            await container.shutdown(app)

    app = FastAPI(title="Graph Group Membership", version="0.1.0", lifespan=lifespan)
    # Available before lifespan startup runs.
    app.state.container = container

    if config.server.cors_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.server.cors_allowed_origins,
            allow_credentials=True,
            allow_methods=["GET"],
            allow_headers=["*"],
        )

    register_exception_handlers(app)
    app.include_router(group_membership.router)
    app.include_router(health.router)

    return app
