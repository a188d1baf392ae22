"""
SpaceMate Auth API — application entry point.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI

from api.errors import ConfigurationError, register_exception_handlers
from api.health import root_router as health_root_router
from api.health import router as health_router
from auth.jwt import TokenService
from auth.routes import router as auth_router
from config.settings import Settings, get_settings
from database.session import build_engine, build_session_factory, init_models

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        stream=sys.stdout,
    )
    for _noisy in ("sqlalchemy.engine", "aiosqlite", "asyncio"):
        logging.getLogger(_noisy).setLevel(logging.WARNING)


def _fail_fast(loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
    """Unhandled task failure: log it and terminate instead of limping on."""
    exc = context.get("exception")
    logger.critical("Unhandled async failure, shutting down: %s", context.get("message"), exc_info=exc)
    os._exit(1)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    # Raises ConfigurationError when a signing secret is missing.
    token_service = TokenService(settings)

    engine = build_engine(settings)

    app = FastAPI(
        title="SpaceMate Auth API",
        version=settings.app_version,
        description="Registration, login and token refresh for SpaceMate.",
    )
    app.state.settings = settings
    app.state.token_service = token_service
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    register_exception_handlers(app)

    # Routes
    app.include_router(health_root_router)
    app.include_router(health_router, prefix=settings.api_prefix)
    app.include_router(auth_router, prefix=settings.api_prefix)

    @app.on_event("startup")
    async def on_startup():
        asyncio.get_running_loop().set_exception_handler(_fail_fast)
        await init_models(engine)
        logger.info("JWT secrets loaded; database schema ready.")
        logger.info("Application ready to accept requests (%s).", settings.environment)

    @app.on_event("shutdown")
    async def on_shutdown():
        await engine.dispose()

    return app


if __name__ == "__main__":
    _settings = get_settings()
    configure_logging(_settings)
    try:
        TokenService(_settings)
    except ConfigurationError as exc:
        logger.critical("%s. Add them to the environment or .env file.", exc)
        sys.exit(1)

    uvicorn.run(
        "main:create_app",
        factory=True,
        host=_settings.host,
        port=_settings.port,
        reload=_settings.debug,
        log_level="debug" if _settings.debug else "info",
    )
