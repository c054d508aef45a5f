"""
Trudify API application.

``uvicorn trudify.backend.main:app`` serves the REST API under api_prefix,
the health endpoints at the root and, with channel_telegram_enabled, the
bot webhook. The app object is built on first access, so importing this
module reads no configuration.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trudify.backend.api import health
from trudify.backend.api.routes import router as api_router
from trudify.backend.core.config import AppConfig, get_app_config
from trudify.backend.core.database import dispose_engine
from trudify.backend.core.exception_handlers import register_exception_handlers
from trudify.backend.core.logging import get_logger, setup_logging
from trudify.backend.core.middleware import RequestContextMiddleware

logger = get_logger(__name__)

_app: FastAPI | None = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    config = get_app_config()
    setup_logging(level=config.logging.level)

    if config.features.security_startup_checks_enabled:
        from trudify.backend.core.startup_checks import run_startup_checks

        run_startup_checks()

    logger.info(
        "Application starting",
        extra={
            "app_name": config.application.name,
            "env": config.application.environment,
            "telegram_enabled": config.features.channel_telegram_enabled,
        },
    )
    yield
    logger.info("Application shutting down")

    if config.features.channel_telegram_enabled:
        from trudify.telegram.bot import close_bot
        from trudify.telegram.webhook import wait_for_pending_updates

        # Updates already acknowledged to Telegram would otherwise be lost
        await wait_for_pending_updates()
        await close_bot()
    await dispose_engine()


def _add_middleware(app: FastAPI, config: AppConfig) -> None:
    app.add_middleware(RequestContextMiddleware)

    origins = config.application.cors.origins
    if origins:
        # Credentials are needed for the session cookie set by auto-login links
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )


def _include_telegram_webhook(app: FastAPI, config: AppConfig) -> None:
    from trudify.telegram.bot import get_bot, get_dispatcher
    from trudify.telegram.webhook import get_webhook_router

    try:
        router = get_webhook_router(get_bot(), get_dispatcher())
    except Exception as e:
        logger.error("Failed to mount Telegram webhook", extra={"error": str(e)})
        raise
    app.include_router(router, tags=["telegram"])
    logger.info("Telegram webhook mounted", extra={"path": config.telegram.webhook_path})


def create_app() -> FastAPI:
    config = get_app_config()
    settings = config.application

    app = FastAPI(
        title=settings.name,
        description=settings.description,
        version=settings.version,
        docs_url="/docs" if settings.docs_enabled else None,
        redoc_url="/redoc" if settings.docs_enabled else None,
        lifespan=lifespan,
    )
    _add_middleware(app, config)
    register_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(api_router, prefix=settings.api_prefix)
    if config.features.channel_telegram_enabled:
        _include_telegram_webhook(app, config)

    return app


def get_app() -> FastAPI:
    global _app
    if _app is None:
        _app = create_app()
    return _app


def __getattr__(name: str) -> FastAPI:
    # Module attribute ``app`` for uvicorn, created lazily
    if name == "app":
        return get_app()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
