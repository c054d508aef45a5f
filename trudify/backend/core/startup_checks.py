"""
Refuse to start with weak secrets or development settings in production.

Run from the FastAPI lifespan (when security_startup_checks_enabled is on)
and by ``run.py --action config --check``. All failures are collected and
reported together so one deploy attempt shows everything that needs fixing.
"""

from collections.abc import Iterator

from trudify.backend.core.config import AppConfig, Settings, get_app_config, get_settings
from trudify.backend.core.logging import get_logger

logger = get_logger(__name__)

PRODUCTION = "production"


class StartupSecurityError(RuntimeError):
    pass


def _secret_lengths(settings: Settings, config: AppConfig) -> Iterator[str]:
    limits = config.security.secrets_validation

    if len(settings.jwt_secret) < limits.jwt_secret_min_length:
        yield f"JWT_SECRET is {len(settings.jwt_secret)} chars, minimum is {limits.jwt_secret_min_length}"

    webhook_secret = settings.telegram_webhook_secret
    if webhook_secret and len(webhook_secret) < limits.webhook_secret_min_length:
        yield (
            f"TELEGRAM_WEBHOOK_SECRET is {len(webhook_secret)} chars, "
            f"minimum is {limits.webhook_secret_min_length}"
        )


def _telegram_channel(settings: Settings, config: AppConfig) -> Iterator[str]:
    if not config.features.channel_telegram_enabled:
        return
    for name, value in (
        ("TELEGRAM_BOT_TOKEN", settings.telegram_bot_token),
        ("TELEGRAM_WEBHOOK_SECRET", settings.telegram_webhook_secret),
    ):
        if not value:
            yield f"channel_telegram_enabled is true but {name} is empty"


def _production_settings(settings: Settings, config: AppConfig) -> Iterator[str]:
    app = config.application
    if app.environment != PRODUCTION:
        return

    for flag, enabled in (
        ("debug", app.debug),
        ("api_detailed_errors", config.features.api_detailed_errors),
        ("docs_enabled", app.docs_enabled),
    ):
        if enabled:
            yield f"{flag} is true in production environment"

    localhost_origins = [origin for origin in app.cors.origins if "localhost" in origin]
    if localhost_origins:
        yield f"CORS origins contain localhost in production: {localhost_origins}"

    # Auto-login links put a session token in the query string
    if not app.site_url.startswith("https://"):
        yield f"site_url must use https in production, got {app.site_url}"


CHECKS = (_secret_lengths, _telegram_channel, _production_settings)


def collect_startup_errors() -> list[str]:
    config = get_app_config()
    settings = get_settings()
    return [error for check in CHECKS for error in check(settings, config)]


def run_startup_checks() -> None:
    """
    Raises:
        StartupSecurityError: Listing every failed check
    """
    errors = collect_startup_errors()
    if errors:
        for error in errors:
            logger.error("Startup security check failed", extra={"check": error})
        listing = "\n".join(f"  - {error}" for error in errors)
        raise StartupSecurityError(f"Startup blocked, {len(errors)} security check(s) failed:\n{listing}")

    logger.info("Startup security checks passed", extra={"environment": get_app_config().application.environment})
