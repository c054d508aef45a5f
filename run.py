#!/usr/bin/env python3
"""
Trudify Command Line.

Usage:
    python run.py --help
    python run.py --action server --reload --verbose
    python run.py --action init-db
    python run.py --action set-webhook --base-url https://api.trudify.com
    python run.py --action telegram-poll --verbose
    python run.py --action config --check
"""

import asyncio
import subprocess
import sys
from pathlib import Path

import click

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from trudify.backend.core.logging import get_logger, setup_logging

ACTIONS = ["server", "init-db", "set-webhook", "telegram-poll", "health", "config", "test", "info"]


def validate_project_root() -> Path:
    """Validate that we're running from the project root."""
    if not (PROJECT_ROOT / ".project_root").exists():
        click.echo(
            click.style("Error: .project_root not found. Run from project root.", fg="red"),
            err=True,
        )
        sys.exit(1)
    return PROJECT_ROOT


def fail(logger, message: str, **context) -> None:
    logger.error(message, extra=context)
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    sys.exit(1)


@click.command()
@click.option("--action", type=click.Choice(ACTIONS), default="info", help="Action to perform.")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output (INFO level logging).")
@click.option("--debug", "-d", is_flag=True, help="Enable debug output (DEBUG level logging).")
@click.option("--host", default=None, help="Server host (server).")
@click.option("--port", default=None, type=int, help="Server port (server).")
@click.option("--reload", is_flag=True, help="Enable auto-reload (server).")
@click.option("--base-url", default=None, help="Public base URL the webhook is served from (set-webhook).")
@click.option("--check", is_flag=True, help="Also run the startup security checks (config).")
@click.option(
    "--test-type",
    type=click.Choice(["all", "unit", "integration"]),
    default="all",
    help="Test type to run (test).",
)
def main(
    action: str,
    verbose: bool,
    debug: bool,
    host: str | None,
    port: int | None,
    reload: bool,
    base_url: str | None,
    check: bool,
    test_type: str,
) -> None:
    """
    Trudify backend entry point.

    \b
    Examples:
        python run.py --action server --reload --verbose
        python run.py --action init-db
        python run.py --action set-webhook --base-url https://api.trudify.com
        python run.py --action config --check
        python run.py --action test --test-type unit
    """
    validate_project_root()

    if debug:
        log_level = "DEBUG"
    elif verbose:
        log_level = "INFO"
    else:
        log_level = "WARNING"

    setup_logging(level=log_level, format_type="console")
    logger = get_logger(__name__)
    logger.debug("CLI invoked", extra={"action": action, "log_level": log_level})

    if action == "server":
        run_server(logger, host, port, reload)
    elif action == "init-db":
        asyncio.run(init_db(logger))
    elif action == "set-webhook":
        if not base_url:
            fail(logger, "--base-url is required for set-webhook")
        asyncio.run(set_webhook(logger, base_url))
    elif action == "telegram-poll":
        run_telegram_poll(logger)
    elif action == "health":
        check_health(logger)
    elif action == "config":
        show_config(logger, check)
    elif action == "test":
        run_tests(logger, test_type)
    elif action == "info":
        show_info(logger)


def run_server(logger, host: str | None, port: int | None, reload: bool) -> None:
    """Start uvicorn with the host and port from application.yaml unless overridden."""
    from trudify.backend.core.config import get_app_config

    server_config = get_app_config().application.server
    server_host = host or server_config.host
    server_port = port or server_config.port

    logger.info("Starting server", extra={"host": server_host, "port": server_port, "reload": reload})

    cmd = [
        sys.executable, "-m", "uvicorn",
        "trudify.backend.main:app",
        "--host", server_host,
        "--port", str(server_port),
    ]
    if reload:
        cmd.append("--reload")

    click.echo(f"Starting server at http://{server_host}:{server_port}")
    click.echo("Press Ctrl+C to stop\n")

    try:
        subprocess.run(cmd, check=True)
    except KeyboardInterrupt:
        logger.info("Server stopped")
    except subprocess.CalledProcessError as e:
        logger.error("Server failed to start", extra={"exit_code": e.returncode})
        sys.exit(e.returncode)


async def init_db(logger) -> None:
    """Create all tables that do not exist yet."""
    import trudify.backend.models  # noqa: F401  registers every model on Base.metadata
    from trudify.backend.core.database import dispose_engine, get_engine
    from trudify.backend.models.base import Base

    try:
        async with get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await dispose_engine()

    logger.info("Database tables created", extra={"tables": sorted(Base.metadata.tables)})
    click.echo(f"Created {len(Base.metadata.tables)} tables.")


async def set_webhook(logger, base_url: str) -> None:
    """Point Telegram at this deployment's webhook route."""
    from trudify.backend.core.config import get_settings
    from trudify.telegram.bot import create_bot, setup_webhook
    from trudify.telegram.webhook import get_webhook_url

    try:
        bot = create_bot()
    except RuntimeError as e:
        fail(logger, str(e))

    url = get_webhook_url(base_url)
    try:
        await setup_webhook(bot, url, get_settings().telegram_webhook_secret)
    finally:
        await bot.session.close()
    click.echo(f"Webhook set to {url}")


def run_telegram_poll(logger) -> None:
    """Run the bot in polling mode for local development (no public URL needed)."""
    from trudify.backend.core.config import get_app_config

    if not get_app_config().features.channel_telegram_enabled:
        fail(logger, "channel_telegram_enabled is false in features.yaml")

    from trudify.telegram.bot import create_bot, create_dispatcher

    try:
        bot = create_bot()
    except RuntimeError as e:
        fail(logger, str(e))

    click.echo("Starting Telegram bot (polling mode)")
    click.echo("Press Ctrl+C to stop\n")
    asyncio.run(_run_polling(bot, create_dispatcher(), logger))


async def _run_polling(bot, dp, logger) -> None:
    try:
        await bot.delete_webhook(drop_pending_updates=True)
        logger.info("Webhook deleted, starting polling")
        await dp.start_polling(bot)
    finally:
        await bot.session.close()


def check_health(logger) -> None:
    """Load configuration and build the app without serving it."""
    click.echo("Checking application health...\n")
    checks: list[tuple[str, bool, str | None]] = []

    try:
        from trudify.backend.core.config import get_app_config

        app_config = get_app_config()
        checks.append(("YAML configuration", True, f"App: {app_config.application.name}"))
    except Exception as e:
        checks.append(("YAML configuration", False, str(e)))
        logger.error("Configuration failed", extra={"error": str(e)})

    try:
        from trudify.backend.core.config import get_settings

        get_settings()
        checks.append(("Secrets (config/.env)", True, None))
    except Exception as e:
        checks.append(("Secrets (config/.env)", False, str(e)))
        logger.error("Secrets failed", extra={"error": str(e)})

    try:
        from trudify.backend.main import create_app

        app = create_app()
        checks.append(("FastAPI application", True, f"{len(app.routes)} routes"))
    except Exception as e:
        checks.append(("FastAPI application", False, str(e)))
        logger.error("FastAPI app failed", extra={"error": str(e)})

    click.echo("Health Check Results:")
    click.echo("-" * 50)
    for name, passed, detail in checks:
        status = click.style("PASS", fg="green") if passed else click.style("FAIL", fg="red")
        detail_str = f" ({detail})" if detail else ""
        click.echo(f"  {status}  {name}{detail_str}")
    click.echo("-" * 50)

    if not all(passed for _, passed, _ in checks):
        sys.exit(1)


def show_config(logger, check: bool) -> None:
    """Print every YAML section; with --check also run the startup checks."""
    from trudify.backend.core.config import SECTIONS, get_app_config

    try:
        app_config = get_app_config()
    except ValueError as e:
        fail(logger, f"Error loading configuration: {e}")

    for section in SECTIONS:
        click.echo(f"\n{section}:")
        click.echo("-" * 40)
        for key, value in getattr(app_config, section).model_dump().items():
            click.echo(f"  {key}: {value}")

    if check:
        from trudify.backend.core.startup_checks import collect_startup_errors

        errors = collect_startup_errors()
        click.echo("\nStartup checks:")
        click.echo("-" * 40)
        if not errors:
            click.echo(click.style("  all passed", fg="green"))
            return
        for error in errors:
            click.echo(click.style(f"  {error}", fg="red"))
        sys.exit(1)


def run_tests(logger, test_type: str) -> None:
    path = {"unit": "tests/unit", "integration": "tests/integration"}.get(test_type, "tests/")
    cmd = [sys.executable, "-m", "pytest", path, "-v"]

    logger.info("Running tests", extra={"type": test_type})
    click.echo(f"Running: {' '.join(cmd)}\n")
    sys.exit(subprocess.run(cmd).returncode)


def show_info(logger) -> None:
    from trudify.backend.core.config import get_app_config

    app = get_app_config().application
    click.echo(f"{app.name} {app.version}")
    click.echo(app.description)
    click.echo()
    click.echo("Actions:")
    for action in ACTIONS:
        click.echo(f"  --action {action}")


if __name__ == "__main__":
    main()
