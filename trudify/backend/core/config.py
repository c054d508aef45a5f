"""
Configuration.

Two sources, nothing hardcoded:

- config/.env holds secrets only (DB_PASSWORD, JWT_SECRET,
  TELEGRAM_BOT_TOKEN, TELEGRAM_WEBHOOK_SECRET); environment variables
  override it.
- config/settings/<section>.yaml holds everything else. Each file is
  validated against its schema in config_schema.py when AppConfig is built,
  so a typo in a key fails at startup.

Message catalogs are YAML too (config/i18n/<locale>.yaml) and are read
through load_yaml_config by the i18n module.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from trudify.backend.core.config_schema import (
    ApplicationSchema,
    DatabaseSchema,
    FeaturesSchema,
    LifecycleSchema,
    LoggingSchema,
    ModerationSchema,
    NotificationsSchema,
    SecuritySchema,
    TelegramSchema,
)

PROJECT_ROOT_MARKER = ".project_root"

# Section name -> schema; the file is config/settings/<section>.yaml
SECTIONS: dict[str, type[BaseModel]] = {
    "application": ApplicationSchema,
    "database": DatabaseSchema,
    "logging": LoggingSchema,
    "features": FeaturesSchema,
    "security": SecuritySchema,
    "notifications": NotificationsSchema,
    "lifecycle": LifecycleSchema,
    "telegram": TelegramSchema,
    "moderation": ModerationSchema,
}


def find_project_root() -> Path:
    """Walk up from the working directory to the folder holding .project_root."""
    for candidate in (Path.cwd(), *Path.cwd().parents):
        if (candidate / PROJECT_ROOT_MARKER).exists():
            return candidate
    raise RuntimeError(f"Project root not found. Ensure {PROJECT_ROOT_MARKER} file exists.")


def validate_project_root() -> Path:
    """Like find_project_root, but exits with a readable message (entry scripts)."""
    try:
        return find_project_root()
    except RuntimeError as e:
        raise SystemExit(f"Error: {e}") from e


def load_yaml_config(filename: str, directory: str = "settings") -> dict[str, Any]:
    path = find_project_root() / "config" / directory / filename
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")
    return yaml.safe_load(path.read_text(encoding="utf-8")) or {}


class Settings(BaseSettings):
    db_password: str
    jwt_secret: str
    # Empty token disables the bot; webhook secret is checked at startup
    telegram_bot_token: str = ""
    telegram_webhook_secret: str = ""

    model_config = SettingsConfigDict(env_file_encoding="utf-8", case_sensitive=False, extra="ignore")


def load_section(section: str) -> Any:
    filename = f"{section}.yaml"
    try:
        return SECTIONS[section].model_validate(load_yaml_config(filename))
    except ValidationError as e:
        raise ValueError(f"Invalid configuration in {filename}:\n{e}") from e


class AppConfig:
    """
    All YAML sections, validated once.

    Attribute access returns the typed schema instance, e.g.
    ``config.lifecycle.withdrawal.quota_limit``.
    """

    application: ApplicationSchema
    database: DatabaseSchema
    logging: LoggingSchema
    features: FeaturesSchema
    security: SecuritySchema
    notifications: NotificationsSchema
    lifecycle: LifecycleSchema
    telegram: TelegramSchema
    moderation: ModerationSchema

    def __init__(self) -> None:
        for section in SECTIONS:
            setattr(self, section, load_section(section))


@lru_cache
def get_settings() -> Settings:
    return Settings(_env_file=str(find_project_root() / "config" / ".env"))


@lru_cache
def get_app_config() -> AppConfig:
    return AppConfig()


def get_database_url(async_driver: bool = True) -> str:
    """PostgreSQL URL from database.yaml plus DB_PASSWORD (asyncpg unless async_driver is False)."""
    db = get_app_config().database
    scheme = "postgresql+asyncpg" if async_driver else "postgresql"
    return f"{scheme}://{db.user}:{get_settings().db_password}@{db.host}:{db.port}/{db.name}"


def get_site_url() -> str:
    """Public base URL of the web frontend, without trailing slash."""
    return get_app_config().application.site_url.rstrip("/")
