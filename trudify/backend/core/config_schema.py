"""
Schemas for config/settings/*.yaml.

One top-level schema per file, looked up by file name in config.SECTIONS.
All of them forbid unknown keys, so a misspelt setting stops the process at
startup instead of silently falling back to nothing. Cross-field rules
(default locale must be supported, withdrawal thresholds ordered, page
size within the cap) are model validators.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _StrictBase(BaseModel):
    model_config = ConfigDict(extra="forbid")


DeliveryChannelName = Literal["in_app", "telegram", "both"]


# =============================================================================
# application.yaml
# =============================================================================


class ServerSchema(_StrictBase):
    host: str
    port: int


class CorsSchema(_StrictBase):
    origins: list[str]


class LocalesSchema(_StrictBase):
    default: str
    supported: list[str]

    @model_validator(mode="after")
    def _default_is_supported(self) -> "LocalesSchema":
        if self.default not in self.supported:
            raise ValueError(f"default locale {self.default!r} is not in supported locales")
        return self


class PaginationSchema(_StrictBase):
    default_limit: int = Field(ge=1)
    max_limit: int = Field(ge=1)

    @model_validator(mode="after")
    def _default_within_cap(self) -> "PaginationSchema":
        if self.default_limit > self.max_limit:
            raise ValueError("default_limit must not exceed max_limit")
        return self


class TimeoutsSchema(_StrictBase):
    database: int = Field(gt=0)


class ApplicationSchema(_StrictBase):
    name: str
    version: str
    description: str
    environment: str
    debug: bool
    api_prefix: str
    docs_enabled: bool
    site_url: str
    server: ServerSchema
    cors: CorsSchema
    locales: LocalesSchema
    pagination: PaginationSchema
    timeouts: TimeoutsSchema


# =============================================================================
# database.yaml
# =============================================================================


class DatabaseSchema(_StrictBase):
    host: str
    port: int
    name: str
    user: str
    pool_size: int
    max_overflow: int
    pool_timeout: int
    pool_recycle: int
    echo: bool


# =============================================================================
# logging.yaml
# =============================================================================


class ConsoleHandlerSchema(_StrictBase):
    enabled: bool


class FileHandlerSchema(_StrictBase):
    enabled: bool
    path: str
    max_bytes: int
    backup_count: int


class HandlersSchema(_StrictBase):
    console: ConsoleHandlerSchema
    file: FileHandlerSchema


class LoggingSchema(_StrictBase):
    level: str
    format: Literal["json", "console"]
    handlers: HandlersSchema


# =============================================================================
# features.yaml
# =============================================================================


class FeaturesSchema(_StrictBase):
    channel_telegram_enabled: bool
    notifications_auto_login_links: bool
    lifecycle_withdrawal_quota_enforced: bool
    lifecycle_removal_quota_enforced: bool
    api_detailed_errors: bool
    security_startup_checks_enabled: bool


# =============================================================================
# security.yaml
# =============================================================================


class JwtSchema(_StrictBase):
    algorithm: str
    access_token_expire_minutes: int
    audience: str


class NotificationSessionSchema(_StrictBase):
    expire_days: int


class ConnectionTokenSchema(_StrictBase):
    expire_minutes: int


class SecretsValidationSchema(_StrictBase):
    jwt_secret_min_length: int
    webhook_secret_min_length: int


class SecuritySchema(_StrictBase):
    jwt: JwtSchema
    session_cookie_name: str
    notification_session: NotificationSessionSchema
    connection_token: ConnectionTokenSchema
    secrets_validation: SecretsValidationSchema


# =============================================================================
# notifications.yaml
# =============================================================================


class NotificationsSchema(_StrictBase):
    routing: dict[str, DeliveryChannelName]
    fallback_title: str
    fallback_message: str


# =============================================================================
# lifecycle.yaml
# =============================================================================


class WithdrawalSchema(_StrictBase):
    low_impact_hours: float = Field(gt=0)
    medium_impact_hours: float = Field(gt=0)
    quota_limit: int = Field(ge=0)
    quota_window_days: int = Field(gt=0)

    @model_validator(mode="after")
    def _thresholds_ordered(self) -> "WithdrawalSchema":
        if self.low_impact_hours >= self.medium_impact_hours:
            raise ValueError("low_impact_hours must be below medium_impact_hours")
        return self


class RemovalSchema(_StrictBase):
    # Professionals a customer may remove per calendar month
    monthly_limit: int = Field(ge=0)


class ApplicationsSchema(_StrictBase):
    # Rejected and withdrawn applications older than this are purged on the next submit
    stale_after_days: int = Field(gt=0)


class FeaturedSchema(_StrictBase):
    limit: int = Field(ge=1)
    # Recent open tasks the featured set is drawn from
    candidate_pool: int = Field(ge=1)


class LifecycleSchema(_StrictBase):
    withdrawal: WithdrawalSchema
    removal: RemovalSchema
    applications: ApplicationsSchema
    featured: FeaturedSchema


# =============================================================================
# telegram.yaml
# =============================================================================


class TelegramSchema(_StrictBase):
    webhook_path: str
    bot_username: str
    request_timeout_seconds: int
    min_connect_token_length: int


# =============================================================================
# moderation.yaml
# =============================================================================


class ModerationSchema(_StrictBase):
    profanity: dict[str, list[str]]
