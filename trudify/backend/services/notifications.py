"""
Notification Router.

Creates one inbox notification per event and, when the resolved channel
includes Telegram, mirrors it to the user's linked chat.

Delivery rules:
- explicit channel wins; otherwise the per-type routing table, then the
  user's per-type override ({"task_completed": {"telegram": false}})
- locale: explicit, then the user's preferred language, then the default
- templated types render title, message and chat text from the locale
  catalogs; caller-supplied title/message take precedence
- action URLs are locale-prefixed and turned into auto-login links

Only the inbox insert decides success. Auto-login link generation and the
Telegram send are best-effort and never fail the call.

Usage:
    router = NotificationRouter(session)
    result = await router.create_notification(
        user_id=task.customer_id,
        type=NotificationType.PROFESSIONAL_WITHDREW,
        template_data={"taskTitle": task.title, "professionalName": name},
        action_url=f"/tasks/{task.id}",
    )
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from aiogram.utils.text_decorations import html_decoration
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from trudify.backend.core.config import get_app_config
from trudify.backend.core.i18n import normalize_locale, supported_locales, translate, translate_html
from trudify.backend.core.logging import log_with_source
from trudify.backend.core.utils import utc_now
from trudify.backend.models.notification import (
    DeliveryChannel,
    Notification,
    NotificationState,
    NotificationType,
    TelegramDeliveryStatus,
)
from trudify.backend.models.user import User
from trudify.backend.repositories.notification import NotificationRepository
from trudify.backend.repositories.user import UserRepository
from trudify.backend.services.auth_tokens import AuthTokenService
from trudify.backend.services.base import BaseService

if TYPE_CHECKING:
    from trudify.telegram.services.sender import TelegramSender


# Catalog key per notification type; None means the caller supplies the text.
TEMPLATE_KEYS: dict[NotificationType, str | None] = {
    NotificationType.WELCOME_MESSAGE: "welcome_message",
    NotificationType.APPLICATION_RECEIVED: "application_received",
    NotificationType.APPLICATION_ACCEPTED: "application_accepted",
    NotificationType.APPLICATION_REJECTED: "application_rejected",
    NotificationType.TASK_COMPLETED: "task_completed",
    NotificationType.PROFESSIONAL_WITHDREW: "professional_withdrew",
    NotificationType.TASK_CANCELLED: "task_cancelled",
    NotificationType.TASK_STATUS_CHANGED: None,
    NotificationType.MESSAGE_RECEIVED: None,
    NotificationType.PAYMENT_RECEIVED: None,
    NotificationType.REVIEW_RECEIVED: None,
    NotificationType.WEEKLY_DIGEST: None,
    NotificationType.DEADLINE_REMINDER: None,
}


def template_key(notification_type: NotificationType) -> str | None:
    """Catalog key for a type. Raises KeyError for a type missing from the table."""
    return TEMPLATE_KEYS[notification_type]


@dataclass
class NotificationResult:
    """Outcome of create_notification."""

    success: bool
    notification_id: str | None = None
    error: str | None = None
    channel: DeliveryChannel | None = None
    telegram_status: TelegramDeliveryStatus | None = None


@dataclass
class NotificationParams:
    """Arguments for one create_notification call (used for batches)."""

    user_id: str
    type: NotificationType
    title: str | None = None
    message: str | None = None
    metadata: dict[str, Any] | None = None
    action_url: str | None = None
    delivery_channel: DeliveryChannel | None = None
    locale: str | None = None
    template_data: dict[str, Any] = field(default_factory=dict)


class NotificationRouter(BaseService):
    """Route notifications to the inbox and, when applicable, Telegram."""

    def __init__(
        self,
        session: AsyncSession,
        routing: dict[str, str] | None = None,
        sender: "TelegramSender | None" = None,
        auto_login: bool | None = None,
    ) -> None:
        super().__init__(session)
        config = get_app_config()
        self.routing = dict(config.notifications.routing if routing is None else routing)
        self.auto_login = (
            config.features.notifications_auto_login_links if auto_login is None else auto_login
        )
        self.telegram_enabled = config.features.channel_telegram_enabled
        self._sender = sender
        self.users = UserRepository(session)
        self.notifications = NotificationRepository(session)
        self.tokens = AuthTokenService(session)

    @property
    def sender(self) -> "TelegramSender":
        if self._sender is None:
            from trudify.telegram.services.sender import get_telegram_sender

            self._sender = get_telegram_sender()
        return self._sender

    # =========================================================================
    # Resolution
    # =========================================================================

    def resolve_channel(
        self,
        notification_type: NotificationType,
        preferences: dict[str, Any] | None,
        explicit: DeliveryChannel | str | None = None,
    ) -> DeliveryChannel:
        if explicit:
            return DeliveryChannel(explicit)

        channel = DeliveryChannel(self.routing.get(notification_type.value, DeliveryChannel.IN_APP.value))

        override = (preferences or {}).get(notification_type.value)
        if isinstance(override, dict):
            if override.get("telegram") is True:
                return DeliveryChannel.BOTH
            if override.get("telegram") is False:
                return DeliveryChannel.IN_APP
        return channel

    def render_content(
        self,
        notification_type: NotificationType,
        locale: str,
        data: dict[str, Any],
        title: str | None = None,
        message: str | None = None,
    ) -> tuple[str, str]:
        """Title and message for the inbox row, never empty."""
        key = template_key(notification_type)
        if key is not None and not (title and message):
            title = title or translate(locale, f"notifications.{key}.title", data)
            message = message or translate(locale, f"notifications.{key}.message", data)

        config = get_app_config().notifications
        return title or config.fallback_title, message or config.fallback_message

    def render_telegram_text(
        self,
        notification_type: NotificationType,
        locale: str,
        data: dict[str, Any],
        title: str,
        message: str,
        link: str | None,
    ) -> str:
        """Chat text in HTML; caller and user supplied values are escaped."""
        key = template_key(notification_type)
        text = translate_html(locale, f"telegram.{key}", data) if key else None
        if text is None:
            text = f"<b>{html_decoration.quote(title)}</b>\n\n{html_decoration.quote(message)}"
        if link:
            text += f"\n\n{translate(locale, 'telegram.view_here')}: {html_decoration.quote(link)}"
        return text

    @staticmethod
    def localize_path(path: str, locale: str) -> str:
        """Prefix a site path with the locale unless it already has one."""
        if not path.startswith("/"):
            path = "/" + path
        first_segment = path.split("/")[1]
        if first_segment in supported_locales():
            return path
        return f"/{locale}{path}"

    async def build_action_url(self, user_id: str, path: str, locale: str, channel: str) -> str:
        localized = self.localize_path(path, locale)
        if not self.auto_login:
            return localized
        try:
            return await self.tokens.build_auto_login_url(user_id, localized, channel)
        except Exception as e:
            self._logger.warning(
                "Auto-login link generation failed, using plain link",
                extra={"user_id": user_id, "error": str(e)},
            )
            return localized

    # =========================================================================
    # Delivery
    # =========================================================================

    async def create_notification(
        self,
        user_id: str,
        type: NotificationType | str,
        title: str | None = None,
        message: str | None = None,
        metadata: dict[str, Any] | None = None,
        action_url: str | None = None,
        delivery_channel: DeliveryChannel | str | None = None,
        locale: str | None = None,
        template_data: dict[str, Any] | None = None,
    ) -> NotificationResult:
        notification_type = NotificationType(type)

        user = await self.users.get_by_id_or_none(user_id)
        if user is None:
            self._logger.warning(
                "Notification skipped, user not found",
                extra={"user_id": user_id, "type": notification_type.value},
            )
            return NotificationResult(success=False, error="User not found")

        channel = self.resolve_channel(notification_type, user.notification_preferences, delivery_channel)
        resolved_locale = normalize_locale(locale or user.preferred_language)
        data = {"userName": user.full_name or "", **(template_data or {})}
        title, message = self.render_content(notification_type, resolved_locale, data, title, message)

        url = None
        if action_url:
            url = await self.build_action_url(user.id, action_url, resolved_locale, channel.value)

        try:
            notification = await self.notifications.create(
                user_id=user.id,
                type=notification_type.value,
                title=title,
                message=message,
                meta=metadata or {},
                action_url=url,
                delivery_channel=channel.value,
                state=NotificationState.SENT.value,
            )
        except SQLAlchemyError as e:
            self._logger.error(
                "Failed to store notification",
                extra={"user_id": user.id, "type": notification_type.value, "error": str(e)},
            )
            return NotificationResult(success=False, error="Failed to store notification", channel=channel)

        telegram_status = None
        if channel.includes_telegram and user.telegram_id and self.telegram_enabled:
            telegram_status = await self._deliver_telegram(
                notification, user, notification_type, resolved_locale, data, url,
            )

        self._log_operation(
            "Notification created",
            notification_id=notification.id,
            user_id=user.id,
            type=notification_type.value,
            channel=channel.value,
            telegram_status=telegram_status.value if telegram_status else None,
        )
        return NotificationResult(
            success=True,
            notification_id=notification.id,
            channel=channel,
            telegram_status=telegram_status,
        )

    async def _deliver_telegram(
        self,
        notification: Notification,
        user: User,
        notification_type: NotificationType,
        locale: str,
        data: dict[str, Any],
        url: str | None,
    ) -> TelegramDeliveryStatus:
        status = TelegramDeliveryStatus.FAILED
        sent_at = None
        try:
            text = self.render_telegram_text(
                notification_type, locale, data, notification.title, notification.message, url,
            )
            result = await self.sender.send(chat_id=user.telegram_id, text=text)
            sent_at = utc_now()
            if result.success:
                status = TelegramDeliveryStatus.SENT
        except Exception as e:
            log_with_source(
                self._logger,
                "telegram",
                "error",
                "Telegram delivery error",
                notification_id=notification.id,
                error=str(e),
            )

        try:
            await self.notifications.update_where(
                notification.id,
                {},
                telegram_sent_at=sent_at,
                telegram_delivery_status=status.value,
            )
        except SQLAlchemyError as e:
            self._logger.warning(
                "Failed to record Telegram delivery status",
                extra={"notification_id": notification.id, "error": str(e)},
            )
        return status

    async def create_notifications_batch(self, params: list[NotificationParams]) -> list[NotificationResult]:
        """Create notifications one after another, collecting each result."""
        results = []
        for item in params:
            results.append(
                await self.create_notification(
                    user_id=item.user_id,
                    type=item.type,
                    title=item.title,
                    message=item.message,
                    metadata=item.metadata,
                    action_url=item.action_url,
                    delivery_channel=item.delivery_channel,
                    locale=item.locale,
                    template_data=item.template_data,
                )
            )
        return results
