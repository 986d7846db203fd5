"""
Base classes for channel notifiers.

Every channel type subclasses Notifier: it validates and decrypts its
settings in ``_configure`` (once, at construction) and turns an alert group
into a DispatchRequest in ``build_request``. The shared ``notify`` template
method renders, checks for template errors, and dispatches, so no channel
can send a partially rendered message.
"""

from __future__ import annotations

import json
import posixpath
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, ClassVar
from urllib.parse import urlencode

import structlog

from alert_dispatch.channel_config import (
    ChannelConfig,
    DecryptFunc,
    Settings,
    plaintext_decrypt,
)
from alert_dispatch.config import get_config
from alert_dispatch.exceptions import (
    ConfigValidationError,
    DispatchEngineError,
    UnknownChannelTypeError,
)
from alert_dispatch.models import AlertGroup, AlertRecord, AlertStatus

if TYPE_CHECKING:
    from alert_dispatch.context import NotifyContext
    from alert_dispatch.gateway import DispatchGateway, DispatchRequest
    from alert_dispatch.template import TemplateExpansion, TemplateRenderer

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]

COLOR_FIRING = "#D63232"
COLOR_RESOLVED = "#36a64f"
FOOTER_ICON_URL = "https://grafana.com/assets/img/fav32.png"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def path_join(*elements: str) -> str:
    """
    Join URL path elements and clean the result like a POSIX path.

    Empty elements are ignored and repeated slashes collapse, so
    ``path_join("http://localhost", "/alerting/list")`` gives
    ``http:/localhost/alerting/list``.
    """
    joined = "/".join(e for e in elements if e)
    if not joined:
        return ""
    cleaned = posixpath.normpath(joined)
    if cleaned.startswith("//"):
        cleaned = cleaned[1:]
    return cleaned


def rule_url(external_url: str) -> str:
    """Link to the alert rule list."""
    return path_join(external_url, "/alerting/list")


def status_color(status: AlertStatus) -> str:
    return COLOR_RESOLVED if status == AlertStatus.RESOLVED else COLOR_FIRING


def json_body(payload: Any) -> bytes:
    """Compact UTF-8 JSON encoding."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def form_body(fields: Mapping[str, str]) -> bytes:
    """URL-encoded form with keys in sorted order."""
    return urlencode(sorted(fields.items())).encode("utf-8")


def truncate(text: str, limit: int) -> str:
    """Cut ``text`` to ``limit`` characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "\u2026"


@dataclass(frozen=True)
class NotifierBase:
    """Identity and resolve-suppression fields shared by every notifier."""

    uid: str
    name: str
    type: str
    disable_resolve_message: bool = False

    @classmethod
    def from_config(cls, config: ChannelConfig) -> NotifierBase:
        return cls(
            uid=config.uid,
            name=config.name,
            type=config.type,
            disable_resolve_message=config.disable_resolve_message,
        )


@dataclass(frozen=True)
class NotifyResult:
    """
    Outcome of one notify call.

    Attributes:
        delivered: Whether the channel accepted the notification.
        error: The template or dispatch error when not delivered.
        notifier_name: Display name of the channel.
        channel_type: Channel type tag.
        channel_uid: Channel uid.
        skipped: True when the channel had nothing to send.
    """

    delivered: bool
    error: DispatchEngineError | None = None
    notifier_name: str = ""
    channel_type: str = ""
    channel_uid: str = ""
    skipped: bool = False

    @property
    def is_success(self) -> bool:
        return self.delivered and self.error is None


class Notifier(ABC):
    """
    Abstract base class for all channel notifiers.

    Args:
        config: Channel configuration; validated here, never stored.
        renderer: Shared template renderer.
        gateway: Shared dispatch gateway.
        decrypt: Resolves secure settings as ``(field, fallback) -> value``.
        clock: Source of "now" for wall-clock payload fields.

    Raises:
        ConfigValidationError: If the settings are missing or malformed.
    """

    channel_type: ClassVar[str] = ""

    def __init__(
        self,
        config: ChannelConfig,
        renderer: TemplateRenderer,
        gateway: DispatchGateway,
        decrypt: DecryptFunc = plaintext_decrypt,
        clock: Clock = utc_now,
    ) -> None:
        if config.settings is None:
            raise ConfigValidationError.missing_setting("settings", "No Settings Supplied")

        self.base = NotifierBase.from_config(config)
        self._renderer = renderer
        self._gateway = gateway
        self._clock = clock
        template_config = get_config().template
        self._footer = f"{template_config.app_name} v{template_config.app_version}"
        self._logger = logger.bind(
            notifier=self.base.name,
            channel_type=self.base.type,
            channel_uid=self.base.uid,
        )

        self._configure(config.settings_view, decrypt)

    @property
    def name(self) -> str:
        return self.base.name

    @property
    def uid(self) -> str:
        return self.base.uid

    @property
    def footer(self) -> str:
        return self._footer

    @property
    def rule_url(self) -> str:
        return rule_url(self._renderer.external_url)

    def should_send_resolved(self) -> bool:
        """Whether notifications for fully resolved groups should be sent."""
        return not self.base.disable_resolve_message

    @abstractmethod
    def _configure(self, settings: Settings, decrypt: DecryptFunc) -> None:
        """
        Validate settings and store the channel's fields.

        Raises:
            ConfigValidationError: On the first violated constraint.
        """

    @abstractmethod
    def build_request(
        self, ctx: NotifyContext, group: AlertGroup, tmpl: TemplateExpansion
    ) -> DispatchRequest | None:
        """
        Build the channel's request for ``group``.

        Returns None when there is nothing to send for this group.
        """

    def notify(
        self, ctx: NotifyContext, alerts: AlertGroup | Iterable[AlertRecord]
    ) -> NotifyResult:
        """
        Render and deliver one alert group.

        Template and dispatch failures are returned in the result, never
        raised.
        """
        group = alerts if isinstance(alerts, AlertGroup) else AlertGroup(alerts)
        log = self._logger.bind(**ctx.log_fields(), status=group.status.value, alerts=len(group))
        log.debug("sending_notification")

        tmpl = self._renderer.expand(ctx, group)
        try:
            request = self.build_request(ctx, group, tmpl)
        except DispatchEngineError as e:
            log.error("notification_build_failed", error=e.message)
            return self._result(False, e)

        if tmpl.error is not None:
            log.error("template_render_failed", error=tmpl.error.message)
            return self._result(False, tmpl.error)

        if request is None:
            log.debug("notification_skipped")
            return self._result(True, skipped=True)

        try:
            self._gateway.send(ctx, request)
        except DispatchEngineError as e:
            log.error("notification_failed", error=e.message, error_code=e.error_code.value)
            return self._result(False, e)

        log.info("notification_sent")
        return self._result(True)

    def _result(
        self, delivered: bool, error: DispatchEngineError | None = None, skipped: bool = False
    ) -> NotifyResult:
        return NotifyResult(
            delivered=delivered,
            error=error,
            notifier_name=self.base.name,
            channel_type=self.base.type,
            channel_uid=self.base.uid,
            skipped=skipped,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(uid={self.base.uid!r}, name={self.base.name!r})"


class NotifierFactory:
    """
    Factory mapping channel type tags to notifier classes.

    Notifier modules register themselves on import.
    """

    _registry: ClassVar[dict[str, type[Notifier]]] = {}

    @classmethod
    def register(cls, channel_type: str, notifier_class: type[Notifier]) -> None:
        """
        Register a notifier type.

        Args:
            channel_type: Unique type tag.
            notifier_class: Notifier class to register.
        """
        if not issubclass(notifier_class, Notifier):
            raise TypeError(f"Notifier class must subclass Notifier: {notifier_class!r}")
        notifier_class.channel_type = channel_type
        cls._registry[channel_type] = notifier_class
        logger.debug("notifier_registered", channel_type=channel_type)

    @classmethod
    def create(
        cls,
        config: ChannelConfig,
        renderer: TemplateRenderer,
        gateway: DispatchGateway,
        decrypt: DecryptFunc = plaintext_decrypt,
        clock: Clock = utc_now,
    ) -> Notifier:
        """
        Create a validated notifier for ``config``.

        Raises:
            UnknownChannelTypeError: If the type tag is not registered.
            ConfigValidationError: If the settings are invalid.
        """
        notifier_class = cls._registry.get(config.type)
        if notifier_class is None:
            raise UnknownChannelTypeError.for_type(config.type)
        try:
            return notifier_class(config, renderer, gateway, decrypt=decrypt, clock=clock)
        except ConfigValidationError as e:
            logger.warning(
                "notifier_rejected",
                channel_uid=config.uid,
                channel_type=config.type,
                reason=e.reason,
            )
            raise

    @classmethod
    def available_types(cls) -> list[str]:
        """Get list of registered channel types."""
        return sorted(cls._registry)
