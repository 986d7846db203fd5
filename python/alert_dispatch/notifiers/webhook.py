"""
Generic webhook notifier.

Posts an alertmanager-compatible JSON payload extended with the rendered
title, message and a legacy ``state`` field. Alert lists longer than
``maxAlerts`` are cut, with the number of dropped alerts reported in
``truncatedAlerts``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from alert_dispatch.exceptions import ConfigValidationError
from alert_dispatch.gateway import DispatchRequest
from alert_dispatch.models import AlertStatus
from alert_dispatch.notifiers.base import (
    JSON_CONTENT_TYPE,
    Notifier,
    NotifierFactory,
    json_body,
)
from alert_dispatch.template import DEFAULT_MESSAGE, DEFAULT_TITLE

if TYPE_CHECKING:
    from alert_dispatch.channel_config import DecryptFunc, Settings
    from alert_dispatch.context import NotifyContext
    from alert_dispatch.models import AlertGroup
    from alert_dispatch.template import TemplateAlert, TemplateExpansion

WEBHOOK_PAYLOAD_VERSION = "1"
ALLOWED_METHODS = ("POST", "PUT")
ZERO_TIME = "0001-01-01T00:00:00Z"


def format_timestamp(value: datetime | None) -> str:
    """RFC 3339 timestamp in UTC; unknown times use the zero time."""
    if value is None:
        return ZERO_TIME
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _alert_payload(alert: TemplateAlert) -> dict[str, Any]:
    return {
        "status": alert.status,
        "labels": dict(alert.labels.items()),
        "annotations": dict(alert.annotations.items()),
        "startsAt": format_timestamp(alert.starts_at),
        "endsAt": format_timestamp(alert.ends_at),
        "generatorURL": alert.generator_url,
        "fingerprint": alert.fingerprint,
    }


class WebhookNotifier(Notifier):
    """Notifier for arbitrary HTTP endpoints."""

    def _configure(self, settings: Settings, decrypt: DecryptFunc) -> None:
        url = settings.string("url")
        if not url:
            raise ConfigValidationError.missing_setting("url", "Could not find url property in settings")

        http_method = (settings.string("httpMethod") or "POST").upper()
        if http_method not in ALLOWED_METHODS:
            raise ConfigValidationError.invalid_setting(
                "httpMethod", f"Invalid HTTP method {http_method!r}: must be POST or PUT"
            )

        self.webhook_url = url
        self.http_method = http_method
        self.user = settings.string("username")
        self._password = decrypt("password", settings.string("password"))
        self.max_alerts = max(0, settings.integer("maxAlerts"))

    def build_request(
        self, ctx: NotifyContext, group: AlertGroup, tmpl: TemplateExpansion
    ) -> DispatchRequest:
        data = tmpl.data
        alerts = list(data.alerts)
        truncated = 0
        if self.max_alerts and len(alerts) > self.max_alerts:
            truncated = len(alerts) - self.max_alerts
            alerts = alerts[: self.max_alerts]

        payload = {
            "receiver": data.receiver,
            "status": data.status,
            "alerts": [_alert_payload(a) for a in alerts],
            "groupLabels": dict(data.group_labels.items()),
            "commonLabels": dict(data.common_labels.items()),
            "commonAnnotations": dict(data.common_annotations.items()),
            "externalURL": data.external_url,
            "version": WEBHOOK_PAYLOAD_VERSION,
            "groupKey": data.group_key,
            "truncatedAlerts": truncated,
            "title": tmpl.named(DEFAULT_TITLE),
            "state": "ok" if group.status == AlertStatus.RESOLVED else "alerting",
            "message": tmpl.named(DEFAULT_MESSAGE),
        }
        return DispatchRequest(
            url=self.webhook_url,
            body=json_body(payload),
            method=self.http_method,
            headers={"Content-Type": JSON_CONTENT_TYPE},
            user=self.user,
            password=self._password,
        )


NotifierFactory.register("webhook", WebhookNotifier)
