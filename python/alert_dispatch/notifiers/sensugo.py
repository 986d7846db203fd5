"""
Sensu Go notifier.

Each alert group becomes a check result event on an entity: status 2
(critical) while firing and 0 (OK) once resolved.
"""

from __future__ import annotations

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
from alert_dispatch.template import DEFAULT_MESSAGE_TEMPLATE

if TYPE_CHECKING:
    from alert_dispatch.channel_config import DecryptFunc, Settings
    from alert_dispatch.context import NotifyContext
    from alert_dispatch.models import AlertGroup
    from alert_dispatch.template import TemplateExpansion

CHECK_STATUS_OK = 0
CHECK_STATUS_CRITICAL = 2
CHECK_INTERVAL_SECONDS = 86400
DEFAULT_NAME = "default"


class SensuGoNotifier(Notifier):
    """Notifier for the Sensu Go events API."""

    def _configure(self, settings: Settings, decrypt: DecryptFunc) -> None:
        url = settings.string("url")
        if not url:
            raise ConfigValidationError.missing_setting("url", "could not find URL property in settings")
        api_key = decrypt("apikey", settings.string("apikey"))
        if not api_key:
            raise ConfigValidationError.missing_setting(
                "apikey", "could not find the API key property in settings"
            )

        self.url = url.rstrip("/")
        self._api_key = api_key
        self.entity = settings.string("entity") or DEFAULT_NAME
        self.check = settings.string("check") or DEFAULT_NAME
        self.namespace = settings.string("namespace") or DEFAULT_NAME
        self.handler = settings.string("handler")
        self.message = settings.string("message", DEFAULT_MESSAGE_TEMPLATE)

    @property
    def events_url(self) -> str:
        return f"{self.url}/api/core/v2/namespaces/{self.namespace}/events"

    def build_request(
        self, ctx: NotifyContext, group: AlertGroup, tmpl: TemplateExpansion
    ) -> DispatchRequest:
        status = CHECK_STATUS_OK if group.status == AlertStatus.RESOLVED else CHECK_STATUS_CRITICAL
        check: dict[str, Any] = {
            "metadata": {"name": self.check, "labels": {"ruleURL": self.rule_url}},
            "output": tmpl.text(self.message),
            "issued": int(self._clock().timestamp()),
            "interval": CHECK_INTERVAL_SECONDS,
            "status": status,
        }
        if self.handler:
            check["handlers"] = [self.handler]

        event = {
            "entity": {"metadata": {"name": self.entity, "namespace": self.namespace}},
            "check": check,
            "ruleUrl": self.rule_url,
        }
        return DispatchRequest(
            url=self.events_url,
            body=json_body(event),
            method="POST",
            headers={
                "Content-Type": JSON_CONTENT_TYPE,
                "Authorization": f"Key {self._api_key}",
            },
        )


NotifierFactory.register("sensugo", SensuGoNotifier)
