"""
PagerDuty Events API v2 notifier.

Firing groups open (or update) an incident and resolved groups close it.
Both use the hash of the group key as the dedup key so they address the
same incident.
"""

from __future__ import annotations

import socket
from typing import TYPE_CHECKING, Any

from alert_dispatch.exceptions import ConfigValidationError
from alert_dispatch.gateway import DispatchRequest
from alert_dispatch.models import AlertStatus, group_key_hash
from alert_dispatch.notifiers.base import (
    JSON_CONTENT_TYPE,
    Notifier,
    NotifierFactory,
    json_body,
    truncate,
)
from alert_dispatch.template import DEFAULT_TITLE, DEFAULT_TITLE_TEMPLATE

if TYPE_CHECKING:
    from alert_dispatch.channel_config import DecryptFunc, Settings
    from alert_dispatch.context import NotifyContext
    from alert_dispatch.models import AlertGroup
    from alert_dispatch.template import TemplateExpansion

PAGERDUTY_EVENTS_URL = "https://events.pagerduty.com/v2/enqueue"
MAX_SUMMARY_LENGTH = 1024

EVENT_TRIGGER = "trigger"
EVENT_RESOLVE = "resolve"

ALERT_LIST_FIRING = '{% import "__text_alert_list" as lists %}{{ lists.text_alert_list(alerts.firing()) }}'
ALERT_LIST_RESOLVED = (
    '{% import "__text_alert_list" as lists %}{{ lists.text_alert_list(alerts.resolved()) }}'
)


class PagerdutyNotifier(Notifier):
    """Notifier for PagerDuty services."""

    def _configure(self, settings: Settings, decrypt: DecryptFunc) -> None:
        key = decrypt("integrationKey", settings.string("integrationKey"))
        if not key:
            raise ConfigValidationError.missing_setting(
                "integrationKey", "Could not find integration key property in settings"
            )
        self._key = key
        self.severity = settings.string("severity", "critical")
        self.event_class = settings.string("class")
        self.component = settings.string("component", "Grafana")
        self.group = settings.string("group")
        self.summary = settings.string("summary", DEFAULT_TITLE_TEMPLATE)

    def build_request(
        self, ctx: NotifyContext, group: AlertGroup, tmpl: TemplateExpansion
    ) -> DispatchRequest:
        event_action = EVENT_RESOLVE if group.status == AlertStatus.RESOLVED else EVENT_TRIGGER
        external_url = self._renderer.external_url

        details = {
            "firing": tmpl.text(ALERT_LIST_FIRING),
            "resolved": tmpl.text(ALERT_LIST_RESOLVED),
            "num_firing": str(len(group.firing())),
            "num_resolved": str(len(group.resolved())),
        }
        payload: dict[str, Any] = {
            "summary": truncate(tmpl.text(self.summary), MAX_SUMMARY_LENGTH),
            "source": socket.gethostname(),
            "severity": tmpl.text(self.severity),
            "custom_details": details,
        }
        for key, value in (
            ("class", self.event_class),
            ("component", self.component),
            ("group", self.group),
        ):
            if value:
                payload[key] = value

        message = {
            "routing_key": self._key,
            "dedup_key": group_key_hash(ctx.group_key),
            "description": tmpl.named(DEFAULT_TITLE),
            "event_action": event_action,
            "payload": payload,
            "client": "Grafana",
            "client_url": external_url,
            "links": [{"href": external_url, "text": "External URL"}],
        }
        return DispatchRequest(
            url=PAGERDUTY_EVENTS_URL,
            body=json_body(message),
            method="POST",
            headers={"Content-Type": JSON_CONTENT_TYPE},
        )


NotifierFactory.register("pagerduty", PagerdutyNotifier)
