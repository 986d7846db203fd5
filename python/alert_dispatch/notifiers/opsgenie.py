"""
OpsGenie notifier.

Firing groups create an alert aliased by the group key hash. Resolved
groups close that alert when ``autoClose`` is set and are skipped
otherwise. Common labels are forwarded as tags, details, or both.
"""

from __future__ import annotations

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
from alert_dispatch.template import DEFAULT_MESSAGE, DEFAULT_TITLE

if TYPE_CHECKING:
    from alert_dispatch.channel_config import DecryptFunc, Settings
    from alert_dispatch.context import NotifyContext
    from alert_dispatch.models import AlertGroup
    from alert_dispatch.template import TemplateExpansion

OPSGENIE_ALERTS_URL = "https://api.opsgenie.com/v2/alerts"
MAX_MESSAGE_LENGTH = 130
MAX_DESCRIPTION_LENGTH = 15000

SEND_TAGS = "tags"
SEND_DETAILS = "details"
SEND_BOTH = "both"

PRIORITY_LABEL = "og_priority"
VALID_PRIORITIES = ("P1", "P2", "P3", "P4", "P5")


class OpsgenieNotifier(Notifier):
    """Notifier for the OpsGenie alert API."""

    def _configure(self, settings: Settings, decrypt: DecryptFunc) -> None:
        api_key = decrypt("apiKey", settings.string("apiKey"))
        if not api_key:
            raise ConfigValidationError.missing_setting(
                "apiKey", "Could not find api key property in settings"
            )

        send_tags_as = settings.string("sendTagsAs", SEND_TAGS)
        if send_tags_as not in (SEND_TAGS, SEND_DETAILS, SEND_BOTH):
            raise ConfigValidationError.invalid_setting(
                "sendTagsAs", f"invalid value for sendTagsAs: {send_tags_as!r}"
            )

        self._api_key = api_key
        self.api_url = settings.string("apiUrl") or OPSGENIE_ALERTS_URL
        self.auto_close = settings.boolean("autoClose", True)
        self.override_priority = settings.boolean("overridePriority", True)
        self.send_tags_as = send_tags_as

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": JSON_CONTENT_TYPE,
            "Authorization": f"GenieKey {self._api_key}",
        }

    def build_request(
        self, ctx: NotifyContext, group: AlertGroup, tmpl: TemplateExpansion
    ) -> DispatchRequest | None:
        alias = group_key_hash(ctx.group_key)

        if group.status == AlertStatus.RESOLVED:
            if not self.auto_close:
                return None
            return DispatchRequest(
                url=f"{self.api_url.rstrip('/')}/{alias}/close?identifierType=alias",
                body=json_body({"source": "Grafana"}),
                method="POST",
                headers=self._headers(),
            )

        title = tmpl.named(DEFAULT_TITLE)
        description = "{}\n{}\n\n{}".format(title, self.rule_url, tmpl.named(DEFAULT_MESSAGE))

        details: dict[str, str] = {"url": self.rule_url}
        tags: list[str] = []
        priority = ""
        for name, value in group.common_labels().sorted_pairs():
            if name == PRIORITY_LABEL and self.override_priority:
                if value in VALID_PRIORITIES:
                    priority = value
                continue
            if self.send_tags_as in (SEND_TAGS, SEND_BOTH):
                tags.append(f"{name}:{value}")
            if self.send_tags_as in (SEND_DETAILS, SEND_BOTH):
                details[name] = value

        body: dict[str, Any] = {
            "message": truncate(title, MAX_MESSAGE_LENGTH),
            "description": truncate(description, MAX_DESCRIPTION_LENGTH),
            "alias": alias,
            "source": "Grafana",
            "details": details,
        }
        if tags:
            body["tags"] = tags
        if priority:
            body["priority"] = priority

        return DispatchRequest(
            url=self.api_url,
            body=json_body(body),
            method="POST",
            headers=self._headers(),
        )


NotifierFactory.register("opsgenie", OpsgenieNotifier)
