"""Microsoft Teams notifier using the legacy MessageCard format."""

from __future__ import annotations

from typing import TYPE_CHECKING

from alert_dispatch.exceptions import ConfigValidationError
from alert_dispatch.gateway import DispatchRequest
from alert_dispatch.notifiers.base import (
    JSON_CONTENT_TYPE,
    Notifier,
    NotifierFactory,
    json_body,
    status_color,
)
from alert_dispatch.template import DEFAULT_MESSAGE_TEMPLATE, DEFAULT_TITLE

if TYPE_CHECKING:
    from alert_dispatch.channel_config import DecryptFunc, Settings
    from alert_dispatch.context import NotifyContext
    from alert_dispatch.models import AlertGroup
    from alert_dispatch.template import TemplateExpansion


class TeamsNotifier(Notifier):
    """Notifier for Microsoft Teams incoming webhooks."""

    def _configure(self, settings: Settings, decrypt: DecryptFunc) -> None:
        url = settings.string("url")
        if not url:
            raise ConfigValidationError.missing_setting("url", "Could not find url property in settings")
        self.webhook_url = url
        self.message = settings.string("message", DEFAULT_MESSAGE_TEMPLATE)

    def build_request(
        self, ctx: NotifyContext, group: AlertGroup, tmpl: TemplateExpansion
    ) -> DispatchRequest:
        title = tmpl.named(DEFAULT_TITLE)
        payload = {
            "@type": "MessageCard",
            "@context": "http://schema.org/extensions",
            # summary is required by MessageCard
            "summary": title,
            "title": title,
            "themeColor": status_color(group.status),
            "sections": [{"title": "Details", "text": tmpl.text(self.message)}],
            "potentialAction": [
                {
                    "@context": "http://schema.org",
                    "@type": "OpenUri",
                    "name": "View Rule",
                    "targets": [{"os": "default", "uri": self.rule_url}],
                }
            ],
        }
        return DispatchRequest(
            url=self.webhook_url,
            body=json_body(payload),
            method="POST",
            headers={"Content-Type": JSON_CONTENT_TYPE},
        )


NotifierFactory.register("teams", TeamsNotifier)
