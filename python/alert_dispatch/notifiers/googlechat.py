"""
Google Hangouts Chat notifier.

Posts a single card: a header with the title, the message as a text
paragraph, a button linking to the alert rules, and a footer with the
version and send time.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from alert_dispatch.exceptions import ConfigValidationError
from alert_dispatch.gateway import DispatchRequest
from alert_dispatch.notifiers.base import (
    Notifier,
    NotifierFactory,
    json_body,
)
from alert_dispatch.template import DEFAULT_MESSAGE, DEFAULT_TITLE

if TYPE_CHECKING:
    from alert_dispatch.channel_config import DecryptFunc, Settings
    from alert_dispatch.context import NotifyContext
    from alert_dispatch.models import AlertGroup
    from alert_dispatch.template import TemplateExpansion

# RFC 822 layout, e.g. "02 Jan 06 15:04 UTC"
FOOTER_TIME_FORMAT = "%d %b %y %H:%M %Z"


class GoogleChatNotifier(Notifier):
    """Notifier for Google Chat incoming webhooks."""

    def _configure(self, settings: Settings, decrypt: DecryptFunc) -> None:
        url = settings.string("url")
        if not url:
            raise ConfigValidationError.missing_setting("url", "Could not find url property in settings")
        self.webhook_url = url

    def build_request(
        self, ctx: NotifyContext, group: AlertGroup, tmpl: TemplateExpansion
    ) -> DispatchRequest:
        title = tmpl.named(DEFAULT_TITLE)
        sent_at = self._clock().strftime(FOOTER_TIME_FORMAT)

        widgets = [
            {"textParagraph": {"text": tmpl.named(DEFAULT_MESSAGE)}},
            {
                "buttons": [
                    {
                        "textButton": {
                            "text": "OPEN IN GRAFANA",
                            "onClick": {"openLink": {"url": self.rule_url}},
                        }
                    }
                ]
            },
            {"textParagraph": {"text": f"{self.footer} | {sent_at}"}},
        ]
        payload = {
            "previewText": title,
            "fallbackText": title,
            "cards": [
                {
                    "header": {"title": title},
                    "sections": [{"widgets": widgets}],
                }
            ],
        }
        return DispatchRequest(
            url=self.webhook_url,
            body=json_body(payload),
            method="POST",
            headers={"Content-Type": "application/json; charset=UTF-8"},
        )


NotifierFactory.register("googlechat", GoogleChatNotifier)
