"""Discord webhook notifier."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from alert_dispatch.exceptions import ConfigValidationError
from alert_dispatch.gateway import DispatchRequest
from alert_dispatch.notifiers.base import (
    FOOTER_ICON_URL,
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


class DiscordNotifier(Notifier):
    """Notifier posting a message with one rich embed to a Discord webhook."""

    def _configure(self, settings: Settings, decrypt: DecryptFunc) -> None:
        url = settings.string("url")
        if not url:
            raise ConfigValidationError.missing_setting(
                "url", "could not find webhook url property in settings"
            )
        self.webhook_url = url
        self.content = settings.string("content", DEFAULT_MESSAGE_TEMPLATE)
        self.avatar_url = settings.string("avatar_url")

    def build_request(
        self, ctx: NotifyContext, group: AlertGroup, tmpl: TemplateExpansion
    ) -> DispatchRequest:
        embed = {
            "title": tmpl.named(DEFAULT_TITLE),
            "footer": {"text": self.footer, "icon_url": FOOTER_ICON_URL},
            "type": "rich",
            "color": int(status_color(group.status).lstrip("#"), 16),
            "url": self.rule_url,
        }
        payload: dict[str, Any] = {"username": "Grafana"}
        if self.content:
            payload["content"] = tmpl.text(self.content)
        if self.avatar_url:
            payload["avatar_url"] = self.avatar_url
        payload["embeds"] = [embed]

        return DispatchRequest(
            url=self.webhook_url,
            body=json_body(payload),
            method="POST",
            headers={"Content-Type": JSON_CONTENT_TYPE},
        )


NotifierFactory.register("discord", DiscordNotifier)
