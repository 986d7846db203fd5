"""
Slack notifier.

Works with both incoming webhooks and the ``chat.postMessage`` API. When
no webhook URL is configured the chat API is used, which requires a
recipient channel and a bot token. Mentions are sent as a separate
section block ahead of the attachment.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

from alert_dispatch.exceptions import ConfigValidationError, DispatchError
from alert_dispatch.gateway import DispatchRequest
from alert_dispatch.notifiers.base import (
    FOOTER_ICON_URL,
    JSON_CONTENT_TYPE,
    Notifier,
    NotifierFactory,
    json_body,
    status_color,
)
from alert_dispatch.template import DEFAULT_MESSAGE_TEMPLATE, DEFAULT_TITLE_TEMPLATE

if TYPE_CHECKING:
    from alert_dispatch.channel_config import DecryptFunc, Settings
    from alert_dispatch.context import NotifyContext
    from alert_dispatch.models import AlertGroup
    from alert_dispatch.template import TemplateExpansion

SLACK_API_URL = "https://slack.com/api/chat.postMessage"
MENTION_CHANNEL_VALUES = ("", "here", "channel")


def validate_slack_response(body: bytes, status_code: int) -> None:
    """
    Reject chat API responses that report ``ok: false``.

    Incoming webhooks answer with plain text, which is accepted as is.
    """
    text = body.decode("utf-8", errors="replace").strip()
    if not text.startswith("{"):
        return
    try:
        result = json.loads(text)
    except ValueError as e:
        raise DispatchError.invalid_response(SLACK_API_URL, f"malformed JSON: {e}") from e
    if not result.get("ok", True):
        raise DispatchError.invalid_response(
            SLACK_API_URL, f"failed to make Slack API request: {result.get('error', 'unknown')}"
        )


class SlackNotifier(Notifier):
    """Notifier for Slack webhooks and the Slack chat API."""

    def _configure(self, settings: Settings, decrypt: DecryptFunc) -> None:
        url = decrypt("url", settings.string("url")) or SLACK_API_URL
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigValidationError.invalid_setting("url", f"invalid URL {url!r}")

        recipient = settings.string("recipient").strip()
        if not recipient and url == SLACK_API_URL:
            raise ConfigValidationError.missing_setting(
                "recipient", "recipient must be specified when using the Slack chat API"
            )

        mention_channel = settings.string("mentionChannel")
        if mention_channel not in MENTION_CHANNEL_VALUES:
            raise ConfigValidationError.invalid_setting(
                "mentionChannel", f"invalid value for mentionChannel: {mention_channel!r}"
            )

        self.url = url
        self.recipient = recipient
        self.mention_channel = mention_channel
        self.mention_users = settings.string_list("mentionUsers")
        self.mention_groups = settings.string_list("mentionGroups")
        self.username = settings.string("username", "Grafana")
        self.icon_emoji = settings.string("icon_emoji")
        self.icon_url = settings.string("icon_url")
        self.title = settings.string("title", DEFAULT_TITLE_TEMPLATE)
        self.text = settings.string("text", DEFAULT_MESSAGE_TEMPLATE)
        self._token = decrypt("token", settings.string("token"))

    def _mentions(self) -> str:
        mentions = []
        if self.mention_channel:
            mentions.append(f"<!{self.mention_channel}|{self.mention_channel}>")
        mentions.extend(f"<!subteam^{group}>" for group in self.mention_groups)
        mentions.extend(f"<@{user}>" for user in self.mention_users)
        return " ".join(mentions)

    def build_request(
        self, ctx: NotifyContext, group: AlertGroup, tmpl: TemplateExpansion
    ) -> DispatchRequest:
        title = tmpl.text(self.title)
        attachment = {
            "color": status_color(group.status),
            "title": title,
            "fallback": title,
            "footer": self.footer,
            "footer_icon": FOOTER_ICON_URL,
            "ts": int(self._clock().timestamp()),
            "title_link": self.rule_url,
            "text": tmpl.text(self.text),
        }

        message: dict[str, Any] = {}
        if self.recipient:
            message["channel"] = self.recipient
        for key, source in (
            ("username", self.username),
            ("icon_emoji", self.icon_emoji),
            ("icon_url", self.icon_url),
        ):
            value = tmpl.text(source)
            if value:
                message[key] = value
        message["attachments"] = [attachment]

        mentions = self._mentions()
        if mentions:
            message["blocks"] = [{"type": "section", "text": {"type": "mrkdwn", "text": mentions}}]

        headers = {"Content-Type": JSON_CONTENT_TYPE}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        return DispatchRequest(
            url=self.url,
            body=json_body(message),
            method="POST",
            headers=headers,
            validate_response=validate_slack_response,
        )


NotifierFactory.register("slack", SlackNotifier)
