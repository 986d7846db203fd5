"""DingTalk robot notifier."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

from alert_dispatch.exceptions import ConfigValidationError
from alert_dispatch.gateway import DispatchRequest
from alert_dispatch.notifiers.base import (
    JSON_CONTENT_TYPE,
    Notifier,
    NotifierFactory,
    json_body,
)
from alert_dispatch.template import DEFAULT_MESSAGE_TEMPLATE, DEFAULT_TITLE

if TYPE_CHECKING:
    from alert_dispatch.channel_config import DecryptFunc, Settings
    from alert_dispatch.context import NotifyContext
    from alert_dispatch.models import AlertGroup
    from alert_dispatch.template import TemplateExpansion

MSG_TYPE_LINK = "link"
MSG_TYPE_ACTION_CARD = "actionCard"

# Opens the link inside the DingTalk client rather than the side panel.
DINGTALK_LINK_PREFIX = "dingtalk://dingtalkclient/page/link?"


class DingDingNotifier(Notifier):
    """Notifier for DingTalk group robots, as a link or an action card."""

    def _configure(self, settings: Settings, decrypt: DecryptFunc) -> None:
        url = settings.string("url")
        if not url:
            raise ConfigValidationError.missing_setting("url", "could not find url property in settings")
        self.webhook_url = url
        self.msg_type = settings.string("msgType", MSG_TYPE_LINK)
        self.message = settings.string("message", DEFAULT_MESSAGE_TEMPLATE)

    def build_request(
        self, ctx: NotifyContext, group: AlertGroup, tmpl: TemplateExpansion
    ) -> DispatchRequest:
        message_url = DINGTALK_LINK_PREFIX + urlencode(
            sorted({"pc_slide": "false", "url": self.rule_url}.items())
        )
        title = tmpl.named(DEFAULT_TITLE)
        text = tmpl.text(self.message)

        body: dict[str, Any]
        if self.msg_type == MSG_TYPE_ACTION_CARD:
            body = {
                "msgtype": MSG_TYPE_ACTION_CARD,
                "actionCard": {
                    "text": text,
                    "title": title,
                    "singleTitle": "More",
                    "singleURL": message_url,
                },
            }
        else:
            body = {
                "msgtype": MSG_TYPE_LINK,
                "link": {
                    "messageUrl": message_url,
                    "text": text,
                    "title": title,
                },
            }

        return DispatchRequest(
            url=self.webhook_url,
            body=json_body(body),
            method="POST",
            headers={"Content-Type": JSON_CONTENT_TYPE},
        )


NotifierFactory.register("dingding", DingDingNotifier)
