"""VictorOps (Splunk On-Call) REST endpoint notifier."""

from __future__ import annotations

from typing import TYPE_CHECKING

from alert_dispatch.exceptions import ConfigValidationError
from alert_dispatch.gateway import DispatchRequest
from alert_dispatch.models import AlertStatus, group_key_hash
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
    from alert_dispatch.template import TemplateExpansion

MESSAGE_TYPE_CRITICAL = "CRITICAL"
MESSAGE_TYPE_RECOVERY = "RECOVERY"


class VictoropsNotifier(Notifier):
    """Notifier for VictorOps incidents."""

    def _configure(self, settings: Settings, decrypt: DecryptFunc) -> None:
        url = settings.string("url")
        if not url:
            raise ConfigValidationError.missing_setting(
                "url", "Could not find victorops url property in settings"
            )
        self.webhook_url = url
        self.message_type = (settings.string("messageType") or MESSAGE_TYPE_CRITICAL).upper()

    def build_request(
        self, ctx: NotifyContext, group: AlertGroup, tmpl: TemplateExpansion
    ) -> DispatchRequest:
        message_type = self.message_type
        if group.status == AlertStatus.RESOLVED:
            message_type = MESSAGE_TYPE_RECOVERY

        payload = {
            "message_type": message_type,
            "entity_id": group_key_hash(ctx.group_key),
            "entity_display_name": tmpl.named(DEFAULT_TITLE),
            "timestamp": int(self._clock().timestamp()),
            "state_message": tmpl.named(DEFAULT_MESSAGE),
            "monitoring_tool": self.footer,
            "alert_url": self.rule_url,
        }
        return DispatchRequest(
            url=self.webhook_url,
            body=json_body(payload),
            method="POST",
            headers={"Content-Type": JSON_CONTENT_TYPE},
        )


NotifierFactory.register("victorops", VictoropsNotifier)
