"""
Pushover notifier.

Priority 2 (emergency) messages are repeated by Pushover every ``retry``
seconds until acknowledged or ``expire`` seconds have passed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from alert_dispatch.exceptions import ConfigValidationError
from alert_dispatch.gateway import DispatchRequest
from alert_dispatch.models import AlertStatus
from alert_dispatch.notifiers.base import (
    FORM_CONTENT_TYPE,
    Notifier,
    NotifierFactory,
    form_body,
    truncate,
)
from alert_dispatch.template import DEFAULT_MESSAGE_TEMPLATE, DEFAULT_TITLE

if TYPE_CHECKING:
    from alert_dispatch.channel_config import DecryptFunc, Settings
    from alert_dispatch.context import NotifyContext
    from alert_dispatch.models import AlertGroup
    from alert_dispatch.template import TemplateExpansion

PUSHOVER_API_URL = "https://api.pushover.net/1/messages.json"
MAX_MESSAGE_LENGTH = 1024
EMERGENCY_PRIORITY = 2


class PushoverNotifier(Notifier):
    """Notifier for Pushover users and groups."""

    def _configure(self, settings: Settings, decrypt: DecryptFunc) -> None:
        user_key = decrypt("userKey", settings.string("userKey"))
        api_token = decrypt("apiToken", settings.string("apiToken"))
        if not user_key:
            raise ConfigValidationError.missing_setting("userKey", "user key not found")
        if not api_token:
            raise ConfigValidationError.missing_setting("apiToken", "API token not found")

        self._user_key = user_key
        self._api_token = api_token
        self.priority = settings.integer("priority")
        self.ok_priority = settings.integer("okPriority")
        self.retry = settings.integer("retry")
        self.expire = settings.integer("expire")
        self.device = settings.string("device")
        self.alerting_sound = settings.string("sound")
        self.ok_sound = settings.string("okSound")
        self.message = settings.string("message", DEFAULT_MESSAGE_TEMPLATE)

    def build_request(
        self, ctx: NotifyContext, group: AlertGroup, tmpl: TemplateExpansion
    ) -> DispatchRequest:
        resolved = group.status == AlertStatus.RESOLVED
        priority = self.ok_priority if resolved else self.priority
        sound = self.ok_sound if resolved else self.alerting_sound

        fields = {
            "user": self._user_key,
            "token": self._api_token,
            "priority": str(priority),
            "title": tmpl.named(DEFAULT_TITLE),
            "url": self.rule_url,
            "url_title": "Show alert rule",
            "message": truncate(tmpl.text(self.message), MAX_MESSAGE_LENGTH),
            "html": "1",
        }
        if priority == EMERGENCY_PRIORITY:
            fields["retry"] = str(self.retry)
            fields["expire"] = str(self.expire)
        if self.device:
            fields["device"] = self.device
        if sound:
            fields["sound"] = sound

        return DispatchRequest(
            url=PUSHOVER_API_URL,
            body=form_body(fields),
            method="POST",
            headers={"Content-Type": FORM_CONTENT_TYPE},
        )


NotifierFactory.register("pushover", PushoverNotifier)
