"""
LINE Notify notifier.

Sends the default title and message as a single form field, authenticated
with the channel's LINE Notify token.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from alert_dispatch.exceptions import ConfigValidationError
from alert_dispatch.gateway import DispatchRequest
from alert_dispatch.notifiers.base import Notifier, NotifierFactory, form_body
from alert_dispatch.template import DEFAULT_MESSAGE, DEFAULT_TITLE

if TYPE_CHECKING:
    from alert_dispatch.channel_config import DecryptFunc, Settings
    from alert_dispatch.context import NotifyContext
    from alert_dispatch.models import AlertGroup
    from alert_dispatch.template import TemplateExpansion

LINE_NOTIFY_URL = "https://notify-api.line.me/api/notify"


class LineNotifier(Notifier):
    """Notifier for LINE Notify."""

    def _configure(self, settings: Settings, decrypt: DecryptFunc) -> None:
        token = decrypt("token", settings.string("token"))
        if not token:
            raise ConfigValidationError.missing_setting("token", "Could not find token in settings")
        self._token = token

    def build_request(
        self, ctx: NotifyContext, group: AlertGroup, tmpl: TemplateExpansion
    ) -> DispatchRequest:
        body = "{}\n{}\n\n{}".format(
            tmpl.named(DEFAULT_TITLE),
            self.rule_url,
            tmpl.named(DEFAULT_MESSAGE),
        )
        return DispatchRequest(
            url=LINE_NOTIFY_URL,
            body=form_body({"message": body}),
            method="POST",
            headers={
                "Authorization": f"Bearer {self._token}",
                "Content-Type": "application/x-www-form-urlencoded;charset=UTF-8",
            },
        )


NotifierFactory.register("line", LineNotifier)
