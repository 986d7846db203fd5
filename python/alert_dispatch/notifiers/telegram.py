"""Telegram Bot API notifier."""

from __future__ import annotations

from typing import TYPE_CHECKING

from alert_dispatch.exceptions import ConfigValidationError
from alert_dispatch.gateway import DispatchRequest
from alert_dispatch.notifiers.base import (
    FORM_CONTENT_TYPE,
    Notifier,
    NotifierFactory,
    form_body,
    truncate,
)
from alert_dispatch.template import DEFAULT_MESSAGE_TEMPLATE

if TYPE_CHECKING:
    from alert_dispatch.channel_config import DecryptFunc, Settings
    from alert_dispatch.context import NotifyContext
    from alert_dispatch.models import AlertGroup
    from alert_dispatch.template import TemplateExpansion

TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/{method}"
TELEGRAM_MAX_MESSAGE_LENGTH = 4096


class TelegramNotifier(Notifier):
    """Notifier sending HTML formatted messages through a Telegram bot."""

    def _configure(self, settings: Settings, decrypt: DecryptFunc) -> None:
        bot_token = decrypt("bottoken", settings.string("bottoken"))
        chat_id = settings.string("chatid")

        if not bot_token:
            raise ConfigValidationError.missing_setting(
                "bottoken", "Could not find Bot Token in settings"
            )
        if not chat_id:
            raise ConfigValidationError.missing_setting("chatid", "Could not find Chat Id in settings")

        self._bot_token = bot_token
        self.chat_id = chat_id
        self.message = settings.string("message", DEFAULT_MESSAGE_TEMPLATE)

    def build_request(
        self, ctx: NotifyContext, group: AlertGroup, tmpl: TemplateExpansion
    ) -> DispatchRequest:
        fields = {
            "chat_id": self.chat_id,
            "parse_mode": "html",
            "text": truncate(tmpl.text(self.message), TELEGRAM_MAX_MESSAGE_LENGTH),
        }
        return DispatchRequest(
            url=TELEGRAM_API_URL.format(token=self._bot_token, method="sendMessage"),
            body=form_body(fields),
            method="POST",
            headers={"Content-Type": FORM_CONTENT_TYPE},
        )


NotifierFactory.register("telegram", TelegramNotifier)
