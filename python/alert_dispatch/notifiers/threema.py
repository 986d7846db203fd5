"""
Threema Gateway notifier.

Uses the "simple" send mode of the Threema Gateway API, where the gateway
encrypts the message on our behalf. Gateway ids are always ``*`` followed by
seven characters; recipient ids are eight characters.
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
)
from alert_dispatch.template import DEFAULT_MESSAGE, DEFAULT_TITLE

if TYPE_CHECKING:
    from alert_dispatch.channel_config import DecryptFunc, Settings
    from alert_dispatch.context import NotifyContext
    from alert_dispatch.models import AlertGroup
    from alert_dispatch.template import TemplateExpansion

THREEMA_GATEWAY_URL = "https://msgapi.threema.ch/send_simple"
THREEMA_ID_LENGTH = 8

EMOJI_FIRING = "\u26a0\ufe0f "  # warning sign
EMOJI_RESOLVED = "\u2705 "  # check mark button


class ThreemaNotifier(Notifier):
    """Notifier for the Threema Gateway."""

    def _configure(self, settings: Settings, decrypt: DecryptFunc) -> None:
        gateway_id = settings.string("gateway_id")
        recipient_id = settings.string("recipient_id")
        api_secret = decrypt("api_secret", settings.string("api_secret"))

        if not gateway_id:
            raise ConfigValidationError.missing_setting(
                "gateway_id", "Could not find Threema Gateway ID in settings"
            )
        if not gateway_id.startswith("*"):
            raise ConfigValidationError.invalid_setting(
                "gateway_id", "Invalid Threema Gateway ID: Must start with a *"
            )
        if len(gateway_id) != THREEMA_ID_LENGTH:
            raise ConfigValidationError.invalid_setting(
                "gateway_id", "Invalid Threema Gateway ID: Must be 8 characters long"
            )
        if not recipient_id:
            raise ConfigValidationError.missing_setting(
                "recipient_id", "Could not find Threema Recipient ID in settings"
            )
        if len(recipient_id) != THREEMA_ID_LENGTH:
            raise ConfigValidationError.invalid_setting(
                "recipient_id", "Invalid Threema Recipient ID: Must be 8 characters long"
            )
        if not api_secret:
            raise ConfigValidationError.missing_setting(
                "api_secret", "Could not find Threema API secret in settings"
            )

        self.gateway_id = gateway_id
        self.recipient_id = recipient_id
        self._api_secret = api_secret

    def build_request(
        self, ctx: NotifyContext, group: AlertGroup, tmpl: TemplateExpansion
    ) -> DispatchRequest:
        self._logger.debug("building_threema_message", sender=self.gateway_id, to=self.recipient_id)

        emoji = EMOJI_RESOLVED if group.status == AlertStatus.RESOLVED else EMOJI_FIRING
        text = "{}{}\n\n*Message:*\n{}\n*URL:* {}\n".format(
            emoji,
            tmpl.named(DEFAULT_TITLE),
            tmpl.named(DEFAULT_MESSAGE),
            self.rule_url,
        )
        fields = {
            "from": self.gateway_id,
            "to": self.recipient_id,
            "secret": self._api_secret,
            "text": text,
        }
        return DispatchRequest(
            url=THREEMA_GATEWAY_URL,
            body=form_body(fields),
            method="POST",
            headers={"Content-Type": FORM_CONTENT_TYPE},
        )


NotifierFactory.register("threema", ThreemaNotifier)
