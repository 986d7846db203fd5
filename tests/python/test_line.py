"""Tests for the LINE Notify notifier."""

from __future__ import annotations

import pytest

from alert_dispatch.exceptions import ConfigValidationError, ErrorCode
from alert_dispatch.models import AlertRecord
from alert_dispatch.notifiers.line import LINE_NOTIFY_URL, LineNotifier

LINE_HEADERS = {
    "Authorization": "Bearer sometoken",
    "Content-Type": "application/x-www-form-urlencoded;charset=UTF-8",
}


class TestLineNotifier:
    """Wire format of LINE notifications."""

    def test_one_alert(self, make_notifier, sender, ctx, firing_alert):
        """A single firing alert is sent as one form-encoded message."""
        notifier = make_notifier("line", {"token": "sometoken"})
        assert isinstance(notifier, LineNotifier)

        result = notifier.notify(ctx, [firing_alert])

        assert result.delivered is True
        assert result.error is None
        assert sender.last.url == LINE_NOTIFY_URL
        assert sender.last.method == "POST"
        assert dict(sender.last.headers) == LINE_HEADERS
        assert sender.last.text == (
            "message=%5BFIRING%3A1%5D++%28val1%29%0Ahttp%3A%2Flocalhost%2Falerting%2Flist%0A"
            "%0A%0A%2A%2AFiring%2A%2A%0ALabels%3A%0A+-+alertname+%3D+alert1%0A+-+lbl1+%3D+val1"
            "%0AAnnotations%3A%0A+-+ann1+%3D+annv1%0ASource%3A+%0A%0A%0A%0A%0A"
        )

    def test_multiple_alerts(self, make_notifier, sender, ctx):
        """Alerts are listed in input order under a shared title."""
        alerts = [
            AlertRecord(
                labels={"alertname": "alert1", "lbl1": "val1"},
                annotations={"ann1": "annv1"},
            ),
            AlertRecord(
                labels={"alertname": "alert1", "lbl1": "val2"},
                annotations={"ann1": "annv2"},
            ),
        ]
        notifier = make_notifier("line", {"token": "sometoken"})

        result = notifier.notify(ctx, alerts)

        assert result.is_success
        assert dict(sender.last.headers) == LINE_HEADERS
        assert sender.last.text == (
            "message=%5BFIRING%3A2%5D++%0Ahttp%3A%2Flocalhost%2Falerting%2Flist%0A%0A%0A"
            "%2A%2AFiring%2A%2A%0ALabels%3A%0A+-+alertname+%3D+alert1%0A+-+lbl1+%3D+val1"
            "%0AAnnotations%3A%0A+-+ann1+%3D+annv1%0ASource%3A+%0ALabels%3A%0A+-+alertname"
            "+%3D+alert1%0A+-+lbl1+%3D+val2%0AAnnotations%3A%0A+-+ann1+%3D+annv2%0ASource%3A"
            "+%0A%0A%0A%0A%0A"
        )

    def test_missing_token(self, make_notifier, sender):
        """Empty settings are rejected before anything is sent."""
        with pytest.raises(ConfigValidationError) as exc_info:
            make_notifier("line", {})

        assert exc_info.value.reason == "Could not find token in settings"
        assert exc_info.value.error_code == ErrorCode.CHANNEL_SETTING_MISSING
        assert sender.requests == []

    def test_token_from_secure_settings(self, make_notifier, sender, ctx, firing_alert):
        """The token is resolved through the decrypt function."""
        calls = []

        def decrypt(field, fallback):
            calls.append((field, fallback))
            return "decrypted-token"

        notifier = make_notifier(
            "line", {}, secure_settings={"token": "ciphertext"}, decrypt=decrypt
        )
        notifier.notify(ctx, [firing_alert])

        assert calls == [("token", "")]
        assert sender.last.headers["Authorization"] == "Bearer decrypted-token"

    def test_rendering_is_idempotent(self, make_notifier, sender, ctx, firing_alert):
        """Two calls with the same input produce identical bodies."""
        notifier = make_notifier("line", {"token": "sometoken"})

        notifier.notify(ctx, [firing_alert])
        notifier.notify(ctx, [firing_alert])

        assert len(sender.requests) == 2
        assert sender.requests[0].body == sender.requests[1].body
