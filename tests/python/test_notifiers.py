"""
Tests for the notifier base class and factory.

Covers the shared notify workflow (render, check, dispatch), resolve
suppression, cancellation and the URL helpers.
"""

from __future__ import annotations

from datetime import datetime
from urllib.parse import parse_qs

import pytest

from alert_dispatch.channel_config import ChannelConfig
from alert_dispatch.exceptions import (
    ConfigValidationError,
    DispatchError,
    ErrorCode,
    TemplateError,
    UnknownChannelTypeError,
)
from alert_dispatch.gateway import DispatchGateway
from alert_dispatch.models import AlertGroup, AlertRecord
from alert_dispatch.notifiers import NotifierBase, NotifierFactory, path_join, rule_url
from alert_dispatch.notifiers.base import form_body, json_body, status_color, truncate
from conftest import FakeSender

# =============================================================================
# Helpers
# =============================================================================


class TestPathJoin:
    """Tests for URL path joining."""

    def test_collapses_scheme_slashes(self):
        assert path_join("http://localhost", "/alerting/list") == "http:/localhost/alerting/list"

    def test_trailing_slash_on_base(self):
        assert path_join("http://localhost:3000/", "/alerting/list") == (
            "http:/localhost:3000/alerting/list"
        )

    def test_empty_base(self):
        assert path_join("", "/alerting/list") == "/alerting/list"

    def test_all_empty(self):
        assert path_join("", "") == ""

    def test_rule_url(self):
        assert rule_url("https://grafana.example.com/sub") == (
            "https:/grafana.example.com/sub/alerting/list"
        )


class TestEncoding:
    """Tests for body encoding helpers."""

    def test_form_body_sorts_keys(self):
        assert form_body({"to": "b", "from": "a"}) == b"from=a&to=b"

    def test_json_body_is_compact_utf8(self):
        assert json_body({"a": "\u2705", "b": [1]}) == '{"a":"\u2705","b":[1]}'.encode()

    def test_truncate(self):
        assert truncate("abcdef", 10) == "abcdef"
        assert truncate("abcdef", 4) == "abc\u2026"

    def test_status_color(self, firing_alert, resolved_alert):
        assert status_color(AlertGroup([firing_alert]).status) == "#D63232"
        assert status_color(AlertGroup([resolved_alert]).status) == "#36a64f"


# =============================================================================
# Factory
# =============================================================================


class TestNotifierFactory:
    """Tests for notifier registration and creation."""

    def test_all_channel_types_registered(self):
        assert NotifierFactory.available_types() == [
            "dingding",
            "discord",
            "googlechat",
            "kafka",
            "line",
            "opsgenie",
            "pagerduty",
            "pushover",
            "sensugo",
            "slack",
            "teams",
            "telegram",
            "threema",
            "victorops",
            "webhook",
        ]

    def test_unknown_type(self, renderer, gateway):
        config = ChannelConfig(uid="x", name="x", type="carrier-pigeon", settings={})
        with pytest.raises(UnknownChannelTypeError) as exc_info:
            NotifierFactory.create(config, renderer, gateway)
        assert exc_info.value.error_code == ErrorCode.CHANNEL_TYPE_UNKNOWN
        assert isinstance(exc_info.value, ConfigValidationError)

    def test_register_rejects_non_notifier(self):
        with pytest.raises(TypeError):
            NotifierFactory.register("bogus", object)  # type: ignore[arg-type]

    def test_base_fields(self, make_notifier):
        notifier = make_notifier("line", {"token": "t"}, disable_resolve_message=True)
        assert notifier.base == NotifierBase(
            uid="line-uid",
            name="line_testing",
            type="line",
            disable_resolve_message=True,
        )


# =============================================================================
# Notify workflow
# =============================================================================


class TestNotify:
    """Tests for the shared notify workflow."""

    @pytest.mark.parametrize("disabled", [True, False])
    def test_should_send_resolved(self, make_notifier, disabled):
        notifier = make_notifier("line", {"token": "t"}, disable_resolve_message=disabled)
        assert notifier.should_send_resolved() is (not disabled)

    def test_result_identifies_channel(self, make_notifier, ctx, firing_alert):
        result = make_notifier("line", {"token": "t"}).notify(ctx, [firing_alert])
        assert result.notifier_name == "line_testing"
        assert result.channel_type == "line"
        assert result.channel_uid == "line-uid"

    def test_template_error_prevents_dispatch(self, make_notifier, sender, ctx, firing_alert):
        """A failing fragment means no request is sent at all."""
        notifier = make_notifier("telegram", {"bottoken": "b", "chatid": "c", "message": "{{ 1 / 0 }}"})

        result = notifier.notify(ctx, [firing_alert])

        assert result.delivered is False
        assert isinstance(result.error, TemplateError)
        assert result.error.error_code == ErrorCode.TEMPLATE_RENDER_FAILED
        assert sender.requests == []

    def test_template_syntax_error(self, make_notifier, sender, ctx, firing_alert):
        notifier = make_notifier(
            "teams", {"url": "http://teams", "message": "{{ alerts | no_such_filter }}"}
        )

        result = notifier.notify(ctx, [firing_alert])

        assert result.delivered is False
        assert isinstance(result.error, TemplateError)
        assert sender.requests == []

    def test_dispatch_error_is_returned(self, renderer, ctx, firing_alert):
        failing = FakeSender(error=DispatchError.bad_status("https://notify-api.line.me", 500))
        config = ChannelConfig(uid="u", name="n", type="line", settings={"token": "t"})
        notifier = NotifierFactory.create(config, renderer, DispatchGateway(failing))

        result = notifier.notify(ctx, [firing_alert])

        assert result.delivered is False
        assert isinstance(result.error, DispatchError)
        assert result.error.error_code == ErrorCode.DISPATCH_BAD_STATUS
        assert len(failing.requests) == 1

    def test_cancelled_context(self, make_notifier, sender, ctx, firing_alert):
        """Nothing is sent once the context is cancelled."""
        ctx.cancel()

        result = make_notifier("line", {"token": "t"}).notify(ctx, [firing_alert])

        assert result.delivered is False
        assert result.error.error_code == ErrorCode.DISPATCH_CANCELLED
        assert sender.requests == []

    def test_naive_end_time_is_delivered_as_resolved(self, make_notifier, sender, ctx):
        alert = AlertRecord(labels={"alertname": "a"}, ends_at=datetime(2020, 1, 1))

        result = make_notifier("line", {"token": "t"}).notify(ctx, [alert])

        assert result.is_success
        assert "RESOLVED" in parse_qs(sender.last.text)["message"][0]

    def test_accepts_alert_group(self, make_notifier, sender, ctx, firing_alert):
        result = make_notifier("line", {"token": "t"}).notify(ctx, AlertGroup([firing_alert]))
        assert result.is_success
        assert len(sender.requests) == 1

    def test_notify_does_not_mutate_alerts(self, make_notifier, ctx, firing_alert):
        alerts = [firing_alert]
        make_notifier("line", {"token": "t"}).notify(ctx, alerts)
        assert alerts == [firing_alert]
        assert firing_alert.labels == {"alertname": "alert1", "lbl1": "val1"}
