"""Pytest configuration and shared fixtures for the dispatch engine tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from alert_dispatch.channel_config import ChannelConfig
from alert_dispatch.config import Config, set_config
from alert_dispatch.context import NotifyContext
from alert_dispatch.gateway import DispatchGateway, DispatchRequest
from alert_dispatch.models import AlertRecord
from alert_dispatch.notifiers import Notifier, NotifierFactory
from alert_dispatch.template import TemplateRenderer

FIXED_NOW = datetime(2021, 6, 1, 12, 30, tzinfo=timezone.utc)


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")


class FakeSender:
    """WebhookSender that records requests instead of sending them."""

    def __init__(self, error: Exception | None = None) -> None:
        self.requests: list[DispatchRequest] = []
        self.timeouts: list[float | None] = []
        self.error = error

    def send(self, request: DispatchRequest, timeout: float | None = None) -> None:
        self.requests.append(request)
        self.timeouts.append(timeout)
        if self.error is not None:
            raise self.error

    @property
    def last(self) -> DispatchRequest:
        assert self.requests, "no request was sent"
        return self.requests[-1]


@pytest.fixture(autouse=True)
def default_config() -> None:
    """Isolate tests from any config file or environment on the host."""
    set_config(Config())


@pytest.fixture
def sender() -> FakeSender:
    return FakeSender()


@pytest.fixture
def gateway(sender: FakeSender) -> DispatchGateway:
    return DispatchGateway(sender)


@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer(external_url="http://localhost")


@pytest.fixture
def ctx() -> NotifyContext:
    """Context as computed for a group formed by ``alertname`` only."""
    return NotifyContext(group_key="alertname", group_labels={"alertname": ""})


@pytest.fixture
def firing_alert() -> AlertRecord:
    return AlertRecord(
        labels={"alertname": "alert1", "lbl1": "val1"},
        annotations={"ann1": "annv1"},
    )


@pytest.fixture
def resolved_alert() -> AlertRecord:
    return AlertRecord(
        labels={"alertname": "alert1", "lbl1": "val1"},
        annotations={"ann1": "annv1"},
        starts_at=datetime.now(tz=timezone.utc) - timedelta(hours=1),
        ends_at=datetime.now(tz=timezone.utc) - timedelta(minutes=5),
    )


@pytest.fixture
def make_notifier(
    renderer: TemplateRenderer, gateway: DispatchGateway
) -> Callable[..., Notifier]:
    """Build a notifier of ``channel_type`` with the given settings."""

    def factory(
        channel_type: str,
        settings: dict[str, Any] | None,
        secure_settings: dict[str, str] | None = None,
        disable_resolve_message: bool = False,
        decrypt: Callable[[str, str], str] | None = None,
    ) -> Notifier:
        config = ChannelConfig(
            uid=f"{channel_type}-uid",
            name=f"{channel_type}_testing",
            type=channel_type,
            settings=settings,
            secure_settings=secure_settings or {},
            disable_resolve_message=disable_resolve_message,
        )
        kwargs: dict[str, Any] = {"clock": lambda: FIXED_NOW}
        if decrypt is not None:
            kwargs["decrypt"] = decrypt
        return NotifierFactory.create(config, renderer, gateway, **kwargs)

    return factory
