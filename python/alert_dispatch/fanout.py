"""
Receiver fan-out: deliver one alert group to every notifier of a receiver.

The receiver classifies the group once, applies the resolve-suppression
gate, then calls each notifier (in parallel when enabled). Notifier
failures are collected as results; one channel failing never prevents
delivery to the others.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog

from alert_dispatch.exceptions import ConfigValidationError, DispatchEngineError
from alert_dispatch.models import AlertGroup, AlertRecord, AlertStatus
from alert_dispatch.notifiers import Notifier, NotifierFactory, NotifyResult
from alert_dispatch.secrets import decrypter_for

if TYPE_CHECKING:
    from alert_dispatch.channel_config import ChannelConfig
    from alert_dispatch.context import NotifyContext
    from alert_dispatch.gateway import DispatchGateway
    from alert_dispatch.secrets import FernetDecrypter
    from alert_dispatch.template import TemplateRenderer

logger = structlog.get_logger(__name__)


@dataclass
class ReceiverStats:
    """Statistics for a receiver."""

    groups_dispatched: int = 0
    resolved_suppressed: int = 0
    successful_deliveries: int = 0
    failed_deliveries: int = 0


class Receiver:
    """
    Named set of notifiers that receive the same alert groups.

    Args:
        name: Receiver name, exposed to templates as ``receiver``.
        notifiers: Notifiers to deliver to.
        parallel: Deliver to all notifiers concurrently.
        max_workers: Thread pool size for parallel delivery.
    """

    def __init__(
        self,
        name: str,
        notifiers: Iterable[Notifier] = (),
        parallel: bool = True,
        max_workers: int = 8,
    ) -> None:
        self.name = name
        self._notifiers: list[Notifier] = list(notifiers)
        self._parallel = parallel
        self._max_workers = max(1, max_workers)
        self._logger = logger.bind(receiver=name)
        self._stats = ReceiverStats()
        self._stats_lock = threading.Lock()

    @property
    def notifiers(self) -> list[Notifier]:
        return list(self._notifiers)

    def add_notifier(self, notifier: Notifier) -> None:
        self._notifiers.append(notifier)
        self._logger.debug("notifier_added", notifier=notifier.name, channel_type=notifier.base.type)

    def dispatch(
        self, ctx: NotifyContext, alerts: AlertGroup | Iterable[AlertRecord]
    ) -> list[NotifyResult]:
        """
        Deliver one alert group to the receiver's notifiers.

        A context without a receiver name takes this receiver's name.

        Returns:
            One result per notifier that was called, in notifier order.
        """
        if not ctx.receiver:
            ctx = replace(ctx, receiver=self.name)
        group = alerts if isinstance(alerts, AlertGroup) else AlertGroup(alerts)
        with self._stats_lock:
            self._stats.groups_dispatched += 1

        self._logger.debug(
            "alert_group_classified",
            group_key=ctx.group_key,
            status=group.status.value,
            composition=group.composition.value,
            alerts=len(group),
        )

        targets = self._notifiers
        if group.status == AlertStatus.RESOLVED:
            targets = [n for n in self._notifiers if n.should_send_resolved()]
            suppressed = len(self._notifiers) - len(targets)
            if suppressed:
                with self._stats_lock:
                    self._stats.resolved_suppressed += suppressed
                self._logger.info(
                    "resolved_notification_suppressed",
                    group_key=ctx.group_key,
                    suppressed=suppressed,
                )

        if not targets:
            return []

        if self._parallel and len(targets) > 1:
            with ThreadPoolExecutor(
                max_workers=min(self._max_workers, len(targets)),
                thread_name_prefix=f"receiver-{self.name}",
            ) as pool:
                results = list(pool.map(lambda n: self._deliver(n, ctx, group), targets))
        else:
            results = [self._deliver(n, ctx, group) for n in targets]

        return results

    def _deliver(self, notifier: Notifier, ctx: NotifyContext, group: AlertGroup) -> NotifyResult:
        try:
            result = notifier.notify(ctx, group)
        except Exception as e:
            self._logger.error(
                "delivery_error",
                notifier=notifier.name,
                error=str(e),
                exc_info=True,
            )
            result = NotifyResult(
                delivered=False,
                error=DispatchEngineError(message=str(e), cause=e),
                notifier_name=notifier.name,
                channel_type=notifier.base.type,
                channel_uid=notifier.uid,
            )

        with self._stats_lock:
            if result.is_success:
                self._stats.successful_deliveries += 1
            else:
                self._stats.failed_deliveries += 1
        return result

    def get_stats(self) -> dict[str, int]:
        """Get delivery statistics."""
        return {
            "groups_dispatched": self._stats.groups_dispatched,
            "resolved_suppressed": self._stats.resolved_suppressed,
            "successful_deliveries": self._stats.successful_deliveries,
            "failed_deliveries": self._stats.failed_deliveries,
        }


def build_notifiers(
    configs: Mapping[str, ChannelConfig] | Iterable[ChannelConfig],
    renderer: TemplateRenderer,
    gateway: DispatchGateway,
    cipher: FernetDecrypter | None = None,
) -> tuple[list[Notifier], dict[str, ConfigValidationError]]:
    """
    Build notifiers for many channel configurations.

    A channel that fails validation is left out and its error recorded
    under its uid; the other channels are still built.

    Returns:
        The built notifiers and the validation errors keyed by uid.
    """
    items = configs.values() if isinstance(configs, Mapping) else configs

    notifiers: list[Notifier] = []
    errors: dict[str, ConfigValidationError] = {}
    for config in items:
        try:
            notifier = NotifierFactory.create(
                config, renderer, gateway, decrypt=decrypter_for(config, cipher)
            )
        except ConfigValidationError as e:
            errors[config.uid] = e
            continue
        notifiers.append(notifier)

    logger.info("notifiers_built", built=len(notifiers), rejected=len(errors))
    return notifiers, errors


def canned_test_alert(now: datetime | None = None) -> AlertRecord:
    """The canned firing alert sent when a user tests a channel."""
    return AlertRecord(
        labels={"alertname": "TestAlert", "instance": "Grafana"},
        annotations={"summary": "Notification test"},
        starts_at=now or datetime.now(tz=timezone.utc),
    )

