"""
Per-dispatch call context.

Carries the grouping information the caller computed for an alert group
and a cancellation signal that governs the dispatch call.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field, replace
from typing import Any

from alert_dispatch.models import KV


@dataclass(frozen=True)
class NotifyContext:
    """
    Immutable call context passed to every ``notify`` call.

    Attributes:
        group_key: Stable key identifying the alert group.
        group_labels: Labels the group was formed by.
        receiver: Name of the receiver the notifiers belong to.
        deadline: Monotonic clock deadline, or None for no deadline.
        cancel_event: Set to cancel any dispatch that has not started.
    """

    group_key: str = ""
    group_labels: KV = field(default_factory=KV)
    receiver: str = ""
    deadline: float | None = None
    cancel_event: threading.Event = field(default_factory=threading.Event, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.group_labels, KV):
            object.__setattr__(self, "group_labels", KV(self.group_labels))

    def with_timeout(self, seconds: float) -> NotifyContext:
        """Derive a context that expires ``seconds`` from now; shares cancellation."""
        deadline = time.monotonic() + seconds
        if self.deadline is not None:
            deadline = min(deadline, self.deadline)
        return replace(self, deadline=deadline)

    def cancel(self) -> None:
        self.cancel_event.set()

    def done_reason(self) -> str | None:
        """Why the context is done, or None while it is still live."""
        if self.cancel_event.is_set():
            return "context cancelled"
        if self.deadline is not None and time.monotonic() >= self.deadline:
            return "context deadline exceeded"
        return None

    @property
    def is_done(self) -> bool:
        return self.done_reason() is not None

    def remaining(self) -> float | None:
        """Seconds until the deadline, or None without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def log_fields(self) -> dict[str, Any]:
        return {"group_key": self.group_key, "receiver": self.receiver}
