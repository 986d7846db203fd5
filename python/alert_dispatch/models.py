"""
Data models for alert records and alert groups.

An AlertGroup is the unit of delivery: the alert records that share one
grouping key, sent together as a single notification. The group also
classifies itself (aggregate status, composition, earliest activation).
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import NamedTuple, overload

ALERTNAME_LABEL = "alertname"


class AlertStatus(str, Enum):
    """Firing state of a single alert or of a whole group."""

    FIRING = "firing"
    RESOLVED = "resolved"


class GroupComposition(str, Enum):
    """Mix of member states within an alert group."""

    EMPTY = "empty"
    FIRING = "firing"
    RESOLVED = "resolved"
    MIXED = "mixed"


class Pair(NamedTuple):
    """A single label or annotation name/value pair."""

    name: str
    value: str


class Pairs(list):
    """Sorted list of pairs as exposed to templates."""

    def names(self) -> list[str]:
        return [p.name for p in self]

    def values(self) -> list[str]:
        return [p.value for p in self]


class KV(Mapping[str, str]):
    """
    Immutable string mapping used for labels and annotations.

    Iteration and ``values()`` follow the sorted-pair order: ``alertname``
    first, then the remaining names alphabetically.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, str] | Iterable[tuple[str, str]] | None = None):
        self._data: dict[str, str] = {
            str(k): str(v) for k, v in dict(data or {}).items()
        }

    def __getitem__(self, key: str) -> str:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.sorted_pairs().names())

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"KV({self._data!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, KV):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(frozenset(self._data.items()))

    def sorted_pairs(self) -> Pairs:
        """Pairs sorted by name, with ``alertname`` always first."""
        pairs = Pairs(
            Pair(name, value)
            for name, value in sorted(self._data.items())
            if name != ALERTNAME_LABEL
        )
        if ALERTNAME_LABEL in self._data:
            pairs.insert(0, Pair(ALERTNAME_LABEL, self._data[ALERTNAME_LABEL]))
        return pairs

    def names(self) -> list[str]:
        return self.sorted_pairs().names()

    def values(self) -> list[str]:  # type: ignore[override]
        return self.sorted_pairs().values()

    def remove(self, names: Iterable[str]) -> KV:
        """Return a copy without the given names."""
        drop = set(names)
        return KV({k: v for k, v in self._data.items() if k not in drop})

    def fingerprint(self) -> str:
        """Stable 16 hex digit hash of the pairs."""
        digest = hashlib.sha256()
        for name, value in sorted(self._data.items()):
            digest.update(name.encode("utf-8"))
            digest.update(b"\xff")
            digest.update(value.encode("utf-8"))
            digest.update(b"\xff")
        return digest.hexdigest()[:16]


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass(frozen=True)
class AlertRecord:
    """
    One evaluated alert instance.

    Attributes:
        labels: Identifying label set.
        annotations: Descriptive annotations.
        starts_at: When the alert started firing, if known.
        ends_at: When the alert resolved. Unset or in the future means firing.
        generator_url: Link back to the rule that produced the alert.
    """

    labels: KV = field(default_factory=KV)
    annotations: KV = field(default_factory=KV)
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    generator_url: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.labels, KV):
            object.__setattr__(self, "labels", KV(self.labels))
        if not isinstance(self.annotations, KV):
            object.__setattr__(self, "annotations", KV(self.annotations))
        # Naive times are taken as UTC.
        for name in ("starts_at", "ends_at"):
            value = getattr(self, name)
            if value is not None and value.tzinfo is None:
                object.__setattr__(self, name, value.replace(tzinfo=timezone.utc))

    def resolved_at(self, now: datetime) -> bool:
        """Whether the alert counts as resolved at ``now``."""
        return self.ends_at is not None and self.ends_at <= now

    @property
    def resolved(self) -> bool:
        return self.resolved_at(_utcnow())

    @property
    def status(self) -> AlertStatus:
        return AlertStatus.RESOLVED if self.resolved else AlertStatus.FIRING

    @property
    def name(self) -> str:
        return self.labels.get(ALERTNAME_LABEL, "")

    @property
    def fingerprint(self) -> str:
        return self.labels.fingerprint()


class AlertGroup(Sequence[AlertRecord]):
    """
    Ordered, immutable batch of alerts dispatched as one notification.

    Member order is the caller's input order and is preserved in every
    rendering. The group snapshots "now" on construction so that its status
    and its firing/resolved partitions always agree with each other.
    """

    def __init__(self, alerts: Iterable[AlertRecord] = (), now: datetime | None = None):
        self._alerts: tuple[AlertRecord, ...] = tuple(alerts)
        if now is not None and now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        self._now = now or _utcnow()

    @overload
    def __getitem__(self, index: int) -> AlertRecord: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[AlertRecord]: ...

    def __getitem__(self, index):  # type: ignore[no-untyped-def]
        return self._alerts[index]

    def __len__(self) -> int:
        return len(self._alerts)

    def __repr__(self) -> str:
        return f"AlertGroup({len(self._alerts)} alerts, status={self.status.value})"

    @property
    def now(self) -> datetime:
        return self._now

    def is_resolved(self, alert: AlertRecord) -> bool:
        return alert.resolved_at(self._now)

    def status_of(self, alert: AlertRecord) -> AlertStatus:
        return AlertStatus.RESOLVED if self.is_resolved(alert) else AlertStatus.FIRING

    def firing(self) -> list[AlertRecord]:
        return [a for a in self._alerts if not self.is_resolved(a)]

    def resolved(self) -> list[AlertRecord]:
        return [a for a in self._alerts if self.is_resolved(a)]

    @property
    def status(self) -> AlertStatus:
        """Firing if any member fires; an empty group counts as resolved."""
        if any(not self.is_resolved(a) for a in self._alerts):
            return AlertStatus.FIRING
        return AlertStatus.RESOLVED

    @property
    def composition(self) -> GroupComposition:
        if not self._alerts:
            return GroupComposition.EMPTY
        firing = len(self.firing())
        if firing == len(self._alerts):
            return GroupComposition.FIRING
        if firing == 0:
            return GroupComposition.RESOLVED
        return GroupComposition.MIXED

    def earliest_activation(self) -> datetime | None:
        """Earliest known start time among the firing members."""
        starts = [a.starts_at for a in self.firing() if a.starts_at is not None]
        return min(starts) if starts else None

    def common_labels(self) -> KV:
        return _common([a.labels for a in self._alerts])

    def common_annotations(self) -> KV:
        return _common([a.annotations for a in self._alerts])


def _common(sets: list[KV]) -> KV:
    """Pairs present with the same value in every set."""
    if not sets:
        return KV()
    common = dict(sets[0].items())
    for kv in sets[1:]:
        common = {k: v for k, v in common.items() if kv.get(k) == v}
    return KV(common)


def classify(alerts: Iterable[AlertRecord], now: datetime | None = None) -> AlertGroup:
    """Build an AlertGroup from raw records."""
    return AlertGroup(alerts, now=now)


def group_key_hash(group_key: str) -> str:
    """SHA-256 hex digest of a group key, used as a dedup/incident key."""
    return hashlib.sha256(group_key.encode("utf-8")).hexdigest()
