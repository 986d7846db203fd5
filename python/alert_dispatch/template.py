"""
Template rendering for notification messages.

Templates are Jinja2 sources executed in a sandbox, since their text is
authored by users. Rendering for one notify call goes through a
TemplateExpansion, which records every failing fragment instead of raising
so that a message can be assembled from several fragments and the first
error reported once at the end.

Built-in templates:
- ``default.title``: ``[FIRING:2] <group values> (<extra common values>)``
- ``default.message``: firing and resolved alerts as label/annotation lists
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog
from jinja2 import DictLoader, Undefined
from jinja2.sandbox import SandboxedEnvironment

from alert_dispatch.exceptions import TemplateError
from alert_dispatch.models import KV, AlertGroup, AlertRecord, AlertStatus

if TYPE_CHECKING:
    from alert_dispatch.context import NotifyContext

logger = structlog.get_logger(__name__)

DEFAULT_TITLE = "default.title"
DEFAULT_MESSAGE = "default.message"

# Inline sources referencing the built-ins, used as per-channel defaults.
DEFAULT_TITLE_TEMPLATE = '{% include "default.title" %}'
DEFAULT_MESSAGE_TEMPLATE = '{% include "default.message" %}'

# Whitespace is significant here: the rendered text is part of each
# channel's wire format, so the sources spell out every newline.
DEFAULT_TEMPLATES: dict[str, str] = {
    "__text_alert_list": (
        "{% macro text_alert_list(alerts) %}"
        "{% for alert in alerts %}"
        "Labels:\n"
        "{% for pair in alert.labels.sorted_pairs() %}"
        " - {{ pair.name }} = {{ pair.value }}\n"
        "{% endfor %}"
        "Annotations:\n"
        "{% for pair in alert.annotations.sorted_pairs() %}"
        " - {{ pair.name }} = {{ pair.value }}\n"
        "{% endfor %}"
        "Source: {{ alert.generator_url }}\n"
        "{% endfor %}"
        "{% endmacro %}"
    ),
    "__subject": (
        "[{{ status | upper }}"
        '{% if status == "firing" %}:{{ alerts.firing() | length }}{% endif %}] '
        '{{ group_labels.values() | join(" ") }} '
        "{% if common_labels | length > group_labels | length %}"
        '({{ common_labels.remove(group_labels.names()).values() | join(" ") }})'
        "{% endif %}"
    ),
    DEFAULT_TITLE: '{% include "__subject" %}',
    DEFAULT_MESSAGE: (
        '{% import "__text_alert_list" as lists %}'
        "{% if alerts.firing() %}"
        "\n**Firing**\n"
        "{{ lists.text_alert_list(alerts.firing()) }}"
        "\n"
        "{% endif %}"
        "{% if alerts.resolved() %}"
        "\n**Resolved**\n"
        "{{ lists.text_alert_list(alerts.resolved()) }}"
        "\n"
        "{% endif %}"
        "\n\n\n"
    ),
}


@dataclass(frozen=True)
class TemplateAlert:
    """Read-only view of one alert as templates see it."""

    status: str
    labels: KV
    annotations: KV
    starts_at: datetime | None
    ends_at: datetime | None
    generator_url: str
    fingerprint: str

    @classmethod
    def from_record(cls, record: AlertRecord, status: AlertStatus) -> TemplateAlert:
        return cls(
            status=status.value,
            labels=record.labels,
            annotations=record.annotations,
            starts_at=record.starts_at,
            ends_at=record.ends_at,
            generator_url=record.generator_url,
            fingerprint=record.fingerprint,
        )


class Alerts(list):
    """Alert list with firing/resolved partitions for templates."""

    def firing(self) -> Alerts:
        return Alerts(a for a in self if a.status == AlertStatus.FIRING.value)

    def resolved(self) -> Alerts:
        return Alerts(a for a in self if a.status == AlertStatus.RESOLVED.value)


@dataclass(frozen=True)
class TemplateData:
    """Data context a template is executed against."""

    receiver: str
    status: str
    alerts: Alerts
    group_labels: KV
    common_labels: KV
    common_annotations: KV
    external_url: str
    group_key: str

    @classmethod
    def build(cls, ctx: NotifyContext, group: AlertGroup, external_url: str) -> TemplateData:
        return cls(
            receiver=ctx.receiver,
            status=group.status.value,
            alerts=Alerts(TemplateAlert.from_record(a, group.status_of(a)) for a in group),
            group_labels=ctx.group_labels,
            common_labels=group.common_labels(),
            common_annotations=group.common_annotations(),
            external_url=external_url,
            group_key=ctx.group_key,
        )

    def as_context(self) -> dict[str, Any]:
        return {
            "receiver": self.receiver,
            "status": self.status,
            "alerts": self.alerts,
            "group_labels": self.group_labels,
            "common_labels": self.common_labels,
            "common_annotations": self.common_annotations,
            "external_url": self.external_url,
            "group_key": self.group_key,
        }


@dataclass
class TemplateExpansion:
    """
    Call-scoped renderer for the fragments of one message.

    Failed fragments render as an empty string and are recorded in
    ``errors``; callers check ``error`` once every fragment is rendered.
    """

    renderer: TemplateRenderer
    data: TemplateData
    errors: list[tuple[str, Exception]] = field(default_factory=list)

    def text(self, source: str) -> str:
        """Render an inline template source."""
        if not source:
            return ""
        try:
            template = self.renderer.environment.from_string(source)
            return template.render(self.data.as_context())
        except Exception as exc:  # noqa: BLE001 - user-authored template code
            return self._record(source, exc)

    def named(self, name: str) -> str:
        """Render a registered template by name."""
        try:
            template = self.renderer.environment.get_template(name)
            return template.render(self.data.as_context())
        except Exception as exc:  # noqa: BLE001 - user-authored template code
            return self._record(name, exc)

    def _record(self, fragment: str, exc: Exception) -> str:
        self.errors.append((fragment, exc))
        logger.debug("template_fragment_failed", fragment=fragment, error=str(exc))
        return ""

    @property
    def failed(self) -> bool:
        return bool(self.errors)

    @property
    def error(self) -> TemplateError | None:
        """The first recorded failure, as a TemplateError."""
        if not self.errors:
            return None
        fragment, exc = self.errors[0]
        return TemplateError.render_failed(fragment, str(exc), cause=exc)


class TemplateRenderer:
    """
    Shared, thread-safe template registry and Jinja2 environment.

    Args:
        external_url: Base URL exposed to templates and used for links.
        templates: Extra named templates; may override the built-ins.
    """

    def __init__(
        self,
        external_url: str = "",
        templates: Mapping[str, str] | None = None,
    ) -> None:
        self.external_url = external_url
        sources = dict(DEFAULT_TEMPLATES)
        sources.update(templates or {})
        self.environment = SandboxedEnvironment(
            loader=DictLoader(sources),
            undefined=Undefined,
            autoescape=False,
            keep_trailing_newline=True,
        )

    @classmethod
    def from_config(cls, templates: Mapping[str, str] | None = None) -> TemplateRenderer:
        from alert_dispatch.config import get_config

        return cls(external_url=get_config().template.external_url, templates=templates)

    def template_names(self) -> list[str]:
        return sorted(self.environment.list_templates())

    def expand(self, ctx: NotifyContext, group: AlertGroup) -> TemplateExpansion:
        """Start rendering the fragments of one message."""
        return TemplateExpansion(self, TemplateData.build(ctx, group, self.external_url))
