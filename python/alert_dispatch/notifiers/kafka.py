"""Kafka REST Proxy notifier."""

from __future__ import annotations

from typing import TYPE_CHECKING

from alert_dispatch.exceptions import ConfigValidationError
from alert_dispatch.gateway import DispatchRequest
from alert_dispatch.models import group_key_hash
from alert_dispatch.notifiers.base import Notifier, NotifierFactory, json_body
from alert_dispatch.template import DEFAULT_MESSAGE, DEFAULT_TITLE

if TYPE_CHECKING:
    from alert_dispatch.channel_config import DecryptFunc, Settings
    from alert_dispatch.context import NotifyContext
    from alert_dispatch.models import AlertGroup
    from alert_dispatch.template import TemplateExpansion

KAFKA_CONTENT_TYPE = "application/vnd.kafka.json.v2+json"
KAFKA_ACCEPT = "application/vnd.kafka.v2+json"


class KafkaNotifier(Notifier):
    """Produces one JSON record per alert group to a Kafka topic."""

    def _configure(self, settings: Settings, decrypt: DecryptFunc) -> None:
        endpoint = settings.string("kafkaRestProxy")
        if not endpoint:
            raise ConfigValidationError.missing_setting(
                "kafkaRestProxy", "could not find kafka rest proxy endpoint property in settings"
            )
        topic = settings.string("kafkaTopic")
        if not topic:
            raise ConfigValidationError.missing_setting(
                "kafkaTopic", "could not find kafka topic property in settings"
            )
        self.endpoint = endpoint.rstrip("/")
        self.topic = topic

    @property
    def topic_url(self) -> str:
        return f"{self.endpoint}/topics/{self.topic}"

    def build_request(
        self, ctx: NotifyContext, group: AlertGroup, tmpl: TemplateExpansion
    ) -> DispatchRequest:
        value = {
            "alert_state": group.status.value,
            "client": "Grafana",
            "client_url": self.rule_url,
            "description": tmpl.named(DEFAULT_TITLE),
            "details": tmpl.named(DEFAULT_MESSAGE),
            "incident_key": group_key_hash(ctx.group_key),
        }
        return DispatchRequest(
            url=self.topic_url,
            body=json_body({"records": [{"value": value}]}),
            method="POST",
            headers={"Content-Type": KAFKA_CONTENT_TYPE, "Accept": KAFKA_ACCEPT},
        )


NotifierFactory.register("kafka", KafkaNotifier)
