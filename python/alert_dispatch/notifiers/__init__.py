"""
Channel notifiers.

One Notifier subclass per channel type, each registered with the
NotifierFactory under its type tag when this package is imported:

- Chat: Slack, Microsoft Teams, Google Chat, Discord, Telegram, LINE,
  Threema, DingTalk
- Incident management: PagerDuty, OpsGenie, VictorOps, Sensu Go
- Push and streaming: Pushover, Kafka REST Proxy
- Generic: Webhook

Design Patterns:
- Template Method: Notifier.notify renders, validates and dispatches
- Factory Pattern: NotifierFactory creates notifiers from ChannelConfig
"""

from alert_dispatch.notifiers.base import (
    Notifier,
    NotifierBase,
    NotifierFactory,
    NotifyResult,
    path_join,
    rule_url,
)
from alert_dispatch.notifiers.dingding import DingDingNotifier
from alert_dispatch.notifiers.discord import DiscordNotifier
from alert_dispatch.notifiers.googlechat import GoogleChatNotifier
from alert_dispatch.notifiers.kafka import KafkaNotifier
from alert_dispatch.notifiers.line import LineNotifier
from alert_dispatch.notifiers.opsgenie import OpsgenieNotifier
from alert_dispatch.notifiers.pagerduty import PagerdutyNotifier
from alert_dispatch.notifiers.pushover import PushoverNotifier
from alert_dispatch.notifiers.sensugo import SensuGoNotifier
from alert_dispatch.notifiers.slack import SlackNotifier
from alert_dispatch.notifiers.teams import TeamsNotifier
from alert_dispatch.notifiers.telegram import TelegramNotifier
from alert_dispatch.notifiers.threema import ThreemaNotifier
from alert_dispatch.notifiers.victorops import VictoropsNotifier
from alert_dispatch.notifiers.webhook import WebhookNotifier

__all__ = [
    "DingDingNotifier",
    "DiscordNotifier",
    "GoogleChatNotifier",
    "KafkaNotifier",
    "LineNotifier",
    "Notifier",
    "NotifierBase",
    "NotifierFactory",
    "NotifyResult",
    "OpsgenieNotifier",
    "PagerdutyNotifier",
    "PushoverNotifier",
    "SensuGoNotifier",
    "SlackNotifier",
    "TeamsNotifier",
    "TelegramNotifier",
    "ThreemaNotifier",
    "VictoropsNotifier",
    "WebhookNotifier",
    "path_join",
    "rule_url",
]
