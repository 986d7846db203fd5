"""
Alert Dispatch - notification dispatch engine for grouped alerts

This package turns a group of alert records into channel-specific
notifications:
- Channel configuration validation and secure setting decryption
- Alert group classification (firing/resolved, earliest activation)
- Sandboxed Jinja2 templates for titles and messages
- One notifier per channel type, built through a factory
- A dispatch gateway over an injected HTTP sender
"""

from alert_dispatch.channel_config import ChannelConfig, load_channel_configs
from alert_dispatch.context import NotifyContext
from alert_dispatch.exceptions import (
    ConfigurationError,
    ConfigValidationError,
    DispatchEngineError,
    DispatchError,
    ErrorCode,
    TemplateError,
    UnknownChannelTypeError,
)
from alert_dispatch.fanout import Receiver, build_notifiers, canned_test_alert
from alert_dispatch.gateway import (
    DispatchGateway,
    DispatchRequest,
    UrllibWebhookSender,
    WebhookSender,
)
from alert_dispatch.models import AlertGroup, AlertRecord, AlertStatus, classify
from alert_dispatch.notifiers import Notifier, NotifierFactory, NotifyResult
from alert_dispatch.secrets import FernetDecrypter, decrypter_for
from alert_dispatch.template import TemplateRenderer

__version__ = "0.1.0"
__all__ = [
    "AlertGroup",
    "AlertRecord",
    "AlertStatus",
    "ChannelConfig",
    "ConfigValidationError",
    "ConfigurationError",
    "DispatchEngineError",
    "DispatchError",
    "DispatchGateway",
    "DispatchRequest",
    "ErrorCode",
    "FernetDecrypter",
    "Notifier",
    "NotifierFactory",
    "NotifyContext",
    "NotifyResult",
    "Receiver",
    "TemplateError",
    "TemplateRenderer",
    "UnknownChannelTypeError",
    "UrllibWebhookSender",
    "WebhookSender",
    "build_notifiers",
    "canned_test_alert",
    "classify",
    "decrypter_for",
    "load_channel_configs",
]
