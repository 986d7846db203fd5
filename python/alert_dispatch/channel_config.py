"""
Channel configuration models and settings access.

A ChannelConfig is the declarative description of one notification target.
Its ``type`` tag selects the notifier class; ``settings`` holds plain values
and ``secure_settings`` holds encrypted ones that are only decrypted while a
notifier is being constructed.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, Field

from alert_dispatch.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

# (field_name, plaintext_fallback) -> decrypted value
DecryptFunc = Callable[[str, str], str]


def plaintext_decrypt(_field: str, fallback: str) -> str:
    """Decrypt function for channels that carry no secure settings."""
    return fallback


class ChannelConfig(BaseModel):
    """Declarative description of one configured notification channel."""

    uid: str = Field(default="", description="Unique channel identifier")
    name: str = Field(default="", description="Display name")
    type: str = Field(description="Channel type tag, e.g. 'line' or 'slack'")
    settings: dict[str, Any] | None = Field(
        default_factory=dict,
        description="Plain channel settings",
    )
    secure_settings: dict[str, str] = Field(
        default_factory=dict,
        description="Encrypted settings keyed by setting name",
    )
    disable_resolve_message: bool = Field(
        default=False,
        description="Suppress notifications for fully resolved groups",
    )

    model_config = {"frozen": True}

    @property
    def settings_view(self) -> Settings:
        return Settings(self.settings or {})


class Settings:
    """
    Lenient accessor over a channel's settings mapping.

    Missing keys and values of the wrong type read as the default, matching
    how settings saved by older clients behave.
    """

    def __init__(self, data: Mapping[str, Any]) -> None:
        self._data = dict(data)

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def raw(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def string(self, key: str, default: str = "") -> str:
        value = self._data.get(key)
        if isinstance(value, str):
            return value
        return default

    def boolean(self, key: str, default: bool = False) -> bool:
        value = self._data.get(key)
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower() == "true"
        return default

    def integer(self, key: str, default: int = 0) -> int:
        value = self._data.get(key)
        if isinstance(value, bool):
            return default
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                return default
        return default

    def string_list(self, key: str, separator: str = ",") -> list[str]:
        """Read a list given either as a sequence or a separated string."""
        value = self._data.get(key)
        if isinstance(value, str):
            items = value.split(separator)
        elif isinstance(value, (list, tuple)):
            items = [str(v) for v in value]
        else:
            return []
        return [item.strip() for item in items if item.strip()]


def load_channel_configs(path: str | Path) -> dict[str, ChannelConfig]:
    """
    Load channel configurations from a YAML file.

    The document holds a ``channels`` list; each entry maps onto
    ChannelConfig. Results are keyed by uid.

    Raises:
        ConfigurationError: If the file is missing, malformed, or repeats a uid.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError.missing_file(str(path))

    with path.open() as f:
        data = yaml.safe_load(f) or {}

    entries = data.get("channels", []) if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise ConfigurationError.validation_failed(
            "channels", type(entries).__name__, "must be a list"
        )

    configs: dict[str, ChannelConfig] = {}
    for index, entry in enumerate(entries):
        try:
            config = ChannelConfig(**entry)
        except (TypeError, ValueError) as e:
            raise ConfigurationError.validation_failed(
                f"channels[{index}]", entry, str(e)
            ) from e
        if config.uid in configs:
            raise ConfigurationError.validation_failed(
                f"channels[{index}].uid", config.uid, "duplicate channel uid"
            )
        configs[config.uid] = config

    logger.info("channel_configs_loaded", path=str(path), count=len(configs))
    return configs
