"""
Configuration management for the dispatch engine.

Supports YAML config files with environment variable overrides.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TemplateConfig(BaseModel):
    """Configuration for the template renderer."""

    external_url: str = Field(
        default="http://localhost:3000/",
        description="Externally reachable base URL used in links",
    )
    app_version: str = Field(default="8.0.0", description="Version shown in message footers")
    app_name: str = Field(default="Grafana", description="Product name shown in messages")


class SenderConfig(BaseModel):
    """Configuration for the HTTP webhook sender."""

    timeout_seconds: float = Field(default=30.0, description="Per-request timeout")
    max_retries: int = Field(default=3, description="Maximum delivery attempts")
    retry_delay_seconds: float = Field(default=1.0, description="Base backoff delay")
    user_agent: str = Field(default="Grafana", description="User-Agent header value")


class SecretsConfig(BaseModel):
    """Configuration for secure settings decryption."""

    key: str | None = Field(default=None, description="Fernet key (urlsafe base64)")
    key_env: str = Field(
        default="ALERT_DISPATCH_SECRET_KEY",
        description="Environment variable consulted when key is unset",
    )

    def resolve_key(self) -> str | None:
        """Return the configured key, falling back to the environment."""
        return self.key or os.getenv(self.key_env)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format (json, plain)")
    file: str | None = Field(default=None, description="Log file path (None for stdout)")


class Config(BaseSettings):
    """Main configuration for the dispatch engine."""

    model_config = SettingsConfigDict(
        env_prefix="ALERT_DISPATCH_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    template: TemplateConfig = Field(default_factory=TemplateConfig)
    sender: SenderConfig = Field(default_factory=SenderConfig)
    secrets: SecretsConfig = Field(default_factory=SecretsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Config:
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            return cls()

        with path.open() as f:
            data = yaml.safe_load(f) or {}

        # Init kwargs beat the environment, so re-apply what it set on top.
        env_overrides = cls().model_dump(exclude_unset=True)
        return cls(**_deep_merge(data, env_overrides))

    @classmethod
    def load(cls, config_path: str | None = None) -> Config:
        """
        Load configuration with precedence:
        1. Environment variables (highest)
        2. Config file
        3. Defaults (lowest)
        """
        if config_path is None:
            config_path = os.getenv("ALERT_DISPATCH_CONFIG")

        if config_path is None:
            for candidate in [
                "alert-dispatch.yaml",
                "alert-dispatch.yml",
                "config/alert-dispatch.yaml",
            ]:
                if Path(candidate).exists():
                    config_path = candidate
                    break

        if config_path and Path(config_path).exists():
            return cls.from_yaml(config_path)

        return cls()

    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with path.open("w") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False)


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# Global config instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
