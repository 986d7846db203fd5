"""Tests for configuration module."""

from pathlib import Path

import pytest

from alert_dispatch.config import (
    Config,
    LoggingConfig,
    SecretsConfig,
    SenderConfig,
    TemplateConfig,
    get_config,
    set_config,
)


class TestTemplateConfig:
    """Test TemplateConfig model."""

    def test_default_values(self):
        """Test default template config values."""
        config = TemplateConfig()

        assert config.external_url == "http://localhost:3000/"
        assert config.app_version == "8.0.0"
        assert config.app_name == "Grafana"


class TestSenderConfig:
    """Test SenderConfig model."""

    def test_default_values(self):
        """Test default sender config values."""
        config = SenderConfig()

        assert config.timeout_seconds == 30.0
        assert config.max_retries == 3
        assert config.retry_delay_seconds == 1.0
        assert config.user_agent == "Grafana"

    def test_custom_values(self):
        """Test custom sender config values."""
        config = SenderConfig(timeout_seconds=5, max_retries=1)

        assert config.timeout_seconds == 5.0
        assert config.max_retries == 1


class TestSecretsConfig:
    """Test SecretsConfig model."""

    def test_explicit_key(self, monkeypatch):
        """Test that an explicit key wins over the environment."""
        monkeypatch.setenv("ALERT_DISPATCH_SECRET_KEY", "from-env")
        assert SecretsConfig(key="explicit").resolve_key() == "explicit"

    def test_key_from_env(self, monkeypatch):
        """Test key lookup through the configured variable."""
        monkeypatch.setenv("MY_KEY", "from-env")
        assert SecretsConfig(key_env="MY_KEY").resolve_key() == "from-env"

    def test_no_key(self, monkeypatch):
        """Test that no key resolves to None."""
        monkeypatch.delenv("ALERT_DISPATCH_SECRET_KEY", raising=False)
        assert SecretsConfig().resolve_key() is None


class TestLoggingConfig:
    """Test LoggingConfig model."""

    def test_default_values(self):
        """Test default logging config values."""
        config = LoggingConfig()

        assert config.level == "INFO"
        assert config.format == "json"
        assert config.file is None


class TestConfig:
    """Test main Config class."""

    def test_default_config(self):
        """Test default config creation."""
        config = Config()

        assert isinstance(config.template, TemplateConfig)
        assert isinstance(config.sender, SenderConfig)
        assert isinstance(config.secrets, SecretsConfig)
        assert isinstance(config.logging, LoggingConfig)

    def test_env_override(self, monkeypatch):
        """Test nested values from environment variables."""
        monkeypatch.setenv("ALERT_DISPATCH_SENDER__MAX_RETRIES", "5")
        monkeypatch.setenv("ALERT_DISPATCH_TEMPLATE__EXTERNAL_URL", "https://grafana.example.com")

        config = Config()

        assert config.sender.max_retries == 5
        assert config.template.external_url == "https://grafana.example.com"

    def test_from_yaml(self, tmp_path: Path):
        """Test loading config from a YAML file."""
        path = tmp_path / "alert-dispatch.yaml"
        path.write_text(
            "template:\n"
            "  external_url: https://grafana.example.com\n"
            "sender:\n"
            "  max_retries: 1\n"
            "logging:\n"
            "  level: DEBUG\n"
        )

        config = Config.from_yaml(path)

        assert config.template.external_url == "https://grafana.example.com"
        assert config.sender.max_retries == 1
        assert config.logging.level == "DEBUG"
        assert config.sender.timeout_seconds == 30.0

    def test_env_overrides_yaml(self, tmp_path: Path, monkeypatch):
        """Test that environment variables win over file values."""
        path = tmp_path / "alert-dispatch.yaml"
        path.write_text("sender:\n  max_retries: 1\n  user_agent: from-file\n")
        monkeypatch.setenv("ALERT_DISPATCH_SENDER__MAX_RETRIES", "5")

        config = Config.load(str(path))

        assert config.sender.max_retries == 5
        assert config.sender.user_agent == "from-file"

    def test_from_yaml_missing_file(self, tmp_path: Path):
        """Test that a missing file yields defaults."""
        config = Config.from_yaml(tmp_path / "missing.yaml")
        assert config.sender.max_retries == 3

    def test_to_yaml(self, tmp_path: Path):
        """Test saving config to YAML and reading it back."""
        path = tmp_path / "nested" / "config.yaml"
        config = Config(sender=SenderConfig(max_retries=9))

        config.to_yaml(path)

        assert path.exists()
        assert Config.from_yaml(path).sender.max_retries == 9

    def test_load_explicit_path(self, tmp_path: Path):
        """Test that load honours an explicit path."""
        path = tmp_path / "config.yaml"
        path.write_text("sender:\n  user_agent: custom\n")

        assert Config.load(str(path)).sender.user_agent == "custom"

    def test_load_path_from_env(self, tmp_path: Path, monkeypatch):
        """Test that load reads the path from ALERT_DISPATCH_CONFIG."""
        path = tmp_path / "config.yaml"
        path.write_text("template:\n  app_version: 9.1.0\n")
        monkeypatch.setenv("ALERT_DISPATCH_CONFIG", str(path))

        assert Config.load().template.app_version == "9.1.0"


class TestGlobalConfig:
    """Test global config functions."""

    def test_set_and_get(self):
        """Test setting and getting the global config."""
        config = Config(template=TemplateConfig(app_version="1.2.3"))
        set_config(config)

        assert get_config() is config

    @pytest.mark.parametrize("version", ["8.0.0", "10.4.1"])
    def test_footer_follows_app_version(self, version, make_notifier):
        """Test that notifier footers read the configured version."""
        set_config(Config(template=TemplateConfig(app_version=version)))
        notifier = make_notifier("line", {"token": "t"})

        assert notifier.footer == f"Grafana v{version}"
