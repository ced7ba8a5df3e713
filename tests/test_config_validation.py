"""Tests for configuration validation with Pydantic."""

import pytest
import yaml
from pydantic import ValidationError

from courier.domain.config import AppConfig, ClientConfig, LoggingConfig, RetryConfig
from courier.domain.config.client import BASE_URL_V3
from courier.infrastructure.config.config_manager import ConfigManager, ConfigurationError


@pytest.fixture(autouse=True)
def _isolated(monkeypatch, tmp_path):
    """Run each test from an empty directory with no COURIER_* variables"""
    for name in ConfigManager.ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def _write_config(path, data):
    path.write_text(yaml.dump(data), encoding="utf-8")
    return path


class TestRetryConfigValidation:
    """Tests for RetryConfig validation."""

    def test_defaults(self):
        config = RetryConfig()
        assert config.strategy == "exponential"
        assert config.max_attempts == 3
        assert config.min_delay == 1.0
        assert config.max_delay == 30.0

    def test_zero_attempts_allowed(self):
        """Test max_attempts of zero disables retrying"""
        assert RetryConfig(max_attempts=0).max_attempts == 0

    def test_max_attempts_negative(self):
        with pytest.raises(ValidationError, match="max_attempts"):
            RetryConfig(max_attempts=-1)

    def test_max_attempts_too_high(self):
        with pytest.raises(ValidationError, match="max_attempts"):
            RetryConfig(max_attempts=101)

    def test_invalid_strategy(self):
        with pytest.raises(ValidationError, match="strategy"):
            RetryConfig(strategy="fibonacci")

    def test_negative_delay(self):
        with pytest.raises(ValidationError, match="min_delay"):
            RetryConfig(min_delay=-1.0)

    def test_min_above_max(self):
        """Test min_delay may not exceed max_delay for jittered strategies"""
        with pytest.raises(ValidationError, match="must not exceed max_delay"):
            RetryConfig(strategy="linear", min_delay=5.0, max_delay=1.0)

    def test_min_above_max_ignored_for_constant(self):
        config = RetryConfig(strategy="constant", min_delay=5.0, max_delay=1.0)
        assert config.strategy == "constant"


class TestClientConfigValidation:
    """Tests for ClientConfig validation."""

    def test_defaults(self):
        config = ClientConfig()
        assert config.base_url == BASE_URL_V3
        assert config.timeout == 60.0

    def test_secret_is_masked(self):
        config = ClientConfig(public_key="pk", secret="hunter2")
        assert config.secret.get_secret_value() == "hunter2"
        assert "hunter2" not in repr(config)

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError, match="timeout"):
            ClientConfig(timeout=0)


class TestAppConfigValidation:
    """Tests for AppConfig validation."""

    def test_valid_app_config(self):
        config = AppConfig()
        assert config.retry.max_attempts == 3
        assert config.logging.level == "WARNING"

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError, match="extra"):
            AppConfig(unknown_field="value")

    def test_nested_validation(self):
        with pytest.raises(ValidationError, match="level"):
            AppConfig(logging={"level": "LOUD"})

    def test_assignment_validated(self):
        config = AppConfig()
        with pytest.raises(ValidationError):
            config.logging = "DEBUG"


class TestConfigManager:
    """Tests for ConfigManager loading and validation."""

    def test_default_config_is_valid(self):
        manager = ConfigManager()
        assert manager.config_path is None
        assert isinstance(manager.config, AppConfig)
        assert isinstance(manager.get_client_config(), ClientConfig)
        assert isinstance(manager.get_retry_config(), RetryConfig)
        assert isinstance(manager.get_logging_config(), LoggingConfig)

    def test_load_valid_config_from_file(self, tmp_path):
        config_path = _write_config(
            tmp_path / "custom.yml",
            {
                "client": {"public_key": "pk", "secret": "s", "base_url": "http://rpc.test/"},
                "retry": {"strategy": "linear", "max_attempts": 5},
            },
        )

        manager = ConfigManager(config_path=str(config_path))

        assert manager.config.client.base_url == "http://rpc.test/"
        assert manager.config.client.secret.get_secret_value() == "s"
        assert manager.config.retry.strategy == "linear"
        # untouched keys keep their defaults
        assert manager.config.retry.max_delay == 30.0
        assert manager.config.client.timeout == 60.0

    def test_config_file_found_in_parent_directory(self, tmp_path, monkeypatch):
        _write_config(tmp_path / ".courier.yml", {"logging": {"level": "DEBUG"}})
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        manager = ConfigManager()

        assert manager.config_path.resolve() == (tmp_path / ".courier.yml").resolve()
        assert manager.config.logging.level == "DEBUG"

    def test_load_invalid_config_raises_error(self, tmp_path):
        config_path = _write_config(tmp_path / "bad.yml", {"retry": {"max_attempts": -3}})

        with pytest.raises(ConfigurationError, match="retry.max_attempts"):
            ConfigManager(config_path=config_path)

    def test_unknown_section_raises_error(self, tmp_path):
        config_path = _write_config(tmp_path / "bad.yml", {"proxy": {"host": "localhost"}})

        with pytest.raises(ConfigurationError, match="proxy"):
            ConfigManager(config_path=config_path)

    def test_unparseable_yaml(self, tmp_path):
        config_path = tmp_path / "broken.yml"
        config_path.write_text("client: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Failed to load config"):
            ConfigManager(config_path=config_path)

    def test_non_mapping_document(self, tmp_path):
        config_path = tmp_path / "list.yml"
        config_path.write_text("- one\n- two\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            ConfigManager(config_path=config_path)

    def test_empty_file_uses_defaults(self, tmp_path):
        config_path = tmp_path / "empty.yml"
        config_path.write_text("", encoding="utf-8")

        assert ConfigManager(config_path=config_path).config == AppConfig()

    def test_env_overrides_work(self, monkeypatch, tmp_path):
        config_path = _write_config(tmp_path / "custom.yml", {"client": {"base_url": "http://from-file/"}})
        monkeypatch.setenv("COURIER_BASE_URL", "http://from-env/")
        monkeypatch.setenv("COURIER_SECRET", "env-secret")
        monkeypatch.setenv("COURIER_TIMEOUT", "2.5")
        monkeypatch.setenv("COURIER_RETRY_MAX_ATTEMPTS", "7")
        monkeypatch.setenv("COURIER_LOG_LEVEL", "ERROR")

        config = ConfigManager(config_path=config_path).config

        assert config.client.base_url == "http://from-env/"
        assert config.client.secret.get_secret_value() == "env-secret"
        assert config.client.timeout == 2.5
        assert config.retry.max_attempts == 7
        assert config.logging.level == "ERROR"

    def test_invalid_env_override(self, monkeypatch):
        monkeypatch.setenv("COURIER_TIMEOUT", "soon")

        with pytest.raises(ConfigurationError, match="client.timeout"):
            ConfigManager()

