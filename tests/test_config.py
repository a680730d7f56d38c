"""
Tests for configuration loading and client settings.
"""

import pytest

from ecocash.client import EcocashClient
from ecocash.config.loader import Config, load_config
from ecocash.config.resolver import has_unresolved_variable, resolve_config
from ecocash.config.settings import ClientSettings
from ecocash.core.retry import AGGRESSIVE_RETRY_POLICY, DEFAULT_RETRY_POLICY, NO_RETRY_POLICY
from ecocash.environment import Environment
from ecocash.exceptions import ConfigurationError

BASE_CONFIG = """
api_key: ${ECOCASH_TEST_API_KEY}
environment: sandbox
client_name: Corner Shop
features:
  analytics: false
retry:
  policy: aggressive
  max_attempts: 4
circuit_breaker:
  failure_threshold: 3
offline_queue:
  interval: 10
logging:
  file: logs/ecocash-{env}.log
"""


@pytest.fixture
def project(tmp_path, monkeypatch):
    monkeypatch.setenv("ECOCASH_TEST_API_KEY", "key-from-environment-123")
    (tmp_path / "ecocash.yaml").write_text(BASE_CONFIG)
    return tmp_path


class TestResolver:
    """Tests for variable substitution."""

    def test_env_var_substitution(self, monkeypatch):
        monkeypatch.setenv("SHOP_KEY", "abc")
        assert resolve_config({"key": "${SHOP_KEY}", "nested": ["x-${SHOP_KEY}"]}) == {
            "key": "abc",
            "nested": ["x-abc"],
        }

    def test_unset_variable_left_as_is(self, monkeypatch):
        monkeypatch.delenv("MISSING_VAR", raising=False)
        resolved = resolve_config({"key": "${MISSING_VAR}"})
        assert resolved["key"] == "${MISSING_VAR}"
        assert has_unresolved_variable(resolved["key"])

    def test_env_placeholder(self):
        assert resolve_config({"file": "logs/{env}.log"}, env="live") == {"file": "logs/live.log"}

    def test_non_strings_untouched(self):
        assert resolve_config({"retries": 3, "enabled": True}) == {"retries": 3, "enabled": True}


class TestConfig:
    """Tests for the Config container."""

    def test_dot_notation(self):
        config = Config({"retry": {"policy": "none"}})
        assert config.get("retry.policy") == "none"
        assert config.get("retry.missing", "fallback") == "fallback"
        assert config["retry.policy"] == "none"
        assert isinstance(config["retry"], Config)
        assert "retry.policy" in config
        assert "retry.max_attempts" not in config

    def test_missing_key(self):
        with pytest.raises(KeyError, match="not found"):
            Config({})["nope"]

    def test_section(self):
        config = Config({"features": {"analytics": False}, "retry": "oops"})
        assert config.section("features") == {"analytics": False}
        assert config.section("retry") == {}
        assert config.section("absent") == {}

    def test_validate_rejects_non_mapping_sections(self):
        with pytest.raises(ValueError, match="'retry' section must be a mapping"):
            Config({"retry": [1, 2]}).validate()


class TestLoadConfig:
    """Tests for load_config."""

    def test_loads_and_resolves(self, project):
        config = load_config(project)
        assert config.get("api_key") == "key-from-environment-123"
        assert config.get("logging.file") == "logs/ecocash-sandbox.log"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Configuration file not found"):
            load_config(tmp_path)

    def test_env_overlay(self, project):
        (project / "ecocash.live.yaml").write_text("environment: live\nretry:\n  policy: none\n")
        config = load_config(project, env="live")

        assert config.get("environment") == "live"
        assert config.get("retry.policy") == "none"
        assert config.get("retry.max_attempts") == 4
        assert config.get("logging.file") == "logs/ecocash-live.log"

    def test_missing_overlay_ignored(self, project):
        assert load_config(project, env="staging").get("client_name") == "Corner Shop"

    def test_invalid_yaml(self, tmp_path):
        (tmp_path / "ecocash.yaml").write_text("api_key: [unclosed\n")
        with pytest.raises(ValueError, match="Invalid YAML in .*ecocash.yaml at line"):
            load_config(tmp_path)

    def test_top_level_must_be_mapping(self, tmp_path):
        (tmp_path / "ecocash.yaml").write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="must contain a mapping"):
            load_config(tmp_path)

    def test_empty_file(self, tmp_path):
        (tmp_path / "ecocash.yaml").write_text("")
        assert load_config(tmp_path).data == {}


class TestClientSettings:
    """Tests for ClientSettings.from_config."""

    def test_from_config(self, project):
        settings = ClientSettings.from_config(load_config(project))

        assert settings.api_key == "key-from-environment-123"
        assert settings.bearer_token is None
        assert settings.environment == Environment.SANDBOX
        assert settings.client_name == "Corner Shop"
        assert settings.enable_analytics is False
        assert settings.enable_retries is True
        assert settings.retry_policy.max_attempts == 4
        assert settings.retry_policy.backoff_multiplier == AGGRESSIVE_RETRY_POLICY.backoff_multiplier
        assert settings.circuit_breaker.failure_threshold == 3
        assert settings.circuit_breaker.open_duration == 60.0
        assert settings.offline_queue.interval == 10

    def test_defaults(self):
        settings = ClientSettings.from_config(Config({"api_key": "plain-key"}))
        assert settings.retry_policy is DEFAULT_RETRY_POLICY
        assert settings.request_timeout == 30.0

    def test_no_retry_preset(self):
        settings = ClientSettings.from_config(Config({"api_key": "k", "retry": {"policy": "none"}}))
        assert settings.retry_policy is NO_RETRY_POLICY

    def test_missing_api_key(self):
        with pytest.raises(ConfigurationError, match="api_key is not set"):
            ClientSettings.from_config(Config({}))

    def test_unresolved_api_key(self, monkeypatch):
        monkeypatch.delenv("ECOCASH_TEST_API_KEY", raising=False)
        with pytest.raises(ConfigurationError, match="api_key is not set"):
            ClientSettings.from_config(Config({"api_key": "${ECOCASH_TEST_API_KEY}"}))

    def test_unresolved_bearer_token_dropped(self):
        settings = ClientSettings.from_config(Config({"api_key": "k", "bearer_token": "${UNSET_TOKEN}"}))
        assert settings.bearer_token is None

    def test_unknown_environment(self):
        with pytest.raises(ConfigurationError, match="Unknown environment 'staging'"):
            ClientSettings.from_config(Config({"api_key": "k", "environment": "staging"}))

    def test_unknown_retry_preset(self):
        with pytest.raises(ConfigurationError, match="unknown retry policy 'turbo'"):
            ClientSettings.from_config(Config({"api_key": "k", "retry": {"policy": "turbo"}}))

    def test_invalid_retry_override(self):
        with pytest.raises(ConfigurationError, match="max_attempts must be >= 1"):
            ClientSettings.from_config(Config({"api_key": "k", "retry": {"max_attempts": 0}}))

    def test_unknown_section_key(self):
        with pytest.raises(ConfigurationError, match="Invalid client configuration"):
            ClientSettings.from_config(Config({"api_key": "k", "circuit_breaker": {"threshold": 1}}))


class TestClientFromConfig:
    """Tests for EcocashClient.from_config."""

    def test_builds_client(self, project):
        client = EcocashClient.from_config(project)

        assert client.api_key == "key-from-environment-123"
        assert client.analytics is None
        assert client.circuit_breaker.failure_threshold == 3
        assert client.offline_queue.interval == 10
        assert client.retry_executor.policy.max_attempts == 4

    def test_overrides_win(self, project):
        client = EcocashClient.from_config(project, client_name="Override")
        assert client.client_name == "Override"
