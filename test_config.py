#!/usr/bin/env python3
"""
Tests for explicit configuration: every setting the assistant and relay
need must be present in config.yaml, and invalid values fail fast.
"""

import pytest

from bijlitrack.config import Configuration


class TestConfigurationLoading:
    """Tests for loading YAML and environment values."""

    def test_packaged_defaults_load(self, monkeypatch):
        """Test the bundled config.yaml passes every validator."""
        monkeypatch.delenv("BIJLITRACK_SUPABASE_URL", raising=False)
        config = Configuration()

        assert config.get_assistant_config()["endpoint_path"] == "/ai-assistant"
        assert config.get_http_client_config()["connect_timeout"] > 0
        assert config.get_streaming_config()["max_frame_retries"] == 3
        assert config.get_chat_config()["default_mode"] == "chat"
        assert config.get_relay_config()["gateway"]["model"]
        assert config.get_logging_config()["level"] == "INFO"

    def test_non_dict_yaml_rejected(self, tmp_path):
        """Test a YAML file that is not a mapping."""
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ValueError, match="YAML dict"):
            Configuration(str(path))

    def test_config_dict_returned(self, configuration, config_dict):
        """Test the full dictionary is available."""
        assert configuration.get_config_dict() == config_dict


class TestKeys:
    """Tests for keys read from the environment."""

    def test_keys_from_environment(self, configuration):
        assert configuration.publishable_key == "publishable-test-key"
        assert configuration.gateway_api_key == "gateway-test-key"

    def test_missing_publishable_key(self, configuration, monkeypatch):
        monkeypatch.delenv("BIJLITRACK_PUBLISHABLE_KEY")
        with pytest.raises(ValueError, match="BIJLITRACK_PUBLISHABLE_KEY"):
            _ = configuration.publishable_key

    def test_missing_gateway_key(self, configuration, monkeypatch):
        monkeypatch.delenv("AI_GATEWAY_API_KEY")
        with pytest.raises(ValueError, match="AI_GATEWAY_API_KEY is not configured"):
            _ = configuration.gateway_api_key


class TestAssistantConfig:
    """Tests for the assistant endpoint section."""

    def test_base_url_from_environment(self, configuration, monkeypatch):
        """Test the environment overrides YAML and trailing slashes go."""
        monkeypatch.setenv(
            "BIJLITRACK_SUPABASE_URL", "https://project.supabase.co/functions/v1/"
        )
        assert configuration.get_assistant_config() == {
            "base_url": "https://project.supabase.co/functions/v1",
            "endpoint_path": "/ai-assistant",
        }

    def test_missing_endpoint_path(self, config_dict, write_config):
        del config_dict["assistant"]["endpoint_path"]
        config = Configuration(write_config(config_dict))
        with pytest.raises(ValueError, match="endpoint_path"):
            config.get_assistant_config()

    def test_relative_endpoint_path(self, config_dict, write_config):
        config_dict["assistant"]["endpoint_path"] = "ai-assistant"
        config = Configuration(write_config(config_dict))
        with pytest.raises(ValueError, match="must start with '/'"):
            config.get_assistant_config()

    def test_missing_base_url(self, config_dict, write_config, monkeypatch):
        monkeypatch.delenv("BIJLITRACK_SUPABASE_URL", raising=False)
        del config_dict["assistant"]["base_url"]
        config = Configuration(write_config(config_dict))
        with pytest.raises(ValueError, match="base URL"):
            config.get_assistant_config()


class TestHttpClientConfig:
    """Tests for HTTP timeouts."""

    @pytest.mark.parametrize(
        "key", ["connect_timeout", "read_timeout", "write_timeout", "pool_timeout"]
    )
    def test_missing_timeout(self, config_dict, write_config, key):
        del config_dict["assistant"]["http_client"][key]
        config = Configuration(write_config(config_dict))
        with pytest.raises(ValueError, match=key):
            config.get_http_client_config()

    def test_non_positive_timeout(self, config_dict, write_config):
        config_dict["assistant"]["http_client"]["connect_timeout"] = 0
        config = Configuration(write_config(config_dict))
        with pytest.raises(ValueError, match="must be positive"):
            config.get_http_client_config()

    def test_null_read_timeout_allowed(self, config_dict, write_config):
        """Test a slow stream may be waited on indefinitely."""
        config_dict["assistant"]["http_client"]["read_timeout"] = None
        config = Configuration(write_config(config_dict))
        assert config.get_http_client_config()["read_timeout"] is None


class TestStreamingConfig:
    """Tests for the decoder retry bound."""

    @pytest.mark.parametrize("value", [0, -1, "3", 1.5])
    def test_invalid_retries(self, config_dict, write_config, value):
        config_dict["assistant"]["streaming"]["max_frame_retries"] = value
        config = Configuration(write_config(config_dict))
        with pytest.raises(ValueError, match="max_frame_retries"):
            config.get_streaming_config()

    def test_missing_streaming_section(self, config_dict, write_config):
        del config_dict["assistant"]["streaming"]
        config = Configuration(write_config(config_dict))
        with pytest.raises(ValueError, match="max_frame_retries"):
            config.get_streaming_config()


class TestChatConfig:
    """Tests for chat panel defaults."""

    def test_invalid_mode(self, config_dict, write_config):
        config_dict["chat"]["default_mode"] = "summarize"
        config = Configuration(write_config(config_dict))
        with pytest.raises(ValueError, match="default_mode"):
            config.get_chat_config()

    def test_invalid_language(self, config_dict, write_config):
        config_dict["chat"]["default_target_language"] = "fr"
        config = Configuration(write_config(config_dict))
        with pytest.raises(ValueError, match="default_target_language"):
            config.get_chat_config()

    def test_missing_ui_language(self, config_dict, write_config):
        del config_dict["chat"]["ui_language"]
        config = Configuration(write_config(config_dict))
        with pytest.raises(ValueError, match="ui_language"):
            config.get_chat_config()


class TestRelayConfig:
    """Tests for the relay section."""

    def test_missing_gateway_model(self, config_dict, write_config):
        del config_dict["relay"]["gateway"]["model"]
        config = Configuration(write_config(config_dict))
        with pytest.raises(ValueError, match="relay.gateway.model"):
            config.get_relay_config()

    @pytest.mark.parametrize("port", [0, 70000, "8787"])
    def test_invalid_port(self, config_dict, write_config, port):
        config_dict["relay"]["port"] = port
        config = Configuration(write_config(config_dict))
        with pytest.raises(ValueError, match="relay.port"):
            config.get_relay_config()
