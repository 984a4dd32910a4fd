"""Configuration management for the BijliTrack assistant."""

import os
from typing import Any

import yaml
from dotenv import load_dotenv

BASE_URL_ENV = "BIJLITRACK_SUPABASE_URL"
PUBLISHABLE_KEY_ENV = "BIJLITRACK_PUBLISHABLE_KEY"
GATEWAY_KEY_ENV = "AI_GATEWAY_API_KEY"

VALID_MODES = ["chat", "translate"]
VALID_LANGUAGES = ["en", "ur"]


class Configuration:
    """Manages configuration and environment variables for the assistant."""

    def __init__(self, config_path: str | None = None) -> None:
        """Initialize configuration from YAML and environment variables."""
        self.load_env()  # Load .env for keys
        self._config_path = config_path or os.path.join(
            os.path.dirname(__file__), "config.yaml"
        )
        self._config = self._load_yaml_config()

    @staticmethod
    def load_env() -> None:
        """Load environment variables from .env file."""
        load_dotenv()

    def _load_yaml_config(self) -> dict[str, Any]:
        """Load configuration from YAML file."""
        with open(self._config_path, encoding="utf-8") as file:
            config = yaml.safe_load(file)
            if not isinstance(config, dict):
                raise ValueError(
                    f"Config file must be YAML dict, got {type(config)}"
                )
            return config

    @property
    def publishable_key(self) -> str:
        """Get the published client key sent as the bearer token.

        Raises:
            ValueError: If the key is not found in environment variables.
        """
        key = os.getenv(PUBLISHABLE_KEY_ENV)
        if not key:
            raise ValueError(
                f"Publishable key '{PUBLISHABLE_KEY_ENV}' not found in "
                "environment variables"
            )
        return key

    @property
    def gateway_api_key(self) -> str:
        """Get the LLM gateway key used by the relay.

        Raises:
            ValueError: If the key is not configured.
        """
        key = os.getenv(GATEWAY_KEY_ENV)
        if not key:
            raise ValueError(f"{GATEWAY_KEY_ENV} is not configured")
        return key

    def get_config_dict(self) -> dict[str, Any]:
        """Get the full configuration dictionary."""
        return self._config

    def get_assistant_config(self) -> dict[str, Any]:
        """Get assistant endpoint configuration.

        The base URL comes from the environment when set, else from YAML.

        Raises:
            ValueError: If the base URL or endpoint path is missing.
        """
        assistant_config = self._config.get("assistant", {})

        if "endpoint_path" not in assistant_config:
            raise ValueError(
                "assistant.endpoint_path must be explicitly configured in config.yaml"
            )

        base_url = os.getenv(BASE_URL_ENV) or assistant_config.get("base_url")
        if not base_url:
            raise ValueError(
                f"Assistant base URL must be set via '{BASE_URL_ENV}' or "
                "assistant.base_url in config.yaml"
            )

        endpoint_path = assistant_config["endpoint_path"]
        if not endpoint_path.startswith("/"):
            raise ValueError("assistant.endpoint_path must start with '/'")

        return {
            "base_url": base_url.rstrip("/"),
            "endpoint_path": endpoint_path,
        }

    def get_http_client_config(self) -> dict[str, Any]:
        """Get HTTP client timeouts for the assistant endpoint.

        Returns:
            HTTP client configuration dictionary with validated values.

        Raises:
            ValueError: If required HTTP client parameters are missing or invalid.
        """
        http_config = self._config.get("assistant", {}).get("http_client", {})

        required_keys = [
            "connect_timeout", "read_timeout", "write_timeout", "pool_timeout"
        ]
        for key in required_keys:
            if key not in http_config:
                raise ValueError(
                    f"assistant.http_client.{key} must be explicitly configured "
                    "in config.yaml"
                )

        for key in ["connect_timeout", "write_timeout", "pool_timeout"]:
            if http_config[key] <= 0:
                raise ValueError(f"assistant.http_client.{key} must be positive")

        # A null read timeout waits on a slow stream indefinitely
        read_timeout = http_config["read_timeout"]
        if read_timeout is not None and read_timeout <= 0:
            raise ValueError(
                "assistant.http_client.read_timeout must be positive or null"
            )

        return http_config

    def get_streaming_config(self) -> dict[str, Any]:
        """Get streaming decode configuration.

        Raises:
            ValueError: If max_frame_retries is missing or invalid.
        """
        streaming_config = self._config.get("assistant", {}).get("streaming", {})

        if "max_frame_retries" not in streaming_config:
            raise ValueError(
                "assistant.streaming.max_frame_retries must be explicitly "
                "configured in config.yaml"
            )

        retries = streaming_config["max_frame_retries"]
        if not isinstance(retries, int) or retries < 1:
            raise ValueError("max_frame_retries must be a positive integer")

        return streaming_config

    def get_chat_config(self) -> dict[str, Any]:
        """Get chat panel defaults.

        Raises:
            ValueError: If a default is missing or not a supported value.
        """
        chat_config = self._config.get("chat", {})

        required_keys = ["default_mode", "default_target_language", "ui_language"]
        for key in required_keys:
            if key not in chat_config:
                raise ValueError(
                    f"chat.{key} must be explicitly configured in config.yaml"
                )

        if chat_config["default_mode"] not in VALID_MODES:
            raise ValueError(f"chat.default_mode must be one of: {VALID_MODES}")
        for key in ["default_target_language", "ui_language"]:
            if chat_config[key] not in VALID_LANGUAGES:
                raise ValueError(f"chat.{key} must be one of: {VALID_LANGUAGES}")

        return chat_config

    def get_relay_config(self) -> dict[str, Any]:
        """Get relay server and upstream gateway configuration.

        Raises:
            ValueError: If required relay parameters are missing or invalid.
        """
        relay_config = self._config.get("relay", {})

        for key in ["host", "port", "gateway"]:
            if key not in relay_config:
                raise ValueError(
                    f"relay.{key} must be explicitly configured in config.yaml"
                )

        gateway_config = relay_config["gateway"]
        for key in ["base_url", "model", "timeout"]:
            if key not in gateway_config:
                raise ValueError(
                    f"relay.gateway.{key} must be explicitly configured "
                    "in config.yaml"
                )

        port = relay_config["port"]
        if not isinstance(port, int) or not 0 < port < 65536:
            raise ValueError("relay.port must be a valid TCP port")

        return relay_config

    def get_logging_config(self) -> dict[str, Any]:
        """Get logging configuration from YAML.

        Returns:
            Logging configuration dictionary.
        """
        return self._config.get("logging", {})
