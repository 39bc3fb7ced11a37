from dataclasses import dataclass
from typing import Any, Dict
import json

DEFAULT_CONFIG_PATH = "config.json"


class ConfigError(ValueError):
    """Raised when the proxy configuration cannot be loaded."""


@dataclass(frozen=True)
class ProxyConfig:
    """Immutable configuration for the substitution proxy."""

    target_server: str
    substitution_dir: str = "substitution"
    port: int = 8080
    host: str = "127.0.0.1"
    timeout: float = 30.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProxyConfig':
        """
        Build a configuration from the parsed JSON object.

        Args:
            data: Mapping using the config file key names

        Returns:
            ProxyConfig instance
        """
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a JSON object")

        target_server = data.get("targetServer")
        if not isinstance(target_server, str) or not target_server:
            raise ConfigError("'targetServer' is required and must be a non-empty string")

        substitution_dir = data.get("substitutionDir", cls.substitution_dir)
        host = data.get("host", cls.host)
        for key, value in (("substitutionDir", substitution_dir), ("host", host)):
            if not isinstance(value, str):
                raise ConfigError(f"'{key}' must be a string")

        port = data.get("port", cls.port)
        # bool is an int subclass
        if isinstance(port, bool) or not isinstance(port, int) or not 0 <= port <= 65535:
            raise ConfigError("'port' must be an integer between 0 and 65535")

        timeout = data.get("timeout", cls.timeout)
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ConfigError("'timeout' must be a positive number")

        return cls(
            target_server=target_server,
            substitution_dir=substitution_dir,
            port=port,
            host=host,
            timeout=float(timeout)
        )

    @classmethod
    def from_file(cls, config_path: str = DEFAULT_CONFIG_PATH) -> 'ProxyConfig':
        """Load configuration from a JSON file."""
        try:
            with open(config_path, 'r') as f:
                file_config = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigError(f"Error loading config file: {e}") from e

        return cls.from_dict(file_config)
