"""Configuration management for pyvsync.

Settings are read from environment variables first and then from an
optional JSON file at ``~/.config/pyvsync/config.json`` (the location can
be changed with ``PYVSYNC_CONFIG``).
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from .exceptions import VsyncConfigError
from .utils import DEFAULT_MAX_COMMAND_LENGTH

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("1", "true", "yes", "on")


class Config:
    """Lazily loaded pyvsync configuration."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_path: Explicit config file (default: from PYVSYNC_CONFIG or
                ~/.config/pyvsync/config.json)
        """
        self._config_path = config_path
        self._values: Optional[dict[str, Any]] = None

    def get_config_path(self) -> Path:
        """Return the path of the JSON config file."""
        if self._config_path is not None:
            return self._config_path
        env_path = os.environ.get("PYVSYNC_CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        return Path.home() / ".config" / "pyvsync" / "config.json"

    def _load(self) -> dict[str, Any]:
        if self._values is None:
            path = self.get_config_path()
            values: dict[str, Any] = {}
            if path.exists():
                try:
                    with open(path, encoding="utf-8") as f:
                        values = json.load(f)
                except (OSError, json.JSONDecodeError) as e:
                    raise VsyncConfigError(f"Unable to read config {path}: {e}") from e
                if not isinstance(values, dict):
                    raise VsyncConfigError(f"Config {path} must contain a JSON object")
                logger.debug(f"Loaded config from {path}")
            self._values = values
        return self._values

    def reload(self) -> None:
        """Forget cached values so the next access re-reads the file."""
        self._values = None

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a value from the config file."""
        return self._load().get(key, default)

    @property
    def ssh_config_path(self) -> str:
        """OpenSSH client config consulted when connecting."""
        return os.environ.get("PYVSYNC_SSH_CONFIG") or self.get(
            "ssh_config_path", "~/.ssh/config"
        )

    @property
    def strict_host_keys(self) -> bool:
        """Reject unknown host keys instead of accepting them."""
        env_value = os.environ.get("PYVSYNC_STRICT_HOST_KEYS")
        if env_value is not None:
            return env_value.strip().lower() in _TRUE_VALUES
        return bool(self.get("strict_host_keys", False))

    @property
    def max_command_length(self) -> int:
        """Upper bound for a batched remote checksum command line."""
        value = os.environ.get("PYVSYNC_MAX_COMMAND_LENGTH") or self.get(
            "max_command_length", DEFAULT_MAX_COMMAND_LENGTH
        )
        try:
            length = int(value)
        except (TypeError, ValueError) as e:
            raise VsyncConfigError(f"Invalid max_command_length: {value!r}") from e
        if length <= 0:
            raise VsyncConfigError(f"max_command_length must be positive: {length}")
        return length

    @property
    def default_ignores(self) -> list[str]:
        """Ignore rules added to every sync."""
        rules = self.get("default_ignores", [])
        if not isinstance(rules, list):
            raise VsyncConfigError("default_ignores must be a list of rules")
        return [str(r) for r in rules]


# Global config instance
config = Config()
