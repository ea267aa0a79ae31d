"""Configuration for snapshot sync.

Stored as JSON at ``~/.snapsync/config.json``::

    {
      "enabled": true,
      "backend": "dropbox",
      "access_token": "${DROPBOX_TOKEN}",
      "remote_path": "/snapsync.json",
      "sync_interval": 300,
      "conflict_policy": "prompt"
    }

String values support ``${VAR}`` and ``${VAR:-default}`` expansion from the
environment when read, so tokens can stay out of the file.
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

__all__ = [
    "SyncConfig",
    "expand_env_vars",
    "BACKENDS",
    "CONFLICT_POLICIES",
]

BACKENDS = ("dropbox", "directory")
CONFLICT_POLICIES = ("prompt", "local", "remote", "defer")

# Pattern to match ${VAR} or ${VAR:-default} syntax
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")

DEFAULT_BASE_DIR = Path.home() / ".snapsync"


def expand_env_vars(value: str) -> str:
    """Expand environment variables in a string.

    Supports:
    - ${VAR} - replaced with env var value, empty string if not set
    - ${VAR:-default} - replaced with env var value, or default if not set
    """

    def replacer(match: re.Match) -> str:
        var_name = match.group(1)
        default = match.group(2)
        env_value = os.environ.get(var_name)
        if env_value is not None:
            return env_value
        return default if default is not None else ""

    return ENV_VAR_PATTERN.sub(replacer, value)


class SyncConfig:
    """Persisted sync settings."""

    DEFAULT_CONFIG_PATH = DEFAULT_BASE_DIR / "config.json"

    DEFAULTS: dict[str, Any] = {
        "enabled": False,
        "backend": "dropbox",
        "access_token": None,
        "remote_dir": None,
        "remote_path": "/snapsync.json",
        "sync_interval": 300,
        "conflict_policy": "prompt",
        "data_file": None,
        "state_file": None,
        "log_file": None,
    }

    def __init__(self, config_path: Path | None = None):
        """Load configuration.

        Args:
            config_path: Config file (defaults to DEFAULT_CONFIG_PATH)
        """
        self.config_path = Path(config_path or self.DEFAULT_CONFIG_PATH)
        self._data: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        if not self.config_path.exists():
            return {}

        try:
            with open(self.config_path, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Failed to load sync config {self.config_path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.error(f"Sync config {self.config_path} is not a JSON object")
            return {}
        return data

    def save(self) -> None:
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w") as f:
            json.dump(self._data, f, indent=2)
        logger.debug(f"Saved sync config to {self.config_path}")

    def get(self, key: str) -> Any:
        value = self._data.get(key, self.DEFAULTS.get(key))
        if isinstance(value, str):
            return expand_env_vars(value)
        return value

    def set(self, key: str, value: Any) -> None:
        if key not in self.DEFAULTS:
            raise KeyError(f"Unknown config key: {key}")
        self._data[key] = value

    def setup(
        self,
        backend: str,
        access_token: str | None = None,
        remote_dir: str | None = None,
        remote_path: str | None = None,
        enable: bool = True,
    ) -> None:
        """Configure the remote store and save.

        Raises:
            ValueError: If the backend is unknown
        """
        if backend not in BACKENDS:
            raise ValueError(f"Invalid backend: {backend}")

        self._data["backend"] = backend
        if access_token is not None:
            self._data["access_token"] = access_token
        if remote_dir is not None:
            self._data["remote_dir"] = remote_dir
        if remote_path is not None:
            self._data["remote_path"] = remote_path
        self._data["enabled"] = enable
        self.save()

    def set_enabled(self, enabled: bool) -> None:
        self._data["enabled"] = enabled
        self.save()

    @property
    def backend(self) -> str:
        return self.get("backend")

    @property
    def access_token(self) -> str | None:
        return self.get("access_token") or None

    @property
    def remote_dir(self) -> Path | None:
        remote_dir = self.get("remote_dir")
        return Path(remote_dir).expanduser() if remote_dir else None

    @property
    def remote_path(self) -> str:
        return self.get("remote_path")

    @property
    def sync_interval(self) -> int:
        try:
            return int(self.get("sync_interval"))
        except (TypeError, ValueError):
            return self.DEFAULTS["sync_interval"]

    @property
    def conflict_policy(self) -> str:
        return self.get("conflict_policy")

    @property
    def base_dir(self) -> Path:
        return self.config_path.parent

    @property
    def data_file(self) -> Path:
        return self._path_setting("data_file", "data.json")

    @property
    def state_file(self) -> Path:
        return self._path_setting("state_file", "state.json")

    @property
    def log_file(self) -> Path:
        return self._path_setting("log_file", "sync-log.jsonl")

    def _path_setting(self, key: str, default_name: str) -> Path:
        value = self.get(key)
        return Path(value).expanduser() if value else self.base_dir / default_name

    @property
    def is_configured(self) -> bool:
        """Check whether a remote store has been set up."""
        if self.backend == "dropbox":
            return bool(self.access_token)
        if self.backend == "directory":
            return self.remote_dir is not None
        return False

    @property
    def is_enabled(self) -> bool:
        return bool(self.get("enabled"))

    def is_sync_enabled(self) -> bool:
        """Capability gate: enabled and the remote store is usable."""
        return self.is_enabled and self.is_configured

    def validate(self) -> tuple[bool, list[str]]:
        """Validate settings.

        Returns:
            Tuple of (is_valid, errors)
        """
        errors = []

        if self.backend not in BACKENDS:
            errors.append(f"backend must be one of {', '.join(BACKENDS)}")
        elif self.backend == "dropbox" and not self.access_token:
            errors.append("access_token is required for the dropbox backend")
        elif self.backend == "directory" and self.remote_dir is None:
            errors.append("remote_dir is required for the directory backend")

        if not self.remote_path or not self.remote_path.startswith("/"):
            errors.append("remote_path must start with '/'")

        if self.conflict_policy not in CONFLICT_POLICIES:
            errors.append(
                f"conflict_policy must be one of {', '.join(CONFLICT_POLICIES)}"
            )

        if self.sync_interval <= 0:
            errors.append("sync_interval must be positive")

        return len(errors) == 0, errors
