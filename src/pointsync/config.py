"""Configuration management for pointsync."""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

# Default config filename
CONFIG_FILENAME = "config.json"

DEFAULT_POLL_INTERVAL = 5.0

# Values shipped in the example config; treated as "not configured"
PLACEHOLDER_API_KEY = "your-api-key-here"
PLACEHOLDER_PROJECT_ID = "your-project-id"


@dataclass(frozen=True)
class RemoteSettings:
    """Connection settings for the remote document store."""

    api_key: str
    project_id: str
    poll_interval: float = DEFAULT_POLL_INTERVAL


def get_config_dir() -> Path:
    """Get the config directory path (XDG compliant)."""
    xdg_config_home = os.getenv("XDG_CONFIG_HOME", str(Path.home() / ".config"))
    return Path(xdg_config_home) / "pointsync"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_config_dir() / CONFIG_FILENAME


def find_config_file() -> Path | None:
    """Find the config file in standard locations.

    Searches for config in the following order:
    1. config.json in current directory
    2. XDG config: ~/.config/pointsync/config.json
    """
    config_paths = [
        Path(CONFIG_FILENAME),
        get_config_path(),
    ]

    for path in config_paths:
        if path.exists():
            return path

    return None


def load_json_config(config_path: Path) -> dict[str, Any]:
    """Load configuration from a JSON file."""
    with open(config_path) as f:
        return json.load(f)  # type: ignore[no-any-return]


def save_json_config(config: dict[str, Any], config_path: Path | None = None) -> Path:
    """Save configuration to a JSON file.

    Args:
        config: Configuration dictionary to save
        config_path: Path to save to (defaults to XDG config location)

    Returns:
        Path where config was saved
    """
    if config_path is None:
        config_path = get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        json.dump(config, f, indent=2)
        f.write("\n")

    return config_path


def load_config(config_path: Path | None = None) -> dict[str, Any] | None:
    """Load configuration from config file.

    Args:
        config_path: Explicit path to config.json file

    Returns:
        Loaded config dict or None if not found
    """
    if config_path:
        return load_json_config(config_path)

    config_file = find_config_file()
    if config_file:
        return load_json_config(config_file)

    return None


def get_cache_dir(config: dict[str, Any] | None = None) -> Path:
    """Get the directory holding the local transaction cache.

    Uses ``cache_dir`` from config if set, otherwise XDG data home.
    """
    if config and config.get("cache_dir"):
        return Path(config["cache_dir"]).expanduser()

    xdg_data_home = os.getenv("XDG_DATA_HOME", str(Path.home() / ".local" / "share"))
    return Path(xdg_data_home) / "pointsync"


def get_session_path() -> Path:
    """Get the path where the signed-in session is persisted."""
    return get_config_dir() / "session.json"


def is_remote_configured(api_key: str | None, project_id: str | None) -> bool:
    """Check that both remote credentials are set and not placeholders."""
    return bool(
        api_key
        and api_key != PLACEHOLDER_API_KEY
        and project_id
        and project_id != PLACEHOLDER_PROJECT_ID
    )


def get_remote_settings(
    config: dict[str, Any] | None = None,
    api_key: str | None = None,
    project_id: str | None = None,
) -> RemoteSettings | None:
    """Get remote document store settings.

    Args:
        config: Loaded JSON config
        api_key: Optional API key to use instead of config
        project_id: Optional project id to use instead of config

    Returns:
        RemoteSettings, or None when running in offline mode
    """
    remote = (config or {}).get("remote") or {}

    api_key = api_key or remote.get("api_key")
    project_id = project_id or remote.get("project_id")
    if not is_remote_configured(api_key, project_id):
        return None

    poll_interval = float(remote.get("poll_interval") or DEFAULT_POLL_INTERVAL)
    return RemoteSettings(
        api_key=api_key,  # type: ignore[arg-type]
        project_id=project_id,  # type: ignore[arg-type]
        poll_interval=poll_interval,
    )


def create_default_config() -> dict[str, Any]:
    """Create a default empty configuration."""
    return {
        "remote": {
            "api_key": None,
            "project_id": None,
            "poll_interval": DEFAULT_POLL_INTERVAL,
        },
        "cache_dir": None,
    }
