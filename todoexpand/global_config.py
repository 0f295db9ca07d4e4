"""Global configuration management for todo-expand.

Handles user-level files stored in the platform config directory
(`$XDG_CONFIG_HOME/todo-expand`, `~/.config/todo-expand`, or `%APPDATA%`):
- config.yaml (or config.json): Default settings for every project
- credentials: API keys for the completion service
"""

import os
import sys
from pathlib import Path
from typing import Dict, Optional

APP_DIR_NAME = "todo-expand"
GLOBAL_CONFIG_NAMES = ("config.yaml", "config.yml", "config.json")


class GlobalConfigError(Exception):
    """Raised when there's an error with global configuration."""
    pass


def get_global_config_dir() -> Path:
    """Get the global todo-expand configuration directory.

    Respects XDG_CONFIG_HOME, then APPDATA on Windows, then ~/.config.

    Returns:
        Path to the todo-expand config directory.
    """
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_DIR_NAME

    if sys.platform == "win32":
        app_data = os.environ.get("APPDATA")
        if app_data:
            return Path(app_data) / APP_DIR_NAME
        return Path.home() / "AppData" / "Roaming" / APP_DIR_NAME

    return Path.home() / ".config" / APP_DIR_NAME


def get_config_file_path() -> Path:
    """Get path to the global config file.

    Returns:
        The first existing of config.yaml, config.yml, config.json,
        or config.yaml when none exists.
    """
    config_dir = get_global_config_dir()
    for name in GLOBAL_CONFIG_NAMES:
        candidate = config_dir / name
        if candidate.exists():
            return candidate
    return config_dir / GLOBAL_CONFIG_NAMES[0]


def get_credentials_file_path() -> Path:
    """Get path to credentials file."""
    return get_global_config_dir() / "credentials"


def load_credentials() -> Dict[str, str]:
    """Load API keys from the global credentials file.

    Returns:
        Dictionary mapping environment variable names to API keys.
    """
    credentials_file = get_credentials_file_path()

    if not credentials_file.exists():
        return {}

    credentials = {}

    try:
        with open(credentials_file, "r") as f:
            for line in f:
                line = line.strip()
                # Skip empty lines and comments
                if not line or line.startswith("#"):
                    continue

                # Parse KEY=value format
                if "=" in line:
                    key, value = line.split("=", 1)
                    credentials[key.strip()] = value.strip()

        return credentials
    except OSError as e:
        raise GlobalConfigError(f"Failed to load credentials from {credentials_file}: {e}")


def get_credential(env_var_name: str) -> Optional[str]:
    """Get an API key from the credentials file.

    Args:
        env_var_name: Environment variable name (e.g., "OPENAI_API_KEY").

    Returns:
        The API key if found, None otherwise.
    """
    return load_credentials().get(env_var_name)
