"""File locations for awsbreeze state, logs and configuration."""

import os
import sys
from pathlib import Path

APP_DIR_NAME = "awsbreeze"
STATE_FILE_NAME = "seen.json"
LEGACY_STATE_FILE_NAME = ".awsbreeze.json"
LOG_FILE_NAME = "awsbreeze.log"


def user_cache_dir() -> Path:
    """Return the platform's per-user cache directory.

    Linux and other Unix: $XDG_CACHE_HOME (or ~/.cache)
    macOS: ~/Library/Caches
    Windows: %LOCALAPPDATA%

    Raises:
        RuntimeError: If the directory cannot be determined
    """
    if sys.platform == "win32":
        local_app_data = os.environ.get("LOCALAPPDATA")
        if not local_app_data:
            raise RuntimeError("%LOCALAPPDATA% is not defined")
        return Path(local_app_data)

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Caches"

    xdg_cache_home = os.environ.get("XDG_CACHE_HOME", "")
    # XDG says relative paths must be ignored
    if xdg_cache_home and os.path.isabs(xdg_cache_home):
        return Path(xdg_cache_home)
    return Path.home() / ".cache"


def app_cache_dir(create: bool = False) -> Path:
    """Return <cache>/awsbreeze, optionally creating it."""
    cache_dir = user_cache_dir() / APP_DIR_NAME
    if create:
        cache_dir.mkdir(parents=True, exist_ok=True)
    return cache_dir


def state_file_path() -> Path:
    """Path of the persisted seen-state JSON file."""
    return app_cache_dir() / STATE_FILE_NAME


def legacy_state_file_path() -> Path:
    """Path of the pre-cache-dir state file (~/.awsbreeze.json)."""
    return Path.home() / LEGACY_STATE_FILE_NAME


def log_file_path() -> Path:
    """Path of the application log file."""
    return app_cache_dir() / LOG_FILE_NAME


def config_dir() -> Path:
    """Return $XDG_CONFIG_HOME/awsbreeze (or ~/.config/awsbreeze)."""
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config"))
    return Path(xdg_config_home) / APP_DIR_NAME


def config_file_path() -> Path:
    """Path of the optional TOML configuration file."""
    return config_dir() / "config.toml"
