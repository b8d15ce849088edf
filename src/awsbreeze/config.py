"""Configuration loading from TOML and the environment."""

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from .defaults import DEFAULT_FEED_URL, DEFAULT_LOG_LEVEL, DEFAULT_RETENTION_DAYS
from .paths import config_file_path

FEED_URL_ENV = "AWSBREEZE_FEED_URL"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Config:
    """Configuration dataclass with validation.

    Loads from ~/.config/awsbreeze/config.toml when present; every value
    has a default so the file is optional.
    """

    feed_url: str = DEFAULT_FEED_URL
    log_level: str = DEFAULT_LOG_LEVEL
    observability_enabled: bool = True
    retention_days: int = DEFAULT_RETENTION_DAYS

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If any configuration values are invalid.
        """
        parsed = urlparse(self.feed_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"feed url must be an http(s) URL, got {self.feed_url!r}")

        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"log level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}"
            )

        if not isinstance(self.retention_days, int) or not 1 <= self.retention_days <= 365:
            raise ValueError(
                f"retention_days must be between 1 and 365 days, got {self.retention_days}"
            )

    @classmethod
    def from_file(cls, config_path: Optional[Path] = None) -> "Config":
        """Load configuration from a TOML file.

        Args:
            config_path: Optional path to config file.
                        Defaults to $XDG_CONFIG_HOME/awsbreeze/config.toml
                        (or ~/.config/awsbreeze/config.toml)

        Returns:
            Validated Config instance. Missing file or keys use defaults.

        Raises:
            ValueError: If the file cannot be parsed or holds invalid values
        """
        if config_path is None:
            config_path = config_file_path()

        config_dict = {}
        if config_path.exists():
            try:
                with open(config_path, "rb") as f:
                    config_dict = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as e:
                raise ValueError(f"Failed to parse config file {config_path}: {e}")

        feed = config_dict.get("feed", {})
        logging_section = config_dict.get("logging", {})
        observability = config_dict.get("observability", {})

        config = cls(
            feed_url=os.environ.get(FEED_URL_ENV) or feed.get("url", DEFAULT_FEED_URL),
            log_level=str(logging_section.get("level", DEFAULT_LOG_LEVEL)).upper(),
            observability_enabled=bool(observability.get("enabled", True)),
            retention_days=observability.get("retention_days", DEFAULT_RETENTION_DAYS),
        )

        config.validate()

        return config
