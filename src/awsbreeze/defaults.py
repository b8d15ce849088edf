"""Default configuration for awsbreeze."""

from pathlib import Path
from typing import Optional

from .paths import config_file_path

DEFAULT_FEED_URL = "https://aws.amazon.com/about-aws/whats-new/recent/feed/"
DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_RETENTION_DAYS = 30

DEFAULT_CONFIG_TOML = f"""# awsbreeze configuration

[feed]
url = "{DEFAULT_FEED_URL}"  # Overridden by AWSBREEZE_FEED_URL

[logging]
level = "{DEFAULT_LOG_LEVEL}"  # DEBUG, INFO, WARNING, ERROR (written to <cache>/awsbreeze/awsbreeze.log)

[observability]
enabled = true  # JSONL event log in <cache>/awsbreeze/observability
retention_days = {DEFAULT_RETENTION_DAYS}  # event files older than this are removed at startup
"""


def ensure_config(config_path: Optional[Path] = None) -> bool:
    """Create the default config file if it doesn't exist.

    Args:
        config_path: Target file. Defaults to $XDG_CONFIG_HOME/awsbreeze/config.toml

    Returns:
        True if a file was written
    """
    if config_path is None:
        config_path = config_file_path()

    if config_path.exists():
        return False

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(DEFAULT_CONFIG_TOML)
    return True
