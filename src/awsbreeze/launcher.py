"""Open links in the user's default handler."""

import logging
import subprocess
import sys
from typing import List, Optional

logger = logging.getLogger(__name__)


def open_command(url: str, platform: Optional[str] = None) -> Optional[List[str]]:
    """Build the native launcher command for a URL.

    Args:
        url: Link to open
        platform: sys.platform value (defaults to the running platform)

    Returns:
        argv list, or None if the platform has no known launcher
    """
    platform = platform or sys.platform

    if platform.startswith("linux") or platform.startswith("freebsd"):
        return ["xdg-open", url]
    if platform == "darwin":
        return ["open", url]
    if platform == "win32":
        return ["rundll32", "url.dll,FileProtocolHandler", url]
    return None


def open_url(url: str) -> None:
    """Launch the default handler for url without waiting for it.

    Failures are logged, never raised.
    """
    cmd = open_command(url)
    if cmd is None:
        logger.warning(f"No URL launcher for platform {sys.platform}")
        return

    try:
        subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
        logger.debug(f"Opened {url}")
    except OSError as e:
        logger.warning(f"Failed to open {url}: {e}")
