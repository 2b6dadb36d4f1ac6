"""
Fetching of helper scripts that the tasks run but the project does not vendor.
"""

from __future__ import annotations

import logging
import os
import stat
import urllib.error
import urllib.request
from pathlib import Path

from .config import Config
from .errors import FetchError

logger = logging.getLogger(__name__)

HELPER_SCRIPTS: dict[str, str] = {
    "run-clang-format.py": (
        "https://raw.githubusercontent.com/Sarcasm/run-clang-format/master/run-clang-format.py"
    ),
}

USER_AGENT = "xtask/0.1"


def http_get(url: str, timeout: int = 30) -> bytes:
    """Perform an HTTP GET request.

    Raises:
        FetchError: If the request fails
    """
    try:
        req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
        with urllib.request.urlopen(req, timeout=timeout) as response:
            return response.read()
    except (urllib.error.URLError, OSError) as e:
        raise FetchError(f"failed to download {url}: {e}") from e


def fetch_helper_script(
    config: Config,
    url: str,
    name: str,
    root: str | os.PathLike | None = None,
) -> Path:
    """
    Download a helper script into the configured bin directory.

    Args:
        config: Loaded configuration (provides bin_dir)
        url: Download URL
        name: File name to store the script under
        root: Project root (defaults to the config's root)

    Returns:
        Path of the written script
    """
    bin_dir = Path(root) / config.bin_dir if root is not None else config.bin_path
    target = bin_dir / name

    logger.info("Fetching %s from %s", name, url)
    body = http_get(url)

    try:
        bin_dir.mkdir(parents=True, exist_ok=True)
        target.write_bytes(body)
        mode = target.stat().st_mode
        target.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    except OSError as e:
        raise FetchError(f"failed to write {target}: {e}", tool=name) from e

    logger.debug("Wrote %s (%d bytes)", target, len(body))
    return target
