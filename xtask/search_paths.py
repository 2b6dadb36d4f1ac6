"""
Platform search-path augmentation.

On macOS, versioned LLVM installs from Homebrew are keg-only and live
outside the default PATH. These helpers compute a PATH value that appends
those locations so a single probe can try them. The real process PATH is
only read, never written.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from typing import Mapping

from .config import Config, PlatformSearchPath

logger = logging.getLogger(__name__)

MACOS = "darwin"

# Default Homebrew prefixes for Apple Silicon and Intel machines
HOMEBREW_PREFIXES = ("/opt/homebrew", "/usr/local")


def homebrew_llvm_paths(
    version: str,
    environ: Mapping[str, str] | None = None,
) -> list[str]:
    """
    Locations of the ``llvm@<version>`` keg's bin directory.

    Asks ``brew --prefix`` first, then falls back to the well-known keg
    locations under each default Homebrew prefix.
    """
    formula = f"llvm@{version}" if version else "llvm"
    paths: list[str] = []

    try:
        proc = subprocess.run(
            ["brew", "--prefix", formula],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            stdin=subprocess.DEVNULL,
            text=True,
            env=dict(os.environ if environ is None else environ),
            check=False,
        )
        prefix = (proc.stdout or "").strip()
        if proc.returncode == 0 and prefix:
            paths.append(os.path.join(prefix, "bin"))
    except OSError as e:
        logger.debug("brew --prefix %s unavailable: %s", formula, e)

    for brew_prefix in HOMEBREW_PREFIXES:
        path = os.path.join(brew_prefix, "opt", formula, "bin")
        if path not in paths:
            paths.append(path)

    return paths


def _strategy_paths(
    strategy: PlatformSearchPath,
    config: Config,
    environ: Mapping[str, str] | None,
) -> list[str]:
    if strategy.kind == "homebrew":
        return homebrew_llvm_paths(config.clang.version, environ)
    # PlatformSearchPath rejects unknown kinds at load time
    raise ValueError(f"Unknown search path kind: {strategy.kind}")


def platform_search_paths(
    config: Config,
    platform: str = sys.platform,
    environ: Mapping[str, str] | None = None,
) -> list[str]:
    """
    Extra search locations contributed by the configured platform strategies.

    Returns an empty list on every platform other than macOS.
    """
    if platform != MACOS:
        return []

    paths: list[str] = []
    for strategy in config.clang.macos_search_paths:
        for path in _strategy_paths(strategy, config, environ):
            if path not in paths:
                paths.append(path)
    return paths


def augmented_path(
    config: Config,
    environ: Mapping[str, str] | None = None,
    platform: str = sys.platform,
) -> str:
    """
    Ambient PATH followed by the platform's extra search locations.

    Ambient entries keep their order; duplicates are dropped. On a platform
    with no strategies the result equals the ambient PATH.
    """
    environ = os.environ if environ is None else environ
    ambient = environ.get("PATH", "")

    extras = platform_search_paths(config, platform, environ)
    if not extras:
        return ambient

    entries: list[str] = []
    for entry in [*ambient.split(os.pathsep), *extras]:
        if entry and entry not in entries:
            entries.append(entry)
    return os.pathsep.join(entries)
