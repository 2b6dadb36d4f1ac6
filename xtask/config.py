"""
Configuration file parsing for the task runner.

Describes which tool versions are expected, how versioned binaries are
named, how to recognise each tool's version output, and where to look for
tools on platforms that install them outside the default search path.

Supports YAML configuration files (``xtask.yml``) and JSON (``xtask.json``).
The configuration is loaded once and never modified afterwards.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)


# Configuration file names searched for in each directory, in priority order
CONFIG_FILENAMES = (
    "xtask.yml",
    "xtask.yaml",
    ".xtask.yml",
    "xtask.json",
)

SEARCH_PATH_KINDS = {"homebrew"}
TOOLCHAIN_KINDS = {"nightly", "stable"}

DEFAULT_SUFFIX = "-16"
DEFAULT_VERSION = "16"
DEFAULT_MATCHER = r"version\s+(\d+(?:\.\d+)*)"
DEFAULT_MATCHERS = {
    "clang": DEFAULT_MATCHER,
    "clang++": DEFAULT_MATCHER,
    "clangd": DEFAULT_MATCHER,
    "clang-format": DEFAULT_MATCHER,
    "clang-tidy": DEFAULT_MATCHER,
}
DEFAULT_NIGHTLY = "nightly-2024-01-01"
DEFAULT_STABLE = "stable"
DEFAULT_BIN_DIR = ".xtask/bin"


@dataclass(frozen=True)
class PlatformSearchPath:
    """
    A strategy for contributing extra search locations on one platform.

    Attributes:
        kind: Strategy identifier (currently only 'homebrew')
    """
    kind: str

    def __post_init__(self):
        if self.kind not in SEARCH_PATH_KINDS:
            raise ValueError(
                f"Invalid search path kind: {self.kind}. "
                f"Must be one of: {', '.join(sorted(SEARCH_PATH_KINDS))}"
            )

    @staticmethod
    def from_dict(data: dict[str, Any]) -> PlatformSearchPath:
        """Create PlatformSearchPath from dictionary."""
        return PlatformSearchPath(kind=str(data.get("kind", "")))


def _default_macos_search_paths() -> tuple[PlatformSearchPath, ...]:
    return (PlatformSearchPath(kind="homebrew"),)


@dataclass(frozen=True)
class ClangConfig:
    """
    Expectations for the clang tool suite.

    Attributes:
        matchers: Logical tool name -> regex whose first group captures the version
        suffix: Suffix of versioned binaries (e.g. '-16' for 'clang-format-16')
        version: Required version prefix (e.g. '16' accepts '16.0.3')
        macos_search_paths: Extra search strategies used on macOS
    """
    matchers: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_MATCHERS))
    suffix: str = DEFAULT_SUFFIX
    version: str = DEFAULT_VERSION
    macos_search_paths: tuple[PlatformSearchPath, ...] = field(
        default_factory=_default_macos_search_paths
    )

    @staticmethod
    def from_dict(data: dict[str, Any]) -> ClangConfig:
        """Create ClangConfig from dictionary."""
        matchers = data.get("matchers", DEFAULT_MATCHERS)
        macos = data.get("platform", {}).get("macos", {})
        # Accept both the camelCase spelling and snake_case
        search_paths_data = macos.get("searchPaths", macos.get("search_paths"))
        if search_paths_data is None:
            search_paths = _default_macos_search_paths()
        else:
            search_paths = tuple(PlatformSearchPath.from_dict(item) for item in search_paths_data)

        # YAML reads `-16` and `16` as integers
        return ClangConfig(
            matchers={str(name): str(pattern) for name, pattern in matchers.items()},
            suffix=str(data.get("suffix", DEFAULT_SUFFIX)),
            version=str(data.get("version", DEFAULT_VERSION)),
            macos_search_paths=search_paths,
        )


@dataclass(frozen=True)
class RustComponentConfig:
    """
    A rustup component and the release channel it is used from.

    Attributes:
        toolchain: 'nightly' or 'stable'
    """
    toolchain: str = "stable"

    def __post_init__(self):
        if self.toolchain not in TOOLCHAIN_KINDS:
            raise ValueError(
                f"Invalid component toolchain: {self.toolchain}. "
                "Must be 'nightly' or 'stable'"
            )

    @staticmethod
    def from_dict(data: dict[str, Any]) -> RustComponentConfig:
        """Create RustComponentConfig from dictionary."""
        return RustComponentConfig(toolchain=str(data.get("toolchain", "stable")))


def _default_components() -> dict[str, RustComponentConfig]:
    return {
        "clippy": RustComponentConfig(toolchain="nightly"),
        "fmt": RustComponentConfig(toolchain="nightly"),
        "miri": RustComponentConfig(toolchain="nightly"),
        "rustdoc": RustComponentConfig(toolchain="nightly"),
    }


@dataclass(frozen=True)
class RustConfig:
    """
    Expectations for the Rust toolchain.

    Attributes:
        components: Component name -> component configuration
        nightly: Pinned nightly channel (e.g. 'nightly-2024-01-01')
        stable: Stable channel name
    """
    components: dict[str, RustComponentConfig] = field(default_factory=_default_components)
    nightly: str = DEFAULT_NIGHTLY
    stable: str = DEFAULT_STABLE

    @staticmethod
    def from_dict(data: dict[str, Any]) -> RustConfig:
        """Create RustConfig from dictionary."""
        components_data = data.get("components")
        if components_data is None:
            components = _default_components()
        else:
            components = {
                str(name): RustComponentConfig.from_dict(component or {})
                for name, component in components_data.items()
            }
        toolchain = data.get("toolchain", {})
        return RustConfig(
            components=components,
            nightly=str(toolchain.get("nightly", DEFAULT_NIGHTLY)),
            stable=str(toolchain.get("stable", DEFAULT_STABLE)),
        )


@dataclass(frozen=True)
class Config:
    """
    Complete task runner configuration.

    Attributes:
        version: Config schema version
        clang: Clang tool suite expectations
        rust: Rust toolchain expectations
        bin_dir: Directory for fetched helper scripts, relative to the project root
        source: Path to the configuration file that was loaded
    """
    version: int = 1
    clang: ClangConfig = field(default_factory=ClangConfig)
    rust: RustConfig = field(default_factory=RustConfig)
    bin_dir: str = DEFAULT_BIN_DIR
    source: str = ""

    def __post_init__(self):
        if self.version != 1:
            raise ValueError(f"Unsupported config version: {self.version}. Expected version 1")

    @staticmethod
    def from_dict(data: dict[str, Any], source: str = "") -> Config:
        """Create Config from dictionary."""
        return Config(
            version=data.get("version", 1),
            clang=ClangConfig.from_dict(data.get("clang", {})),
            rust=RustConfig.from_dict(data.get("rust", {})),
            bin_dir=str(data.get("bin_dir", DEFAULT_BIN_DIR)),
            source=source,
        )

    @property
    def root(self) -> Path:
        """Project root: the directory holding the config file, else cwd."""
        if self.source:
            return Path(self.source).resolve().parent
        return find_project_root()

    @property
    def bin_path(self) -> Path:
        """Absolute location of fetched helper scripts."""
        return self.root / self.bin_dir


def nightly_toolchain(config: Config) -> str:
    return config.rust.nightly


def stable_toolchain(config: Config) -> str:
    return config.rust.stable


def _load_yaml(file_path: str) -> dict[str, Any]:
    with open(file_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def _load_json(file_path: str) -> dict[str, Any]:
    with open(file_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return data if isinstance(data, dict) else {}


def load_config_file(file_path: str) -> Config | None:
    """
    Load configuration from a single file.

    Args:
        file_path: Path to a .yml/.yaml or .json configuration file

    Returns:
        Config object, or None if the file is missing or invalid
    """
    if not os.path.exists(file_path):
        return None

    logger.debug("Loading config from: %s", file_path)

    try:
        if file_path.endswith(".json"):
            data = _load_json(file_path)
        else:
            data = _load_yaml(file_path)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        logger.warning("Invalid config file %s: %s", file_path, e)
        return None

    try:
        return Config.from_dict(data, source=file_path)
    except (ValueError, TypeError, AttributeError) as e:
        logger.warning("Config validation failed for %s: %s", file_path, e)
        return None


def find_config_file(start: str | os.PathLike | None = None) -> Path | None:
    """
    Walk up from ``start`` looking for a configuration file.

    Returns:
        Path of the first file found, or None
    """
    directory = Path(start or os.getcwd()).resolve()
    for candidate_dir in (directory, *directory.parents):
        for name in CONFIG_FILENAMES:
            path = candidate_dir / name
            if path.is_file():
                return path
    return None


def find_project_root(start: str | os.PathLike | None = None) -> Path:
    """
    Locate the project root.

    The directory holding the config file wins; otherwise the nearest
    directory with a Cargo.toml; otherwise ``start`` itself.
    """
    directory = Path(start or os.getcwd()).resolve()
    config_file = find_config_file(directory)
    if config_file is not None:
        return config_file.parent
    for candidate_dir in (directory, *directory.parents):
        if (candidate_dir / "Cargo.toml").is_file():
            return candidate_dir
    return directory


def load_config(
    custom_path: str | None = None,
    start: str | os.PathLike | None = None,
) -> Config:
    """
    Load the project configuration.

    Precedence:
    1. Custom path (if provided)
    2. First config file found walking up from ``start``
    3. Built-in defaults

    Raises:
        ValueError: If custom_path is provided but cannot be loaded
    """
    if custom_path:
        config = load_config_file(custom_path)
        if config is None:
            raise ValueError(f"Could not load config from specified path: {custom_path}")
        logger.debug("Using custom config: %s", custom_path)
        return config

    path = find_config_file(start)
    if path is not None:
        config = load_config_file(str(path))
        if config is not None:
            logger.debug("Found config at: %s", path)
            return config

    logger.debug("No config file found, using defaults")
    return Config()


def validate_config(config: Config) -> list[str]:
    """
    Validate configuration and return a list of warnings (empty if valid).
    """
    warnings = []

    for tool, pattern in config.clang.matchers.items():
        try:
            compiled = re.compile(pattern)
        except re.error as e:
            warnings.append(f"Tool '{tool}': invalid version matcher {pattern!r} ({e})")
            continue
        if compiled.groups < 1:
            warnings.append(f"Tool '{tool}': version matcher {pattern!r} has no capture group")

    if config.clang.version and not config.clang.suffix:
        warnings.append("clang.version is set but clang.suffix is empty; suffixed lookup is disabled")

    if not config.rust.nightly.startswith("nightly"):
        warnings.append(f"rust.toolchain.nightly does not name a nightly channel: {config.rust.nightly}")

    return warnings
