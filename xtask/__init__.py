"""
xtask - project-local task runner with tool validation.

Core Modules:
- Configuration: expected tool versions, suffixes, matchers, search paths
- Probing: run a candidate binary with --version/--help under an overlay
- Validation: resolve a logical tool to a binary and environment overlay
- Commands: format, tidy, clippy, doc, udeps, tools
"""

__version__ = "0.1.0"

from .config import (
    Config,
    ClangConfig,
    RustConfig,
    RustComponentConfig,
    PlatformSearchPath,
    load_config,
    load_config_file,
    validate_config,
    nightly_toolchain,
    stable_toolchain,
)
from .errors import (
    ValidationError,
    ToolNotFoundError,
    ProbeFailedError,
    OutputUndecodableError,
    VersionMismatchError,
    UnrecognizedToolchainVendorError,
    UnrecognizedToolError,
    InvalidMatcherError,
    ToolchainChannelMissingError,
    ToolValidationError,
    FetchError,
)
from .probe import ProbeResult, run_probe
from .version import check_version
from .search_paths import augmented_path, platform_search_paths
from .validation import (
    Validation,
    Candidate,
    combine_all,
    validate_tool,
    validate_rust_toolchain,
    registered_tools,
)
from .logging_config import log_failure, setup_logging

__all__ = [
    "__version__",
    # Configuration
    "Config",
    "ClangConfig",
    "RustConfig",
    "RustComponentConfig",
    "PlatformSearchPath",
    "load_config",
    "load_config_file",
    "validate_config",
    "nightly_toolchain",
    "stable_toolchain",
    # Errors
    "ValidationError",
    "ToolNotFoundError",
    "ProbeFailedError",
    "OutputUndecodableError",
    "VersionMismatchError",
    "UnrecognizedToolchainVendorError",
    "UnrecognizedToolError",
    "InvalidMatcherError",
    "ToolchainChannelMissingError",
    "ToolValidationError",
    "FetchError",
    # Probing and validation
    "ProbeResult",
    "run_probe",
    "check_version",
    "augmented_path",
    "platform_search_paths",
    "Validation",
    "Candidate",
    "combine_all",
    "validate_tool",
    "validate_rust_toolchain",
    "registered_tools",
    # Logging
    "setup_logging",
    "log_failure",
]
