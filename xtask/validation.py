"""
Tool validation and resolution.

Given a logical tool name, find a runnable binary for it, confirm that the
binary reports a compatible version, and return the environment overlay
needed to invoke it. Validation never modifies os.environ; the overlay is
applied by the caller to the one subprocess it spawns.

Resolution order for versioned clang tools:
1. ``<tool><suffix>`` with no extra environment
2. ``<tool><suffix>`` with PATH extended by platform search locations
3. ``<tool>`` with no extra environment
4. ``<tool>`` with PATH extended by platform search locations
"""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, Mapping

from .config import Config, nightly_toolchain, stable_toolchain
from .errors import (
    InvalidMatcherError,
    ProbeFailedError,
    ToolchainChannelMissingError,
    ToolNotFoundError,
    ToolValidationError,
    UnrecognizedToolError,
    ValidationError,
)
from .install import HELPER_SCRIPTS, fetch_helper_script
from .probe import child_environment, run_probe
from .search_paths import augmented_path
from .version import check_version, compile_matcher

logger = logging.getLogger(__name__)


# Installation hints for tools that are looked up directly in PATH
INSTALL_HINTS: dict[str, str] = {
    "cargo-tarpaulin": "Perhaps you need to install it with `cargo install cargo-tarpaulin`?",
    "cargo-udeps": "Perhaps you need to install it with `cargo install cargo-udeps --locked`?",
    "cargo-valgrind": "Perhaps you need to install it with `cargo install cargo-valgrind`?",
    "cmake": "Perhaps you need to install it from https://cmake.org/download/?",
    "ninja": "Perhaps you need to install it from https://ninja-build.org/?",
    "python3": "Perhaps you need to install Python 3 from https://www.python.org/downloads/?",
}


def _sorted(mapping: Mapping[str, str]) -> dict[str, str]:
    return dict(sorted(mapping.items()))


@dataclass
class Validation:
    """
    Environment overlay produced by a successful validation.

    Attributes:
        tools: Logical name -> concrete binary, only where the two differ
        env_vars: Variables to set on the subprocess that runs the tool

    Both mappings are kept ordered by key so identical inputs always
    produce identical overlays.
    """
    tools: dict[str, str] = field(default_factory=dict)
    env_vars: dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.tools = _sorted(self.tools)
        self.env_vars = _sorted(self.env_vars)

    def combine(self, other: Validation) -> Validation:
        """
        Merge ``other`` into this overlay in place.

        Keys present in both are taken from ``other``: the most recently
        combined validation wins. Returns self.
        """
        self.tools = _sorted({**self.tools, **other.tools})
        self.env_vars = _sorted({**self.env_vars, **other.env_vars})
        return self

    def binary(self, tool: str) -> str:
        """Concrete binary to invoke for a logical tool name."""
        return self.tools.get(tool, tool)

    def apply(self, environ: Mapping[str, str] | None = None) -> dict[str, str]:
        """Child process environment: ``environ`` with the overlay on top."""
        return child_environment(self.env_vars, environ)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {"tools": dict(self.tools), "env_vars": dict(self.env_vars)}


def combine_all(validations: Iterable[Validation]) -> Validation:
    """Fold overlays left to right into a new one."""
    result = Validation()
    for validation in validations:
        result.combine(validation)
    return result


@dataclass(frozen=True)
class Candidate:
    """One (binary name, environment overlay) pair to probe."""
    binary: str
    env_vars: dict[str, str] = field(default_factory=dict)


# (use configured suffix, extend PATH with platform search locations)
CANDIDATE_TIERS: tuple[tuple[bool, bool], ...] = (
    (True, False),
    (True, True),
    (False, False),
    (False, True),
)


def candidates(
    config: Config,
    tool: str,
    environ: Mapping[str, str] | None = None,
    platform: str = sys.platform,
) -> Iterator[Candidate]:
    """Yield resolution candidates for ``tool`` in priority order."""
    path: str | None = None
    seen: set[tuple[str, bool]] = set()

    for suffixed, augmented in CANDIDATE_TIERS:
        binary = f"{tool}{config.clang.suffix}" if suffixed else tool
        if (binary, augmented) in seen:
            continue
        seen.add((binary, augmented))

        env_vars: dict[str, str] = {}
        if augmented:
            if path is None:
                path = augmented_path(config, environ, platform)
            env_vars["PATH"] = path
        yield Candidate(binary=binary, env_vars=env_vars)


def try_candidate(
    config: Config,
    tool: str,
    candidate: Candidate,
    environ: Mapping[str, str] | None = None,
) -> Validation:
    """Probe one candidate and check its version; raises on any failure."""
    pattern = config.clang.matchers.get(tool)
    # Tools without a matcher may not support --version and exit non-zero
    # when run without arguments, so they are probed with --help.
    flag = "--version" if pattern is not None else "--help"

    result = run_probe(
        candidate.binary,
        flag,
        env_vars=candidate.env_vars,
        environ=environ,
        capture=pattern is not None,
    )
    if not result.success:
        raise ProbeFailedError(f"`{tool}` failed with non-zero exit code", tool=tool)

    check_version(tool, pattern, result.stdout, config.clang.version)

    tools = {tool: candidate.binary} if candidate.binary != tool else {}
    return Validation(tools=tools, env_vars=dict(candidate.env_vars))


def validate_versioned_tool(
    config: Config,
    tool: str,
    environ: Mapping[str, str] | None = None,
    platform: str = sys.platform,
) -> Validation:
    """
    Resolve a tool that may be installed under a version-suffixed name.

    Candidates are tried in order and the first that passes wins. Failures
    of earlier candidates are logged at debug level only.

    Raises:
        ToolValidationError: If no candidate passed; chained to the last failure
        InvalidMatcherError: If the configured matcher does not compile; no probe runs
    """
    pattern = config.clang.matchers.get(tool)
    if pattern is not None:
        try:
            compile_matcher(pattern)
        except re.error as e:
            raise InvalidMatcherError(
                f"invalid version matcher for `{tool}`: {e}",
                tool=tool,
                remediation=f"Check clang.matchers.{tool} in the xtask configuration",
            ) from e

    last_error: Exception | None = None
    for candidate in candidates(config, tool, environ, platform):
        try:
            validation = try_candidate(config, tool, candidate, environ)
        except (ValidationError, OSError) as e:
            logger.debug("Candidate %s for %s rejected: %s", candidate.binary, tool, e)
            last_error = e
            continue
        logger.debug("Resolved %s to %s", tool, candidate.binary)
        return validation

    raise ToolValidationError(f"could not validate tool: `{tool}`", tool=tool) from last_error


def validate_direct_tool(
    tool: str,
    flag: str = "--help",
    env_vars: Mapping[str, str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Validation:
    """
    Validate a tool with a single probe and no fallback chain.

    Raises:
        ToolNotFoundError: If the tool is not in the search path
        ProbeFailedError: If the tool exits non-zero
    """
    try:
        result = run_probe(tool, flag, env_vars=env_vars, environ=environ, capture=False)
    except ToolNotFoundError as e:
        e.remediation = INSTALL_HINTS.get(tool)
        raise
    if not result.success:
        raise ProbeFailedError(f"`{tool}` failed with non-zero exit code", tool=tool)
    return Validation()


def validate_python3(environ: Mapping[str, str] | None = None) -> Validation:
    """Check that the python3 launcher needed by helper scripts is usable."""
    return validate_direct_tool("python3", environ=environ)


def validate_cargo_component(
    config: Config,
    tool: str,
    environ: Mapping[str, str] | None = None,
) -> Validation:
    """
    Validate a rustup component (e.g. 'cargo-clippy') on its configured channel.

    Raises:
        UnrecognizedToolError: If the component is not configured
        ProbeFailedError: If ``cargo +<channel> <tool> --help`` fails
    """
    name = tool.removeprefix("cargo-")
    component_name = "rustdoc" if name == "doc" else name

    component = config.rust.components.get(component_name)
    if component is None:
        raise UnrecognizedToolError(f"unrecognized component: `{name}`", tool=tool)

    if component.toolchain == "nightly":
        toolchain = nightly_toolchain(config)
    else:
        toolchain = stable_toolchain(config)

    result = run_probe(
        "cargo", "--help", environ=environ, capture=False, args=(f"+{toolchain}", name)
    )
    if not result.success:
        raise ProbeFailedError(
            f"`cargo +{toolchain} {name} --help` failed with non-zero exit code",
            tool=tool,
            remediation=f"Perhaps you need to run `rustup component add --toolchain {toolchain} {component_name}`?",
        )
    return Validation()


def validate_helper_script(
    config: Config,
    name: str,
    fetch: Callable[[Config, str, str], object] | None = None,
    retry: bool = True,
    environ: Mapping[str, str] | None = None,
) -> Validation:
    """
    Check that a helper script runs under python3, fetching it if needed.

    After a fetch the check is repeated exactly once.

    Raises:
        UnrecognizedToolError: If ``name`` is not a known helper script
        ProbeFailedError: If the script still fails after fetching
    """
    url = HELPER_SCRIPTS.get(name)
    if url is None:
        raise UnrecognizedToolError(f"unrecognized helper script `{name}`", tool=name)

    script = config.bin_path / name
    result = run_probe("python3", "--help", environ=environ, capture=False, args=(str(script),))
    if result.success:
        return Validation()

    if not retry:
        raise ProbeFailedError(f"`{name}` failed with non-zero exit code", tool=name)

    logger.info("%s is missing or broken; fetching it", name)
    (fetch or fetch_helper_script)(config, url, name)
    return validate_helper_script(config, name, fetch=fetch, retry=False, environ=environ)


# (config, tool, environ, platform, fetch_missing) -> overlay
Strategy = Callable[..., Validation]


def _versioned(config, tool, environ, platform, fetch_missing) -> Validation:
    return validate_versioned_tool(config, tool, environ, platform)


def _clang_format(config, tool, environ, platform, fetch_missing) -> Validation:
    validation = validate_versioned_tool(config, tool, environ, platform)
    validation.combine(validate_python3(environ))
    validation.combine(
        validate_helper_script(config, "run-clang-format.py", retry=fetch_missing, environ=environ)
    )
    return validation


def _clang_tidy(config, tool, environ, platform, fetch_missing) -> Validation:
    return combine_all([
        validate_versioned_tool(config, tool, environ, platform),
        validate_versioned_tool(config, "run-clang-tidy", environ, platform),
    ])


def _cargo_component(config, tool, environ, platform, fetch_missing) -> Validation:
    return validate_cargo_component(config, tool, environ)


def _direct(config, tool, environ, platform, fetch_missing) -> Validation:
    return validate_direct_tool(tool, "--help", environ=environ)


def _ninja(config, tool, environ, platform, fetch_missing) -> Validation:
    return validate_direct_tool(tool, "--version", environ=environ)


TOOL_STRATEGIES: dict[str, Strategy] = {
    "clang": _versioned,
    "clang++": _versioned,
    "clangd": _versioned,
    "clang-format": _clang_format,
    "clang-tidy": _clang_tidy,
    "cargo-clippy": _cargo_component,
    "cargo-doc": _cargo_component,
    "cargo-fmt": _cargo_component,
    "cargo-miri": _cargo_component,
    "cargo-tarpaulin": _direct,
    "cargo-udeps": _direct,
    "cargo-valgrind": _direct,
    "cmake": _direct,
    "ninja": _ninja,
}


def registered_tools(config: Config) -> list[str]:
    """Every identifier validate_tool accepts under ``config``."""
    return sorted(set(TOOL_STRATEGIES) | set(config.clang.matchers))


def validate_tool(
    config: Config,
    tool: str,
    environ: Mapping[str, str] | None = None,
    platform: str = sys.platform,
    fetch_missing: bool = True,
) -> Validation:
    """
    Validate a logical tool and return the overlay needed to run it.

    Tools not in the built-in registry but with a configured version
    matcher are resolved like the clang tools. With ``fetch_missing``
    false a missing helper script is reported instead of downloaded.

    Raises:
        UnrecognizedToolError: For unknown identifiers, before any probe runs
        ValidationError: For any other validation failure
    """
    strategy = TOOL_STRATEGIES.get(tool)
    if strategy is None:
        if tool not in config.clang.matchers:
            raise UnrecognizedToolError(f"unrecognized tool: `{tool}`", tool=tool)
        strategy = _versioned

    validation = strategy(config, tool, environ, platform, fetch_missing)
    logger.debug("Validated %s: %s", tool, validation.to_dict())
    return validation


def validate_rust_toolchain(
    toolchain: str,
    environ: Mapping[str, str] | None = None,
) -> None:
    """
    Check that a rustup release channel is installed.

    Raises:
        ToolNotFoundError: If rustup is not installed
        ProbeFailedError: If ``rustup toolchain list`` exits non-zero
        OutputUndecodableError: If its output is not valid UTF-8
        ToolchainChannelMissingError: If no installed channel starts with ``toolchain``
    """
    try:
        result = run_probe("rustup", "list", environ=environ, args=("toolchain",))
    except ToolNotFoundError as e:
        e.remediation = "Perhaps you need to install rustup from https://rustup.rs/?"
        raise
    if not result.success:
        raise ProbeFailedError("`rustup toolchain list` failed with non-zero exit code", tool="rustup")

    for entry in result.stdout.splitlines():
        if entry.startswith(toolchain):
            return

    raise ToolchainChannelMissingError(
        f"could not find toolchain `{toolchain}`",
        tool=toolchain,
        remediation=f"Perhaps you need to install it with `rustup toolchain install {toolchain}`?",
    )
