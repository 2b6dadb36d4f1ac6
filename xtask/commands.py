"""
Task commands.

Each command validates the tools it needs, then runs exactly one tool
process (two for ``tidy``) with the validated environment overlay applied.
A validation failure aborts the command before anything is run.
"""

from __future__ import annotations

import json
import logging
import subprocess
import sys
from typing import Mapping, Sequence

from .config import Config, nightly_toolchain
from .errors import ValidationError
from .render import print_summary, render_table, report_row
from .validation import Validation, registered_tools, validate_rust_toolchain, validate_tool

logger = logging.getLogger(__name__)

# Packages linted and checked by the cargo-based tasks; empty means the whole workspace
DEFAULT_PACKAGES: tuple[str, ...] = ()


def run_tool(
    config: Config,
    argv: Sequence[str],
    validation: Validation,
    environ: Mapping[str, str] | None = None,
) -> int:
    """Run one tool process from the project root under ``validation``'s overlay."""
    logger.debug("Running: %s", " ".join(argv))
    proc = subprocess.run(
        list(argv),
        cwd=str(config.root),
        env=validation.apply(environ),
        check=False,
    )
    return proc.returncode


def _package_args(packages: Sequence[str]) -> list[str]:
    args: list[str] = []
    for package in packages:
        args.extend(["--package", package])
    return args


def clang_format(config: Config, tool_args: Sequence[str] = ()) -> int:
    """Run run-clang-format.py on the project's C++ code."""
    validation = validate_tool(config, "clang-format")
    script = config.bin_path / "run-clang-format.py"
    argv = ["python3", str(script)]
    binary = validation.binary("clang-format")
    if binary != "clang-format":
        argv.extend(["--clang-format-executable", binary])
    argv.extend(tool_args)
    return run_tool(config, argv, validation)


def cmake_configure(config: Config, build_dir: str = "build") -> int:
    """Configure the CMake build tree so clang-tidy has a compilation database."""
    validation = validate_tool(config, "cmake")
    argv = ["cmake", "-S", ".", "-B", build_dir, "-DCMAKE_EXPORT_COMPILE_COMMANDS=ON"]
    return run_tool(config, argv, validation)


def clang_tidy(config: Config, tool_args: Sequence[str] = ()) -> int:
    """Run run-clang-tidy on the project's C++ code."""
    validation = validate_tool(config, "clang-tidy")

    status = cmake_configure(config)
    if status != 0:
        logger.error("cmake configuration failed with exit code %d", status)
        return status

    argv = [validation.binary("run-clang-tidy")]
    binary = validation.binary("clang-tidy")
    if binary != "clang-tidy":
        argv.extend(["-clang-tidy-binary", binary])
    argv.extend(["-p", "build"])
    argv.extend(tool_args)
    return run_tool(config, argv, validation)


def _cargo_nightly(
    config: Config,
    tool: str,
    subcommand: str,
    tool_args: Sequence[str],
    packages: Sequence[str] = DEFAULT_PACKAGES,
    trailing: Sequence[str] = (),
) -> int:
    toolchain = nightly_toolchain(config)
    validate_rust_toolchain(toolchain)
    validation = validate_tool(config, tool)

    argv = ["cargo", f"+{toolchain}", subcommand, *_package_args(packages), *tool_args]
    if trailing:
        argv.extend(["--", *trailing])
    return run_tool(config, argv, validation)


def clippy(config: Config, tool_args: Sequence[str] = (), packages: Sequence[str] = DEFAULT_PACKAGES) -> int:
    """Run cargo clippy on the nightly channel, denying warnings."""
    return _cargo_nightly(
        config, "cargo-clippy", "clippy", tool_args, packages, trailing=("-D", "warnings")
    )


def doc(config: Config, tool_args: Sequence[str] = ()) -> int:
    """Build the documentation with the nightly rustdoc."""
    return _cargo_nightly(config, "cargo-doc", "doc", tool_args)


def udeps(config: Config, tool_args: Sequence[str] = (), packages: Sequence[str] = DEFAULT_PACKAGES) -> int:
    """Check for unused dependencies with cargo-udeps."""
    return _cargo_nightly(config, "cargo-udeps", "udeps", tool_args, packages)


def tools_report(
    config: Config,
    names: Sequence[str] = (),
    as_json: bool = False,
    fetch_missing: bool = False,
) -> int:
    """
    Validate tools and report which ones are usable.

    Missing helper scripts are only downloaded when ``fetch_missing`` is set;
    otherwise they are reported as failures.

    Returns:
        0 if every tool validated, 1 otherwise
    """
    rows = []
    overlays: dict[str, dict] = {}
    for tool in names or registered_tools(config):
        try:
            validation = validate_tool(config, tool, fetch_missing=fetch_missing)
        except ValidationError as e:
            logger.debug("%s failed validation: %s", tool, e)
            rows.append(report_row(tool, error=e))
            continue
        rows.append(report_row(tool, validation))
        overlays[tool] = validation.to_dict()

    if as_json:
        payload = {}
        for row in rows:
            entry = dict(row)
            if row["tool"] in overlays:
                entry["overlay"] = overlays[row["tool"]]
            payload[row["tool"]] = entry
        json.dump(payload, sys.stdout, indent=2, sort_keys=True)
        sys.stdout.write("\n")
    else:
        render_table(rows)
        print_summary(rows)

    return 0 if all(row["ok"] for row in rows) else 1
