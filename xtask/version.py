"""
Version matching for probed tools.

The comparison is a plain string prefix check: a required version of "16"
accepts "16.0.3" and, equally, "160.1". No semantic version ranges.
"""

from __future__ import annotations

import re
from functools import lru_cache

from .errors import UnrecognizedToolchainVendorError, VersionMismatchError


@lru_cache(maxsize=None)
def compile_matcher(pattern: str) -> re.Pattern[str]:
    """Compile a version matcher; raises re.error for invalid patterns."""
    return re.compile(pattern)


def extract_version(pattern: str, output: str) -> str | None:
    """Return the first capture group of ``pattern`` in ``output``, if any."""
    m = compile_matcher(pattern).search(output)
    if m is None or m.re.groups < 1:
        return None
    return m.group(1)


def check_version(
    tool: str,
    pattern: str | None,
    output: str,
    required: str,
) -> str | None:
    """
    Validate probe output against a tool's version expectation.

    Args:
        tool: Logical tool name, used in error messages
        pattern: Version matcher, or None to accept any successful probe
        output: Decoded probe stdout
        required: Required version prefix

    Returns:
        The extracted version token, or None when no matcher is configured

    Raises:
        UnrecognizedToolchainVendorError: Matcher configured but nothing matched
        VersionMismatchError: Version found but does not start with ``required``
    """
    if pattern is None:
        return None

    version = extract_version(pattern, output)
    if version is None:
        raise UnrecognizedToolchainVendorError(
            f"`{tool}` failed validation; ensure you are using the official clang toolchain",
            tool=tool,
        )

    if version.startswith(required):
        return version

    raise VersionMismatchError(tool, expected=required, actual=version)
