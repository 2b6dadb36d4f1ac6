"""
Probe execution: run a candidate binary with a diagnostic flag.

A probe is a throwaway invocation (``--version`` or ``--help``) used only to
learn whether a binary exists, runs, and what it reports about itself.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Mapping, Sequence

from .errors import OutputUndecodableError, ToolNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeResult:
    """
    Outcome of a single probe invocation.

    Attributes:
        binary: Binary name or path that was invoked
        args: Arguments passed to the binary
        exit_code: Process exit code
        stdout: Captured standard output ('' when not captured)
    """
    binary: str
    args: tuple[str, ...]
    exit_code: int
    stdout: str = ""

    @property
    def success(self) -> bool:
        return self.exit_code == 0


def child_environment(
    env_vars: Mapping[str, str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Build a child process environment without touching os.environ."""
    env = dict(os.environ if environ is None else environ)
    if env_vars:
        env.update(env_vars)
    return env


def run_probe(
    binary: str,
    flag: str,
    env_vars: Mapping[str, str] | None = None,
    environ: Mapping[str, str] | None = None,
    capture: bool = True,
    args: Sequence[str] = (),
) -> ProbeResult:
    """
    Run ``binary [*args] flag`` under an environment overlay.

    Args:
        binary: Binary name (resolved against the overlay's PATH) or path
        flag: Diagnostic argument, normally '--version' or '--help'
        env_vars: Variables layered over the ambient environment for this probe
        environ: Ambient environment (defaults to os.environ)
        capture: Capture and decode stdout; otherwise discard it
        args: Arguments placed before the flag (e.g. a script path)

    Returns:
        ProbeResult; a non-zero exit is reported, not raised

    Raises:
        ValueError: If binary is empty
        ToolNotFoundError: If the binary cannot be found
        OutputUndecodableError: If captured stdout is not valid UTF-8
        OSError: Other spawn failures, propagated as-is
    """
    if not binary:
        raise ValueError("binary name must not be empty")

    argv = [binary, *args, flag]
    env = child_environment(env_vars, environ)
    logger.debug("Probing: %s", " ".join(argv))

    try:
        proc = subprocess.run(
            argv,
            stdout=subprocess.PIPE if capture else subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            stdin=subprocess.DEVNULL,
            env=env,
            check=False,
        )
    except FileNotFoundError as e:
        raise ToolNotFoundError(f"could not find `{binary}` in path", tool=binary) from e

    stdout = ""
    if capture and proc.stdout:
        try:
            stdout = proc.stdout.decode("utf-8")
        except UnicodeDecodeError as e:
            raise OutputUndecodableError(
                f"`{binary}` produced output that is not valid UTF-8", tool=binary
            ) from e

    return ProbeResult(
        binary=binary,
        args=tuple(argv[1:]),
        exit_code=proc.returncode,
        stdout=stdout,
    )
