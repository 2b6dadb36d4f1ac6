"""
Tests for the probe executor (xtask/probe.py).
"""

import os
import subprocess

import pytest
from unittest.mock import patch

from xtask.errors import OutputUndecodableError, ToolNotFoundError
from xtask.probe import ProbeResult, child_environment, run_probe


class TestProbeResult:
    """Tests for ProbeResult dataclass."""

    def test_success_property(self):
        """Exit code zero is success."""
        assert ProbeResult("clang", ("--version",), 0).success is True
        assert ProbeResult("clang", ("--version",), 1).success is False

    def test_immutable(self):
        """ProbeResult is frozen."""
        result = ProbeResult("clang", (), 0)
        with pytest.raises(AttributeError):
            result.exit_code = 1


class TestChildEnvironment:
    """Tests for overlay application."""

    def test_overlay_wins(self):
        """Overlay values replace ambient ones."""
        env = child_environment({"PATH": "/opt/bin"}, {"PATH": "/usr/bin", "HOME": "/h"})
        assert env == {"PATH": "/opt/bin", "HOME": "/h"}

    def test_ambient_not_mutated(self):
        """The ambient mapping is copied, never modified."""
        ambient = {"PATH": "/usr/bin"}
        child_environment({"PATH": "/opt/bin"}, ambient)
        assert ambient == {"PATH": "/usr/bin"}

    def test_defaults_to_os_environ(self):
        """Without an explicit ambient environment os.environ is copied."""
        with patch.dict(os.environ, {"XTASK_TEST_VAR": "1"}):
            env = child_environment({"EXTRA": "2"})
            assert env["XTASK_TEST_VAR"] == "1"
            assert env["EXTRA"] == "2"
            assert "EXTRA" not in os.environ


class TestRunProbe:
    """Tests for run_probe."""

    def test_success_captures_stdout(self, fake_run, environ):
        """A successful probe returns decoded stdout."""
        fake_run.add("clang-16", stdout=b"clang version 16.0.1\n")
        result = run_probe("clang-16", "--version", environ=environ)
        assert result.success
        assert result.stdout == "clang version 16.0.1\n"
        assert result.args == ("--version",)

    def test_nonzero_exit_is_reported_not_raised(self, fake_run, environ):
        """Non-zero exit produces a failed result."""
        fake_run.add("cmake", exit_code=2)
        result = run_probe("cmake", "--help", environ=environ, capture=False)
        assert result.success is False
        assert result.exit_code == 2

    def test_not_found(self, fake_run, environ):
        """A missing binary raises ToolNotFoundError."""
        with pytest.raises(ToolNotFoundError) as exc_info:
            run_probe("frobnicate", "--help", environ=environ)
        assert "could not find `frobnicate` in path" in str(exc_info.value)

    def test_undecodable_output(self, fake_run, environ):
        """Invalid UTF-8 is a hard error."""
        fake_run.add("clang", stdout=b"clang version \xff\xfe")
        with pytest.raises(OutputUndecodableError):
            run_probe("clang", "--version", environ=environ)

    def test_undecodable_output_ignored_when_not_captured(self, fake_run, environ):
        """Discarded output is never decoded."""
        fake_run.add("run-clang-tidy", stdout=b"\xff")
        result = run_probe("run-clang-tidy", "--help", environ=environ, capture=False)
        assert result.success
        assert result.stdout == ""

    def test_empty_binary_rejected(self):
        """An empty binary name is a caller error."""
        with pytest.raises(ValueError):
            run_probe("", "--version")

    def test_overlay_applied_to_child_only(self, fake_run, environ):
        """The overlay reaches the child; os.environ is untouched."""
        fake_run.add("clang")
        before = dict(os.environ)
        run_probe("clang", "--version", env_vars={"PATH": "/opt/llvm/bin"}, environ=environ)
        _, kwargs = fake_run.calls[0]
        assert kwargs["env"]["PATH"] == "/opt/llvm/bin"
        assert kwargs["env"]["HOME"] == "/home/dev"
        assert dict(os.environ) == before

    def test_args_precede_flag(self, fake_run, environ):
        """Extra arguments are placed before the diagnostic flag."""
        fake_run.add("python3")
        run_probe("python3", "--help", environ=environ, args=("/p/run-clang-format.py",))
        assert fake_run.argvs[0] == ["python3", "/p/run-clang-format.py", "--help"]

    def test_stdin_isolated_and_stderr_discarded(self, fake_run, environ):
        """Probes never read stdin or print stderr."""
        fake_run.add("clang")
        run_probe("clang", "--version", environ=environ)
        _, kwargs = fake_run.calls[0]
        assert kwargs["stdin"] == subprocess.DEVNULL
        assert kwargs["stderr"] == subprocess.DEVNULL

    def test_other_os_errors_propagate(self, environ):
        """Spawn errors other than not-found are not translated."""
        with patch("subprocess.run", side_effect=PermissionError(13, "Permission denied")):
            with pytest.raises(PermissionError):
                run_probe("clang", "--version", environ=environ)
