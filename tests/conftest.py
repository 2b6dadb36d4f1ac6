"""
Shared fixtures: a fake ``subprocess.run`` that simulates installed binaries,
plus a sample configuration and a clean logging state.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field

import pytest

from xtask.config import Config


@dataclass
class FakeBinary:
    """A simulated binary: responses are consumed in order, the last one repeats."""
    results: list[tuple[int, bytes]]
    path: str | None = None  # only visible when this directory is on PATH
    calls: int = 0

    def next_result(self) -> tuple[int, bytes]:
        index = min(self.calls, len(self.results) - 1)
        self.calls += 1
        return self.results[index]


@dataclass
class FakeRunner:
    """Callable stand-in for subprocess.run that records every invocation."""
    binaries: dict[str, FakeBinary] = field(default_factory=dict)
    calls: list[tuple[list[str], dict]] = field(default_factory=list)

    def add(self, binary: str, stdout: bytes = b"", exit_code: int = 0, path: str | None = None) -> FakeBinary:
        fake = FakeBinary(results=[(exit_code, stdout)], path=path)
        self.binaries[binary] = fake
        return fake

    def add_sequence(self, binary: str, results: list[tuple[int, bytes]]) -> FakeBinary:
        fake = FakeBinary(results=list(results))
        self.binaries[binary] = fake
        return fake

    @property
    def argvs(self) -> list[list[str]]:
        return [argv for argv, _ in self.calls]

    def __call__(self, argv, **kwargs):
        argv = list(argv)
        self.calls.append((argv, kwargs))

        fake = self.binaries.get(argv[0])
        env = kwargs.get("env") or {}
        if fake is None:
            raise FileNotFoundError(2, "No such file or directory", argv[0])
        if fake.path is not None and fake.path not in env.get("PATH", "").split(os.pathsep):
            raise FileNotFoundError(2, "No such file or directory", argv[0])

        exit_code, stdout = fake.next_result()
        captured = kwargs.get("stdout") == subprocess.PIPE or kwargs.get("capture_output")
        if kwargs.get("text") and captured:
            stdout = stdout.decode("utf-8")
        return subprocess.CompletedProcess(argv, exit_code, stdout=stdout if captured else None)


@pytest.fixture
def fake_run(monkeypatch) -> FakeRunner:
    """Replace subprocess.run for the duration of a test."""
    runner = FakeRunner()
    monkeypatch.setattr(subprocess, "run", runner)
    return runner


@pytest.fixture
def environ() -> dict[str, str]:
    """A minimal ambient environment passed explicitly instead of os.environ."""
    return {"PATH": os.pathsep.join(["/usr/bin", "/bin"]), "HOME": "/home/dev"}


@pytest.fixture
def config(tmp_path) -> Config:
    """Default configuration rooted in a temporary project directory."""
    config_file = tmp_path / "xtask.yml"
    config_file.write_text("version: 1\n", encoding="utf-8")
    return Config(source=str(config_file))


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by setup_logging so streams do not leak between tests."""
    yield
    logger = logging.getLogger("xtask")
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
