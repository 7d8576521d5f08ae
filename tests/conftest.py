"""Shared fixtures for execrunner tests."""

import os

# Keep test runs from writing to ~/.execrunner/logs
os.environ.setdefault("EXECRUNNER_DISABLE_FILE_LOGGING", "1")

from typing import Any  # noqa: E402

import pytest  # noqa: E402

from execrunner.core import executor as executor_module  # noqa: E402
from execrunner.core import logger as logger_module  # noqa: E402
from execrunner.core.options import ExecutionOptions  # noqa: E402
from execrunner.core.spawner import ProcessSpawner  # noqa: E402
from execrunner.core.streams import ResolvedStreams  # noqa: E402


class FakeSpawner(ProcessSpawner):
    """Records spawns instead of creating processes.

    Writes ``output`` into the child's stdout like a real child would, and
    remembers the environment visible at spawn time.
    """

    def __init__(self, exit_code: int = 0, output: bytes = b"", pid: int = 5501) -> None:
        self.exit_code = exit_code
        self.output = output
        self.pid = pid
        self.spawned: list[tuple[Any, ExecutionOptions, ResolvedStreams]] = []
        self.environ_at_spawn: dict[str, str] = {}
        self.waited: list[Any] = []

    def get_name(self) -> str:
        return "fake"

    def spawn(self, command, options, streams):
        self.spawned.append((command, options, streams))
        self.environ_at_spawn = dict(os.environ)
        if self.output:
            streams.stdout.write(self.output)
        return self.pid

    def wait(self, handle):
        self.waited.append(handle)
        return self.exit_code


@pytest.fixture
def make_spawner():
    """Factory for FakeSpawner instances."""
    return FakeSpawner


@pytest.fixture
def saved_environ():
    """Fail the test if it leaves os.environ different from how it found it."""
    before = {k: v for k, v in os.environ.items() if k != "PYTEST_CURRENT_TEST"}
    yield before
    after = {k: v for k, v in os.environ.items() if k != "PYTEST_CURRENT_TEST"}
    for key, value in before.items():
        assert after.get(key) == value, f"{key} changed from {value!r} to {after.get(key)!r}"
    assert sorted(set(after) - set(before)) == []


@pytest.fixture(autouse=True)
def reset_default_executor():
    """Give each test a fresh shared executor with no stub registered."""
    executor_module._default_executor = None
    yield
    executor_module._default_executor = None


@pytest.fixture(autouse=True)
def reset_default_logger(monkeypatch):
    """Build the shared logger fresh per test, quiet unless a test raises the level."""
    monkeypatch.setenv("EXECRUNNER_LOG_LEVEL", "CRITICAL")
    logger_module._default_logger = None
    yield
    logger_module._default_logger = None
