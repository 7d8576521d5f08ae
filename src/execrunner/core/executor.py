"""Command execution entry point.

``Executor.run`` resolves streams, spawns the child inside a sanitized
environment, waits for it, reads back captured output and always cleans up.
It returns a tagged ``ExecutionResult``; ``Executor.execute`` applies the
fail-on-fail policy on top and returns the captured text.

Tests swap real spawning out by giving the executor a stub, either directly
(``Executor(stub=...)``) or on the shared default executor through
``register_execution_stub`` / ``execution_stub``.
"""

import threading
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any

from execrunner.core.config import ExecRunnerConfig, load_config
from execrunner.core.environment import sanitized_environment
from execrunner.core.exceptions import (
    ExecutionFailure,
    SpawnError,
    format_error_for_log,
)
from execrunner.core.logger import get_logger
from execrunner.core.options import (
    Command,
    ExecutionOptions,
    command_to_string,
    normalize_command,
)
from execrunner.core.spawner import ProcessSpawner, get_default_spawner
from execrunner.core.streams import (
    ResolvedStreams,
    TempFileFactory,
    default_tempfile_factory,
    provision_streams,
)

ExecutionStub = Callable[[Command, ExecutionOptions, ResolvedStreams], Any]


class ExitStatus(Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one execution.

    Attributes:
        command: Command as a display string
        exit_code: Raw exit code of the child (0 for stubbed runs)
        output: Captured text, or None when squelched
        stubbed: True when an execution stub produced the result
    """

    command: str
    exit_code: int
    output: Any = None
    stubbed: bool = False

    @property
    def status(self) -> ExitStatus:
        return ExitStatus.SUCCESS if self.exit_code == 0 else ExitStatus.FAILURE

    @property
    def succeeded(self) -> bool:
        return self.status is ExitStatus.SUCCESS

    def raise_for_status(self) -> None:
        """Raise ExecutionFailure if the child exited nonzero."""
        if self.succeeded:
            return
        message = f"Execution of '{self.command}' returned {self.exit_code}"
        if self.output:
            message += f": {str(self.output).strip()}"
        raise ExecutionFailure(
            message,
            command=self.command,
            exit_code=self.exit_code,
            output=self.output,
        )


class Executor:
    """Runs commands as child processes and reports what happened."""

    def __init__(
        self,
        spawner: ProcessSpawner | None = None,
        stub: ExecutionStub | None = None,
        config: ExecRunnerConfig | None = None,
        tempfile_factory: TempFileFactory | None = None,
    ) -> None:
        """Initialize executor.

        Args:
            spawner: Platform spawner (default: chosen from sys.platform on first use)
            stub: Replaces spawning entirely while set (tests only)
            config: Environment scrubbing and temp-file policy
            tempfile_factory: Creates the temp file that captures output
        """
        self.config = config or ExecRunnerConfig()
        self.stub = stub
        self.tempfile_factory = tempfile_factory or default_tempfile_factory(self.config)
        self._spawner = spawner

    @property
    def spawner(self) -> ProcessSpawner:
        if self._spawner is None:
            self._spawner = get_default_spawner(self.config)
        return self._spawner

    def run(
        self,
        command: Command,
        options: ExecutionOptions | Mapping[str, Any] | None = None,
        **overrides: Any,
    ) -> ExecutionResult:
        """Execute ``command`` and return its result without applying fail_on_fail.

        Raises:
            InvalidOptionError: For bad options or a missing stdin_file
            SpawnError: If the child could not be created
        """
        opts = ExecutionOptions.coerce(options, **overrides)
        normalized = normalize_command(command)
        display = command_to_string(normalized)
        logger = get_logger()

        streams = provision_streams(opts, self.tempfile_factory)
        try:
            if self.stub is not None:
                logger.debug("Execution stub invoked", command=display)
                return ExecutionResult(
                    command=display,
                    exit_code=0,
                    output=self.stub(command, opts, streams),
                    stubbed=True,
                )

            with logger.operation(
                "execute", command=display, spawner=self.spawner.get_name()
            ) as record:
                handle = self._spawn(normalized, opts, streams)
                record["pid"] = getattr(handle, "process_id", handle)
                exit_code = self.spawner.wait(handle)
                record["exit_code"] = exit_code

            output = None if opts.squelch else streams.read_output()
        finally:
            streams.close()

        if exit_code != 0:
            logger.info("Command exited nonzero", command=display, exit_code=exit_code)
        return ExecutionResult(command=display, exit_code=exit_code, output=output)

    def _spawn(
        self, command: str | list[str], options: ExecutionOptions, streams: ResolvedStreams
    ) -> Any:
        # The child copies the environment at creation, so the overlay ends with the spawn
        try:
            with sanitized_environment(options, self.config):
                return self.spawner.spawn(command, options, streams)
        except SpawnError as e:
            get_logger().error("Failed to spawn child process", **format_error_for_log(e))
            raise

    def execute(
        self,
        command: Command,
        options: ExecutionOptions | Mapping[str, Any] | None = None,
        **overrides: Any,
    ) -> Any:
        """Execute ``command`` and return its captured output.

        Returns:
            Captured text, None when squelched, or the stub's return value

        Raises:
            ExecutionFailure: If the child exits nonzero and fail_on_fail is set
            InvalidOptionError: For bad options or a missing stdin_file
            SpawnError: If the child could not be created
        """
        opts = ExecutionOptions.coerce(options, **overrides)
        result = self.run(command, opts)
        if opts.fail_on_fail:
            result.raise_for_status()
        return result.output


_default_executor: Executor | None = None
_default_executor_lock = threading.Lock()


def get_default_executor() -> Executor:
    """Return the shared executor, configured from the standard config sources."""
    global _default_executor
    with _default_executor_lock:
        if _default_executor is None:
            _default_executor = Executor(config=load_config())
        return _default_executor


def execute(
    command: Command,
    options: ExecutionOptions | Mapping[str, Any] | None = None,
    **overrides: Any,
) -> Any:
    """Execute ``command`` with the shared executor. See ``Executor.execute``."""
    return get_default_executor().execute(command, options, **overrides)


def register_execution_stub(stub: ExecutionStub) -> None:
    """Make the shared executor call ``stub`` instead of spawning anything."""
    get_default_executor().stub = stub


def clear_execution_stub() -> None:
    """Restore real spawning on the shared executor."""
    get_default_executor().stub = None


def current_execution_stub() -> ExecutionStub | None:
    return get_default_executor().stub


@contextmanager
def execution_stub(stub: ExecutionStub) -> Iterator[ExecutionStub]:
    """Register ``stub`` for the duration of the block, then restore the previous one."""
    executor = get_default_executor()
    previous = executor.stub
    executor.stub = stub
    try:
        yield stub
    finally:
        executor.stub = previous
