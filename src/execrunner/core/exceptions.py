"""Exception hierarchy with error codes for execrunner.

Spawn failures and invalid options are fatal and always propagate.
ExecutionFailure is policy gated: the executor only raises it when the caller
asked to fail on a nonzero exit status.
"""

from dataclasses import dataclass, field
from typing import Any

# Standard error codes
E_VALIDATION = "E_VALIDATION"
E_SPAWN = "E_SPAWN"
E_EXIT_STATUS = "E_EXIT_STATUS"


@dataclass
class ExecRunnerException(Exception):  # noqa: N818
    """Base exception for all execrunner-specific errors.

    Provides structured error handling with error codes and metadata for
    consistent error reporting across the system.
    """

    message: str
    error_code: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Return human-readable error message."""
        return self.message

    def __post_init__(self) -> None:
        """Initialize the exception with the message."""
        super().__init__(self.message)


@dataclass
class ExecutionFailure(ExecRunnerException):
    """A child process ran but exited with a nonzero status.

    Only raised when the caller opted into failing on failure. Carries the
    command string, the child's raw exit code and whatever output was captured.
    """

    command: str = ""
    exit_code: int | None = None
    output: str | None = None

    def __post_init__(self) -> None:
        """Initialize with execution metadata."""
        if not self.error_code:
            self.error_code = E_EXIT_STATUS
        if self.command:
            self.metadata["command"] = self.command
        if self.exit_code is not None:
            self.metadata["exit_code"] = self.exit_code
        super().__post_init__()


@dataclass
class SpawnError(ExecRunnerException):
    """The child process could not be created at all."""

    command: str = ""

    def __post_init__(self) -> None:
        """Initialize with the command that failed to start."""
        if not self.error_code:
            self.error_code = E_SPAWN
        if self.command:
            self.metadata["command"] = self.command
        super().__post_init__()


@dataclass
class InvalidOptionError(ExecRunnerException):
    """An execution option is unknown, malformed or unusable on this platform.

    Raised before any process is spawned.
    """

    option: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        """Initialize with option-specific metadata."""
        if not self.error_code:
            self.error_code = E_VALIDATION
        if self.option:
            self.metadata["option"] = self.option
        if self.reason:
            self.metadata["reason"] = self.reason
        super().__post_init__()


@dataclass
class ConfigurationError(ExecRunnerException):
    """Error in system configuration.

    Raised for invalid config values or configuration file problems.
    """

    key: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        """Initialize with configuration-specific metadata."""
        if not self.error_code:
            self.error_code = E_VALIDATION
        if self.key:
            self.metadata["config_key"] = self.key
        if self.reason:
            self.metadata["reason"] = self.reason
        super().__post_init__()


def format_error_for_user(exception: ExecRunnerException) -> str:
    """Format exception for user-friendly display.

    Args:
        exception: The execrunner exception to format

    Returns:
        Human-readable error message without internal details
    """
    if isinstance(exception, ExecutionFailure):
        return exception.message

    if isinstance(exception, SpawnError):
        if exception.command:
            return f"Could not start '{exception.command}': {exception.message}"
        return f"Could not start process: {exception.message}"

    if isinstance(exception, InvalidOptionError):
        if exception.option:
            return f"Invalid option '{exception.option}': {exception.message}"
        return f"Invalid option: {exception.message}"

    if isinstance(exception, ConfigurationError):
        if exception.key:
            return f"Configuration error '{exception.key}': {exception.message}"
        return f"Configuration error: {exception.message}"

    return str(exception.message)


def format_error_for_log(exception: ExecRunnerException) -> dict[str, Any]:
    """Format exception for structured logging.

    Args:
        exception: The execrunner exception to format

    Returns:
        Dictionary with structured error information for logs
    """
    log_data: dict[str, Any] = {
        "error_type": type(exception).__name__,
        "message": exception.message,
        "error_code": exception.error_code,
    }

    if exception.metadata:
        log_data["metadata"] = exception.metadata

    if isinstance(exception, ExecutionFailure):
        log_data["command"] = exception.command
        if exception.exit_code is not None:
            log_data["exit_code"] = exception.exit_code

    elif isinstance(exception, SpawnError):
        if exception.command:
            log_data["command"] = exception.command

    elif isinstance(exception, InvalidOptionError):
        if exception.option:
            log_data["option"] = exception.option
        if exception.reason:
            log_data["reason"] = exception.reason

    elif isinstance(exception, ConfigurationError):
        if exception.key:
            log_data["config_key"] = exception.key
        if exception.reason:
            log_data["reason"] = exception.reason

    return log_data
