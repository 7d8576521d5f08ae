"""Core modules for execrunner.

This package contains the execution machinery: options, environment
sanitizing, stream provisioning, platform spawners, the executor and the
shell-pipe runner, plus exceptions, logging and configuration.
"""

from .config import ExecRunnerConfig, load_config
from .environment import sanitized_environment, with_env
from .exceptions import (
    # Error codes
    E_EXIT_STATUS,
    E_SPAWN,
    E_VALIDATION,
    ConfigurationError,
    ExecRunnerException,
    ExecutionFailure,
    InvalidOptionError,
    SpawnError,
    format_error_for_log,
    format_error_for_user,
)
from .executor import (
    ExecutionResult,
    Executor,
    ExitStatus,
    clear_execution_stub,
    current_execution_stub,
    execute,
    execution_stub,
    get_default_executor,
    register_execution_stub,
)
from .options import ExecutionOptions
from .pipe import execute_pipe
from .spawner import ProcessSpawner, get_default_spawner
from .streams import ResolvedStreams, provision_streams

__all__ = [
    # Error codes
    "E_EXIT_STATUS",
    "E_SPAWN",
    "E_VALIDATION",
    # Exception classes
    "ConfigurationError",
    "ExecRunnerException",
    "ExecutionFailure",
    "InvalidOptionError",
    "SpawnError",
    # Execution
    "ExecRunnerConfig",
    "ExecutionOptions",
    "ExecutionResult",
    "Executor",
    "ExitStatus",
    "ProcessSpawner",
    "ResolvedStreams",
    "clear_execution_stub",
    "current_execution_stub",
    "execute",
    "execute_pipe",
    "execution_stub",
    "get_default_executor",
    "get_default_spawner",
    "load_config",
    "provision_streams",
    "register_execution_stub",
    "sanitized_environment",
    "with_env",
    # Error formatting utilities
    "format_error_for_log",
    "format_error_for_user",
]
