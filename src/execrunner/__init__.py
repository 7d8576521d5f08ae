"""
execrunner

Cross-platform child-process execution for configuration management: run a
command line or argument vector with a scrubbed environment, captured output
and deterministic cleanup on POSIX and Windows hosts.
"""

__version__ = "0.3.0"
__license__ = "MIT"

from execrunner.core.config import ExecRunnerConfig
from execrunner.core.exceptions import (
    ConfigurationError,
    ExecRunnerException,
    ExecutionFailure,
    InvalidOptionError,
    SpawnError,
)
from execrunner.core.executor import (
    ExecutionResult,
    Executor,
    clear_execution_stub,
    execute,
    execution_stub,
    register_execution_stub,
)
from execrunner.core.options import ExecutionOptions
from execrunner.core.pipe import execute_pipe

__all__ = [
    # Version
    "__version__",
    # Execution
    "ExecRunnerConfig",
    "ExecutionOptions",
    "ExecutionResult",
    "Executor",
    "execute",
    "execute_pipe",
    # Test stubs
    "clear_execution_stub",
    "execution_stub",
    "register_execution_stub",
    # Exceptions
    "ConfigurationError",
    "ExecRunnerException",
    "ExecutionFailure",
    "InvalidOptionError",
    "SpawnError",
]
