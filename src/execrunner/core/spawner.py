"""Process spawning abstraction.

Provides one interface over the two process-creation models: fork + exec on
POSIX hosts and a single CreateProcessW call on Windows. The variant is picked
once by ``get_default_spawner`` so call sites never branch on the platform.
"""

import sys
from abc import ABC, abstractmethod
from typing import Any

from execrunner.core.config import ExecRunnerConfig
from execrunner.core.options import ExecutionOptions
from execrunner.core.streams import ResolvedStreams


class ProcessSpawner(ABC):
    """Abstract interface for creating a child process and waiting for it.

    ``spawn`` returns immediately with a platform-specific child handle;
    ``wait`` takes ownership of that handle, blocks until the child exits,
    releases any OS handles and returns the exit code.
    """

    @abstractmethod
    def spawn(
        self,
        command: str | list[str],
        options: ExecutionOptions,
        streams: ResolvedStreams,
    ) -> Any:
        """Create the child process without waiting for it.

        Args:
            command: Shell string or argument vector (already normalized)
            options: Execution options (uid/gid are honored here)
            streams: Open stdin/stdout/stderr for the child

        Returns:
            Opaque child handle to pass to ``wait``

        Raises:
            SpawnError: If the process could not be created
            InvalidOptionError: If an option is unsupported on this platform
        """
        ...

    @abstractmethod
    def wait(self, handle: Any) -> int:
        """Block until the child exits and return its exit code."""
        ...

    @abstractmethod
    def get_name(self) -> str:
        """Get spawner name for logging/debugging."""
        ...


def get_default_spawner(config: ExecRunnerConfig | None = None) -> ProcessSpawner:
    """Return the spawner for the host platform.

    On POSIX, string commands run through ``config.shell``.
    """
    if sys.platform == "win32":
        from execrunner.core.spawners.windows_spawner import WindowsSpawner

        return WindowsSpawner()

    from execrunner.core.spawners.posix_spawner import PosixSpawner

    config = config or ExecRunnerConfig()
    return PosixSpawner(shell=config.shell)
