"""Platform spawner implementations.

- PosixSpawner: fork + exec with setsid, fd rebinding and uid/gid switching
- WindowsSpawner: CreateProcessW with explicit standard handles
"""

from execrunner.core.spawners.posix_spawner import PosixSpawner
from execrunner.core.spawners.windows_spawner import (
    WindowsProcessInfo,
    WindowsSpawner,
    build_command_line,
)

__all__ = ["PosixSpawner", "WindowsProcessInfo", "WindowsSpawner", "build_command_line"]
