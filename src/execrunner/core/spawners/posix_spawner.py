"""Fork/exec based spawner for POSIX hosts.

The child detaches into its own session, rebinds fds 0-2 to the resolved
streams, optionally drops to another group and user, then replaces its image.
It never returns into the caller's code: every path ends in exec or
``os._exit``.
"""

import contextlib
import os
from typing import NoReturn

from execrunner.core.credentials import CredentialSwitcher, PosixCredentialSwitcher
from execrunner.core.exceptions import SpawnError
from execrunner.core.options import ExecutionOptions, command_to_string
from execrunner.core.spawner import ProcessSpawner
from execrunner.core.streams import ResolvedStreams

CHILD_FAILURE_STATUS = 1


def _above_standard_fds(fd: int) -> int:
    """Return a duplicate of ``fd`` numbered above 2, or ``fd`` itself if it already is.

    dup2 onto the same number is a no-op that leaves close-on-exec set.
    """
    while fd <= 2:
        fd = os.dup(fd)
    return fd


class PosixSpawner(ProcessSpawner):
    """Spawn children with os.fork and os.execvp; wait with os.waitpid."""

    def __init__(
        self,
        credentials: CredentialSwitcher | None = None,
        shell: str = "/bin/sh",
    ) -> None:
        """Initialize POSIX spawner.

        Args:
            credentials: Identity switcher used for uid/gid (default: setgid/setuid)
            shell: Shell that interprets string commands
        """
        self.credentials = credentials or PosixCredentialSwitcher()
        self.shell = shell

    def get_name(self) -> str:
        """Get spawner name."""
        return "posix"

    def build_argv(self, command: str | list[str]) -> list[str]:
        """Argument vectors pass through untouched; strings go to ``shell -c``.

        The shell runs newline-separated statements one after another, so a
        multi-line string needs no splitting here.
        """
        if isinstance(command, str):
            return [self.shell, "-c", command]
        return list(command)

    def spawn(
        self,
        command: str | list[str],
        options: ExecutionOptions,
        streams: ResolvedStreams,
    ) -> int:
        """Fork a child that execs ``command`` and return its pid without waiting.

        Raises:
            SpawnError: If fork itself fails
        """
        try:
            pid = os.fork()
        except OSError as e:
            raise SpawnError(
                f"Failed to fork: {e}", command=command_to_string(command)
            ) from e

        if pid == 0:
            self._run_child(command, options, streams)

        return pid

    def _run_child(
        self,
        command: str | list[str],
        options: ExecutionOptions,
        streams: ResolvedStreams,
    ) -> NoReturn:
        try:
            # New session: signals aimed at our process group must not reach the child
            os.setsid()

            # Sources may already sit on 0-2 when the parent had those closed
            sources = [
                _above_standard_fds(stream.fileno())
                for stream in (streams.stdin, streams.stdout, streams.stderr)
            ]
            for target, fd in enumerate(sources):
                os.dup2(fd, target)

            # Group first: after setuid we may lack the privilege to setgid
            if options.gid is not None:
                self.credentials.change_group(options.gid, permanently=True)
            if options.uid is not None:
                self.credentials.change_user(options.uid, permanently=True)

            argv = self.build_argv(command)
            os.execvp(argv[0], argv)
        except BaseException as e:
            message = f"Could not execute '{command_to_string(command)}': {e}\n"
            with contextlib.suppress(OSError):
                os.write(2, message.encode("utf-8", errors="replace"))
        finally:
            os._exit(CHILD_FAILURE_STATUS)

    def wait(self, handle: int) -> int:
        """Wait for ``handle`` (a pid); signal deaths map to negative codes."""
        _, status = os.waitpid(handle, 0)
        return os.waitstatus_to_exitcode(status)
