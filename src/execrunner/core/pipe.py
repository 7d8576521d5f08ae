"""Run a command through the platform shell with stdout and stderr merged.

Used when shell features such as globbing or pipelines are needed. Unlike
the executor, no environment scrubbing happens here.
"""

import subprocess
from collections.abc import Sequence
from typing import IO, cast

from execrunner.core.environment import environment_lock
from execrunner.core.exceptions import ExecutionFailure, SpawnError
from execrunner.core.logger import get_logger


def _strip_line_ending(text: str) -> str:
    return text.removesuffix("\n").removesuffix("\r")


def execute_pipe(command: str | Sequence[str], fail_on_fail: bool = True) -> str:
    """Run ``command 2>&1`` through the shell and return everything it printed.

    Token sequences are joined with single spaces, without quoting.

    Raises:
        ExecutionFailure: If the shell exits nonzero and fail_on_fail is set
        SpawnError: If the shell itself could not be started
    """
    command_str = command if isinstance(command, str) else " ".join(command)
    logger = get_logger()

    # The shell copies os.environ at creation; keep other threads' overlays out of it
    try:
        with environment_lock:
            proc = subprocess.Popen(  # noqa: S602
                f"{command_str} 2>&1",
                shell=True,
                stdout=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
    except OSError as e:
        raise SpawnError(f"Failed to start shell: {e}", command=command_str) from e

    with proc:
        lines = list(cast(IO[str], proc.stdout))
        exit_code = proc.wait()

    output = _strip_line_ending("".join(lines))
    logger.debug("Pipe command finished", command=command_str, exit_code=exit_code)

    if exit_code != 0 and fail_on_fail:
        raise ExecutionFailure(
            f"Execution of '{command_str}' returned {exit_code}: {output}",
            command=command_str,
            exit_code=exit_code,
            output=output,
        )
    return output
