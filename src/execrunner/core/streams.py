"""Standard stream provisioning for child processes.

Resolves stdin/stdout/stderr to open binary file objects: the caller's input
file or the null device for stdin, a fresh temporary file or the null device
for stdout, and the null device or the stdout alias for stderr.
"""

import contextlib
import os
import tempfile
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

from execrunner.core.config import ExecRunnerConfig
from execrunner.core.exceptions import InvalidOptionError
from execrunner.core.logger import get_logger
from execrunner.core.options import ExecutionOptions

# Returns an open, writable binary file object with a ``name`` path
TempFileFactory = Callable[[], IO[bytes]]


def default_tempfile_factory(config: ExecRunnerConfig | None = None) -> TempFileFactory:
    """Build a factory creating named temp files that survive their handle."""
    config = config or ExecRunnerConfig()

    def factory() -> IO[bytes]:
        return tempfile.NamedTemporaryFile(
            mode="w+b",
            prefix=config.temp_prefix,
            suffix=".out",
            dir=config.temp_dir,
            delete=False,
        )

    return factory


@dataclass
class ResolvedStreams:
    """The three streams handed to one child, plus cleanup bookkeeping.

    Owned by exactly one execution. ``stderr`` may be the same object as
    ``stdout`` when output is combined.
    """

    stdin: IO[bytes]
    stdout: IO[bytes]
    stderr: IO[bytes]
    output_path: str | None = None
    _closed: bool = field(default=False, repr=False)

    @property
    def combined(self) -> bool:
        return self.stderr is self.stdout

    def read_output(self) -> str:
        """Read everything the child wrote to the temp output file."""
        if self.output_path is None:
            return ""
        if not self.stdout.closed:
            self.stdout.flush()
        data = Path(self.output_path).read_bytes()
        return data.decode("utf-8", errors="replace")

    def close(self) -> None:
        """Close each distinct handle once and delete the temp output file."""
        if self._closed:
            return
        self._closed = True

        seen: set[int] = set()
        errors: list[BaseException] = []
        for stream in (self.stdin, self.stdout, self.stderr):
            if id(stream) in seen:
                continue
            seen.add(id(stream))
            try:
                stream.close()
            except OSError as e:
                errors.append(e)

        if self.output_path is not None:
            try:
                os.unlink(self.output_path)
            except FileNotFoundError:
                pass
            except OSError as e:
                # Windows refuses to delete files another handle still holds open
                get_logger().warn(
                    "Could not remove temporary output file",
                    path=self.output_path,
                    error=str(e),
                )

        if errors:
            raise errors[0]

    def __enter__(self) -> "ResolvedStreams":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _open_null(mode: str) -> IO[bytes]:
    return open(os.devnull, mode)  # noqa: SIM115


def provision_streams(
    options: ExecutionOptions,
    tempfile_factory: TempFileFactory | None = None,
) -> ResolvedStreams:
    """Open the streams described by ``options``.

    Raises:
        InvalidOptionError: If stdin_file does not name an existing file
    """
    if options.stdin_file is not None and not os.path.isfile(options.stdin_file):
        raise InvalidOptionError(
            f"stdin_file {options.stdin_file} does not exist",
            option="stdin_file",
            reason="missing",
        )

    factory = tempfile_factory or default_tempfile_factory()
    opened: list[IO[bytes]] = []
    output_path: str | None = None

    try:
        if options.stdin_file is not None:
            stdin = open(options.stdin_file, "rb")  # noqa: SIM115
        else:
            stdin = _open_null("rb")
        opened.append(stdin)

        if options.squelch:
            stdout = _open_null("wb")
            opened.append(stdout)
            stderr = _open_null("wb")
            opened.append(stderr)
        else:
            stdout = factory()
            opened.append(stdout)
            output_path = os.fspath(stdout.name)
            if options.combine:
                stderr = stdout
            else:
                stderr = _open_null("wb")
                opened.append(stderr)
    except BaseException:
        for stream in opened:
            stream.close()
        if output_path is not None:
            with contextlib.suppress(OSError):
                os.unlink(output_path)
        raise

    return ResolvedStreams(stdin=stdin, stdout=stdout, stderr=stderr, output_path=output_path)
