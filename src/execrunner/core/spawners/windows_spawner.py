"""CreateProcessW based spawner for Windows hosts.

Argument vectors are folded into one command line; the three resolved
streams become the child's standard handles. The spawner never closes its
own copies of the stream handles, the executor's cleanup does that.
"""

import ctypes
import os
from collections.abc import Sequence
from dataclasses import dataclass
from typing import IO, Protocol

from execrunner.core.exceptions import InvalidOptionError, SpawnError
from execrunner.core.options import ExecutionOptions
from execrunner.core.spawner import ProcessSpawner
from execrunner.core.streams import ResolvedStreams

DWORD = ctypes.c_uint32
WORD = ctypes.c_uint16
HANDLE = ctypes.c_void_p

STARTF_USESTDHANDLES = 0x00000100
INFINITE = 0xFFFFFFFF
WAIT_OBJECT_0 = 0x00000000


class STARTUPINFOW(ctypes.Structure):
    _fields_ = [
        ("cb", DWORD),
        ("lpReserved", ctypes.c_wchar_p),
        ("lpDesktop", ctypes.c_wchar_p),
        ("lpTitle", ctypes.c_wchar_p),
        ("dwX", DWORD),
        ("dwY", DWORD),
        ("dwXSize", DWORD),
        ("dwYSize", DWORD),
        ("dwXCountChars", DWORD),
        ("dwYCountChars", DWORD),
        ("dwFillAttribute", DWORD),
        ("dwFlags", DWORD),
        ("wShowWindow", WORD),
        ("cbReserved2", WORD),
        ("lpReserved2", ctypes.POINTER(ctypes.c_ubyte)),
        ("hStdInput", HANDLE),
        ("hStdOutput", HANDLE),
        ("hStdError", HANDLE),
    ]


class PROCESS_INFORMATION(ctypes.Structure):
    _fields_ = [
        ("hProcess", HANDLE),
        ("hThread", HANDLE),
        ("dwProcessId", DWORD),
        ("dwThreadId", DWORD),
    ]


@dataclass(frozen=True)
class WindowsProcessInfo:
    """Handles of a freshly created child; owned by ``WindowsSpawner.wait``."""

    process_handle: int
    thread_handle: int
    process_id: int


def quote_argument(token: str) -> str:
    """Quote a token containing whitespace, escaping embedded double quotes."""
    if token and not any(ch.isspace() for ch in token):
        return token
    return '"' + token.replace('"', '\\"') + '"'


def build_command_line(tokens: Sequence[str]) -> str:
    """Join tokens into one command line without changing argument boundaries.

    ``["run", "with spaces"]`` becomes ``run "with spaces"``.
    """
    return " ".join(quote_argument(token) for token in tokens)


class WindowsProcessApi(Protocol):
    """The native calls the spawner needs."""

    def create_process(
        self, command_line: str, stdin: IO[bytes], stdout: IO[bytes], stderr: IO[bytes]
    ) -> WindowsProcessInfo: ...

    def wait_process(self, process_handle: int) -> int: ...

    def close_handle(self, handle: int) -> None: ...


class Kernel32ProcessApi:
    """ctypes bindings to kernel32 process functions."""

    def __init__(self) -> None:
        self._kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)  # type: ignore[attr-defined]

        k = self._kernel32
        k.CreateProcessW.argtypes = [
            ctypes.c_wchar_p,
            ctypes.c_wchar_p,
            ctypes.c_void_p,
            ctypes.c_void_p,
            ctypes.c_int,
            DWORD,
            ctypes.c_void_p,
            ctypes.c_wchar_p,
            ctypes.POINTER(STARTUPINFOW),
            ctypes.POINTER(PROCESS_INFORMATION),
        ]
        k.CreateProcessW.restype = ctypes.c_int
        k.WaitForSingleObject.argtypes = [HANDLE, DWORD]
        k.WaitForSingleObject.restype = DWORD
        k.GetExitCodeProcess.argtypes = [HANDLE, ctypes.POINTER(DWORD)]
        k.GetExitCodeProcess.restype = ctypes.c_int
        k.CloseHandle.argtypes = [HANDLE]
        k.CloseHandle.restype = ctypes.c_int

    @staticmethod
    def _inheritable_handle(stream: IO[bytes]) -> int:
        import msvcrt

        handle = msvcrt.get_osfhandle(stream.fileno())  # type: ignore[attr-defined]
        os.set_handle_inheritable(handle, True)  # type: ignore[attr-defined]
        return handle

    @staticmethod
    def _last_error() -> OSError:
        return ctypes.WinError(ctypes.get_last_error())  # type: ignore[attr-defined]

    def create_process(
        self, command_line: str, stdin: IO[bytes], stdout: IO[bytes], stderr: IO[bytes]
    ) -> WindowsProcessInfo:
        si = STARTUPINFOW()
        si.cb = ctypes.sizeof(STARTUPINFOW)
        si.dwFlags |= STARTF_USESTDHANDLES
        si.hStdInput = self._inheritable_handle(stdin)
        si.hStdOutput = self._inheritable_handle(stdout)
        si.hStdError = self._inheritable_handle(stderr)

        pi = PROCESS_INFORMATION()
        # CreateProcessW may write into the command line buffer
        cmdline_buf = ctypes.create_unicode_buffer(command_line)

        ok = self._kernel32.CreateProcessW(
            None,
            cmdline_buf,
            None,
            None,
            True,
            0,
            None,
            None,
            ctypes.byref(si),
            ctypes.byref(pi),
        )
        if not ok:
            raise self._last_error()
        return WindowsProcessInfo(
            process_handle=pi.hProcess,
            thread_handle=pi.hThread,
            process_id=pi.dwProcessId,
        )

    def wait_process(self, process_handle: int) -> int:
        result = self._kernel32.WaitForSingleObject(process_handle, INFINITE)
        if result != WAIT_OBJECT_0:
            raise self._last_error()
        exit_code = DWORD()
        if not self._kernel32.GetExitCodeProcess(process_handle, ctypes.byref(exit_code)):
            raise self._last_error()
        return int(exit_code.value)

    def close_handle(self, handle: int) -> None:
        if handle and not self._kernel32.CloseHandle(handle):
            raise self._last_error()


class WindowsSpawner(ProcessSpawner):
    """Spawn children with CreateProcessW; wait on the process handle."""

    def __init__(self, api: WindowsProcessApi | None = None) -> None:
        """Initialize Windows spawner.

        Args:
            api: Native process API (default: kernel32 via ctypes)
        """
        self._api = api

    @property
    def api(self) -> WindowsProcessApi:
        if self._api is None:
            self._api = Kernel32ProcessApi()
        return self._api

    def get_name(self) -> str:
        """Get spawner name."""
        return "windows"

    def spawn(
        self,
        command: str | list[str],
        options: ExecutionOptions,
        streams: ResolvedStreams,
    ) -> WindowsProcessInfo:
        """Create the child and return its handles without waiting.

        Raises:
            InvalidOptionError: If uid or gid is set
            SpawnError: If CreateProcessW fails
        """
        for name in ("uid", "gid"):
            if getattr(options, name) is not None:
                raise InvalidOptionError(
                    f"{name} is not supported on Windows", option=name, reason="unsupported"
                )

        command_line = command if isinstance(command, str) else build_command_line(command)

        try:
            return self.api.create_process(
                command_line, streams.stdin, streams.stdout, streams.stderr
            )
        except OSError as e:
            raise SpawnError(f"CreateProcess failed: {e}", command=command_line) from e

    def wait(self, handle: WindowsProcessInfo) -> int:
        """Wait on the process handle; both handles are closed even if waiting fails."""
        try:
            return self.api.wait_process(handle.process_handle)
        finally:
            try:
                self.api.close_handle(handle.thread_handle)
            finally:
                self.api.close_handle(handle.process_handle)
