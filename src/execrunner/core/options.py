"""Execution options and command normalization.

A command is either a single string, interpreted by a shell, or a sequence of
tokens that reach the child verbatim. Options are a frozen dataclass so a
partial mapping always resolves to the same value as the fully spelled-out
defaults.
"""

import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Union

from execrunner.core.exceptions import InvalidOptionError

Command = Union[str, Sequence[Union[str, "os.PathLike[str]"]]]


@dataclass(frozen=True)
class ExecutionOptions:
    """Per-invocation execution settings.

    Attributes:
        fail_on_fail: Raise ExecutionFailure when the child exits nonzero
        squelch: Discard all child output instead of capturing it
        combine: Merge stderr into the captured stdout (ignored when squelched)
        stdin_file: Existing file bound to the child's stdin (null device if None)
        uid: User to switch to permanently before exec (POSIX only)
        gid: Group to switch to permanently before exec (POSIX only)
        override_locale: Force LANG/LC_ALL to the neutral locale
        custom_environment: Extra variables applied after scrubbing
    """

    fail_on_fail: bool = True
    squelch: bool = False
    combine: bool = False
    stdin_file: str | None = None
    uid: int | None = None
    gid: int | None = None
    override_locale: bool = True
    custom_environment: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate and normalize option values."""
        for name in ("fail_on_fail", "squelch", "combine", "override_locale"):
            if not isinstance(getattr(self, name), bool):
                raise InvalidOptionError(
                    f"{name} must be a bool, got {type(getattr(self, name)).__name__}",
                    option=name,
                )

        if self.stdin_file is not None:
            object.__setattr__(self, "stdin_file", os.fspath(self.stdin_file))

        for name in ("uid", "gid"):
            value = getattr(self, name)
            if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                raise InvalidOptionError(f"{name} must be an integer id", option=name)

        if self.custom_environment is None:
            object.__setattr__(self, "custom_environment", {})
        env = dict(self.custom_environment)
        for key, value in env.items():
            if not isinstance(key, str) or not key or "=" in key:
                raise InvalidOptionError(
                    f"Invalid environment variable name: {key!r}",
                    option="custom_environment",
                )
            if not isinstance(value, str):
                raise InvalidOptionError(
                    f"Environment value for {key} must be a string",
                    option="custom_environment",
                )
        object.__setattr__(self, "custom_environment", env)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExecutionOptions":
        """Build options from a partial mapping; unknown keys are rejected."""
        valid_keys = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - valid_keys)
        if unknown:
            raise InvalidOptionError(
                f"Unknown execution option(s): {', '.join(unknown)}",
                option=unknown[0],
                reason="unknown",
            )
        return cls(**dict(data))

    @classmethod
    def coerce(
        cls,
        options: "ExecutionOptions | Mapping[str, Any] | None" = None,
        **overrides: Any,
    ) -> "ExecutionOptions":
        """Normalize None, a mapping or an instance, then apply keyword overrides."""
        if options is None:
            resolved = cls()
        elif isinstance(options, cls):
            resolved = options
        elif isinstance(options, Mapping):
            resolved = cls.from_dict(options)
        else:
            raise InvalidOptionError(
                f"options must be ExecutionOptions or a mapping, got {type(options).__name__}"
            )

        if overrides:
            valid_keys = {f.name for f in fields(cls)}
            unknown = sorted(set(overrides) - valid_keys)
            if unknown:
                raise InvalidOptionError(
                    f"Unknown execution option(s): {', '.join(unknown)}",
                    option=unknown[0],
                    reason="unknown",
                )
            resolved = replace(resolved, **overrides)
        return resolved


def normalize_command(command: Command) -> str | list[str]:
    """Validate a command, returning a string or a fresh list of str tokens."""
    if isinstance(command, str):
        if not command.strip():
            raise InvalidOptionError("Command must not be empty", option="command")
        return command

    if isinstance(command, (bytes, bytearray)) or not isinstance(command, Sequence):
        raise InvalidOptionError(
            f"Command must be a string or a sequence of strings, got {type(command).__name__}",
            option="command",
        )

    tokens: list[str] = []
    for token in command:
        if isinstance(token, (os.PathLike, Path)):
            tokens.append(os.fspath(token))
        elif isinstance(token, str):
            tokens.append(token)
        else:
            raise InvalidOptionError(
                "Command arguments must be strings or os.PathLike", option="command"
            )

    if not tokens or not tokens[0]:
        raise InvalidOptionError("Command must include a program", option="command")
    return tokens


def command_to_string(command: str | Sequence[str]) -> str:
    """Render a command for messages and logs; tokens are joined with spaces."""
    if isinstance(command, str):
        return command
    return " ".join(str(token) for token in command)
