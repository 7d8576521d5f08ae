"""Scoped, process-wide environment overlays.

Children inherit the parent's environment at creation time, so the executor
mutates ``os.environ`` for the short window around a spawn and restores it
afterwards. All overlays share one lock; nested overlays on the same thread
are allowed.
"""

import os
import threading
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager

from execrunner.core.config import (
    LOCALE_ENV_VARS,
    NEUTRAL_LOCALE,
    USER_ENV_VARS,
    ExecRunnerConfig,
)
from execrunner.core.options import ExecutionOptions

__all__ = [
    "LOCALE_ENV_VARS",
    "NEUTRAL_LOCALE",
    "USER_ENV_VARS",
    "environment_lock",
    "sanitized_environment",
    "sanitized_values",
    "with_env",
]

environment_lock = threading.RLock()


def _snapshot(names: Iterable[str]) -> dict[str, str | None]:
    return {name: os.environ.get(name) for name in names}


def _restore(snapshot: Mapping[str, str | None]) -> None:
    for name, value in snapshot.items():
        if value is None:
            os.environ.pop(name, None)
        else:
            os.environ[name] = value


@contextmanager
def with_env(overlay: Mapping[str, str | None]) -> Iterator[None]:
    """Apply ``overlay`` to os.environ for the duration of the block.

    A value of None removes the variable inside the block. Every touched
    name is restored on exit, including removal of names that did not exist.
    """
    with environment_lock:
        snapshot = _snapshot(overlay)
        try:
            for name, value in overlay.items():
                if value is None:
                    os.environ.pop(name, None)
                else:
                    os.environ[name] = value
            yield
        finally:
            _restore(snapshot)


def sanitized_values(
    options: ExecutionOptions, config: ExecRunnerConfig | None = None
) -> dict[str, str]:
    """Compute the variables a child should see overridden, in application order."""
    config = config or ExecRunnerConfig()
    values: dict[str, str] = {}

    for name in config.user_env_vars:
        values[name] = ""

    if options.override_locale:
        for name in config.locale_env_vars:
            values[name] = config.neutral_locale if name in config.forced_locale_vars else ""

    # Custom entries last so they can override any of the above
    values.update(options.custom_environment)
    return values


@contextmanager
def sanitized_environment(
    options: ExecutionOptions, config: ExecRunnerConfig | None = None
) -> Iterator[dict[str, str]]:
    """Run the block with user variables cleared and locale neutralized.

    Holds the environment lock for the whole block, so keep the block to
    the spawn itself. Yields the applied values.
    """
    values = sanitized_values(options, config)
    with with_env(values):
        yield values
