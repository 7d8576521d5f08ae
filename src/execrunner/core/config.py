"""Configuration system for execrunner.

Holds the environment scrubbing policy and temp-file settings with precedence:
1. Environment variables (highest)
2. Project config (.execrunner/config.json)
3. User profile (~/.execrunner/profiles/<name>.json)
4. Defaults (lowest)
"""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from execrunner.core.exceptions import ConfigurationError

# Locale variables forced to a neutral value (LANG, LC_ALL) or cleared (the rest)
LOCALE_ENV_VARS: tuple[str, ...] = (
    "LANG",
    "LC_ALL",
    "LC_MESSAGES",
    "LANGUAGE",
    "LC_COLLATE",
    "LC_CTYPE",
    "LC_MONETARY",
    "LC_NUMERIC",
    "LC_TIME",
)

# Variables identifying the invoking user, cleared for every child
USER_ENV_VARS: tuple[str, ...] = ("HOME", "USER", "LOGNAME")

NEUTRAL_LOCALE = "C"


@dataclass
class ExecRunnerConfig:
    """Process-wide execution policy.

    The locale and user variable lists are policy, not discovered facts, so
    they live here where a site can extend them.
    """

    locale_env_vars: tuple[str, ...] = LOCALE_ENV_VARS
    user_env_vars: tuple[str, ...] = USER_ENV_VARS
    neutral_locale: str = NEUTRAL_LOCALE
    temp_dir: str | None = None
    temp_prefix: str = "execrunner-"
    shell: str = "/bin/sh"
    forced_locale_vars: tuple[str, ...] = field(default=("LANG", "LC_ALL"))

    def __post_init__(self) -> None:
        """Validate configuration values."""
        self.locale_env_vars = tuple(self.locale_env_vars)
        self.user_env_vars = tuple(self.user_env_vars)
        self.forced_locale_vars = tuple(self.forced_locale_vars)

        for key in ("locale_env_vars", "user_env_vars", "forced_locale_vars"):
            for name in getattr(self, key):
                if not name or "=" in name:
                    raise ConfigurationError(
                        f"Invalid environment variable name in {key}: {name!r}",
                        key=key,
                        reason="empty or contains '='",
                    )
        missing = set(self.forced_locale_vars) - set(self.locale_env_vars)
        if missing:
            raise ConfigurationError(
                f"forced_locale_vars must be a subset of locale_env_vars, extra: {sorted(missing)}",
                key="forced_locale_vars",
            )
        if not self.shell:
            raise ConfigurationError("shell must not be empty", key="shell")

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExecRunnerConfig":
        """Create config from dictionary, ignoring unknown keys."""
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        return cls(**filtered)


def _load_json_config(path: Path, label: str) -> ExecRunnerConfig:
    try:
        with path.open() as f:
            data = json.load(f)
        return ExecRunnerConfig.from_dict(data)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {label}: {e}") from e
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Failed to load {label}: {e}") from e


def load_user_config(profile_name: str = "default") -> ExecRunnerConfig:
    """Load user configuration from ~/.execrunner/profiles/<name>.json.

    Returns the default config if the profile does not exist.

    Raises:
        ConfigurationError: If profile file is invalid
    """
    profile_path = Path.home() / ".execrunner" / "profiles" / f"{profile_name}.json"

    if not profile_path.exists():
        return ExecRunnerConfig()

    return _load_json_config(profile_path, f"profile {profile_name}")


def load_project_config(project_root: Path | None = None) -> ExecRunnerConfig | None:
    """Load project-specific configuration from .execrunner/config.json.

    Args:
        project_root: Root directory to search (default: current directory)

    Returns:
        ExecRunnerConfig if config file exists, None otherwise
    """
    if project_root is None:
        project_root = Path.cwd()

    config_path = project_root / ".execrunner" / "config.json"

    if not config_path.exists():
        return None

    return _load_json_config(config_path, "project config")


def _split_names(value: str) -> tuple[str, ...]:
    return tuple(name.strip() for name in value.split(",") if name.strip())


def load_env_overrides() -> dict[str, Any]:
    """Load configuration overrides from environment variables.

    Supported environment variables:
    - EXECRUNNER_LOCALE_ENV_VARS: comma separated locale variable names
    - EXECRUNNER_USER_ENV_VARS: comma separated user-identity variable names
    - EXECRUNNER_NEUTRAL_LOCALE: value forced into LANG/LC_ALL
    - EXECRUNNER_TEMP_DIR: directory for captured output files
    - EXECRUNNER_SHELL: shell used for string commands on POSIX

    Returns:
        Dictionary of configuration overrides
    """
    overrides: dict[str, Any] = {}

    if locale_vars := os.getenv("EXECRUNNER_LOCALE_ENV_VARS"):
        overrides["locale_env_vars"] = _split_names(locale_vars)

    if user_vars := os.getenv("EXECRUNNER_USER_ENV_VARS"):
        overrides["user_env_vars"] = _split_names(user_vars)

    if neutral := os.getenv("EXECRUNNER_NEUTRAL_LOCALE"):
        overrides["neutral_locale"] = neutral

    if temp_dir := os.getenv("EXECRUNNER_TEMP_DIR"):
        if not Path(temp_dir).is_dir():
            raise ConfigurationError(
                f"Invalid EXECRUNNER_TEMP_DIR: {temp_dir} is not a directory",
                key="temp_dir",
            )
        overrides["temp_dir"] = temp_dir

    if shell := os.getenv("EXECRUNNER_SHELL"):
        overrides["shell"] = shell

    return overrides


def merge_configs(
    base: ExecRunnerConfig,
    project: ExecRunnerConfig | None = None,
    env_overrides: dict[str, Any] | None = None,
) -> ExecRunnerConfig:
    """Merge configurations with precedence: env > project > base."""
    merged = base.to_dict()
    defaults = ExecRunnerConfig().to_dict()

    # Only project values that differ from the defaults count as explicitly set
    if project:
        for key, value in project.to_dict().items():
            if value != defaults.get(key):
                merged[key] = value

    if env_overrides:
        merged.update(env_overrides)

    return ExecRunnerConfig.from_dict(merged)


def load_config(profile_name: str = "default", project_root: Path | None = None) -> ExecRunnerConfig:
    """Load and merge all configuration sources.

    Raises:
        ConfigurationError: If any config source is invalid
    """
    base_config = load_user_config(profile_name)
    project_config = load_project_config(project_root)
    env_overrides = load_env_overrides()

    return merge_configs(base_config, project_config, env_overrides)
