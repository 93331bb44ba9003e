"""Project configuration: ``.fresher/config.toml`` plus ``FRESHER_*`` overrides."""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from fresher.constants import (
    CONFIG_FILE,
    DEFAULT_HOOK_TIMEOUT,
    DEFAULT_IMPL_DIR,
    DEFAULT_LOG_DIR,
    DEFAULT_MAX_TURNS,
    DEFAULT_MODEL,
    DEFAULT_PLAN_FILE,
    DEFAULT_SPEC_DIR,
    DEFAULT_SRC_DIR,
)
from fresher.exceptions import ConfigError

logger = logging.getLogger(__name__)


class LoopSettings(BaseModel):
    max_iterations: int = Field(default=0, ge=0)
    smart_termination: bool = True
    dangerous_permissions: bool = True
    max_turns: int = Field(default=DEFAULT_MAX_TURNS, gt=0)
    model: str = DEFAULT_MODEL


class CommandsConfig(BaseModel):
    test: str = ""
    build: str = ""
    lint: str = ""


class PathsConfig(BaseModel):
    log_dir: str = DEFAULT_LOG_DIR
    spec_dir: str = DEFAULT_SPEC_DIR
    src_dir: str = DEFAULT_SRC_DIR
    plan_file: str = DEFAULT_PLAN_FILE
    impl_dir: str = DEFAULT_IMPL_DIR


class HooksConfig(BaseModel):
    enabled: bool = True
    timeout: int = Field(default=DEFAULT_HOOK_TIMEOUT, gt=0)


class DockerConfig(BaseModel):
    use_docker: bool = False


class Config(BaseModel):
    fresher: LoopSettings = Field(default_factory=LoopSettings)
    commands: CommandsConfig = Field(default_factory=CommandsConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    hooks: HooksConfig = Field(default_factory=HooksConfig)
    docker: DockerConfig = Field(default_factory=DockerConfig)


# (toml_dotted_path, env_var_name, value_type)
_CONFIG_KEYS: list[tuple[str, str, type]] = [
    ("fresher.max_iterations",        "FRESHER_MAX_ITERATIONS",        int),
    ("fresher.smart_termination",     "FRESHER_SMART_TERMINATION",     bool),
    ("fresher.dangerous_permissions", "FRESHER_DANGEROUS_PERMISSIONS", bool),
    ("fresher.max_turns",             "FRESHER_MAX_TURNS",             int),
    ("fresher.model",                 "FRESHER_MODEL",                 str),
    ("commands.test",                 "FRESHER_TEST_CMD",              str),
    ("commands.build",                "FRESHER_BUILD_CMD",             str),
    ("commands.lint",                 "FRESHER_LINT_CMD",              str),
    ("paths.log_dir",                 "FRESHER_LOG_DIR",               str),
    ("paths.spec_dir",                "FRESHER_SPEC_DIR",              str),
    ("paths.src_dir",                 "FRESHER_SRC_DIR",               str),
    ("paths.plan_file",               "FRESHER_PLAN_FILE",             str),
    ("paths.impl_dir",                "FRESHER_IMPL_DIR",              str),
    ("hooks.enabled",                 "FRESHER_HOOKS_ENABLED",         bool),
    ("hooks.timeout",                 "FRESHER_HOOK_TIMEOUT",          int),
    ("docker.use_docker",             "FRESHER_USE_DOCKER",            bool),
]

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def to_bool(value: str) -> Optional[bool]:
    """Parse common truthy/falsy strings; None when unrecognised."""
    normalized = value.strip().lower()
    if normalized in _TRUTHY:
        return True
    if normalized in _FALSY:
        return False
    return None


def _parse_env(env_var: str, typ: type) -> object | None:
    """Read env var; return None if unset or empty string (treated as unset)."""
    raw = os.environ.get(env_var)
    if raw is None or raw.strip() == "":
        return None
    if typ is bool:
        parsed = to_bool(raw)
        if parsed is None:
            raise ConfigError(f"{env_var} must be a boolean, got '{raw}'")
        return parsed
    if typ is int:
        try:
            return int(raw.strip())
        except ValueError:
            raise ConfigError(f"{env_var} must be an integer, got '{raw}'")
    return raw


def _set_dotted(data: dict[str, Any], dotted_key: str, value: object) -> None:
    section, _, key = dotted_key.partition(".")
    target = data.setdefault(section, {})
    if not isinstance(target, dict):
        raise ConfigError(f"Config section '{section}' must be a table")
    target[key] = value


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse {path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read {path}: {e}")


def load_config(project_dir: Optional[Path] = None) -> Config:
    """Load config from the project's config.toml, then apply env overrides.

    Precedence (highest to lowest): env vars > config.toml > defaults.
    Empty env vars are treated as unset.
    """
    root = Path(project_dir) if project_dir is not None else Path.cwd()
    data = _read_config_file(root / CONFIG_FILE)

    for dotted_key, env_var, typ in _CONFIG_KEYS:
        env_val = _parse_env(env_var, typ)
        if env_val is not None:
            _set_dotted(data, dotted_key, env_val)

    try:
        config = Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}")

    logger.debug(f"Loaded config: {config.model_dump()}")
    return config
