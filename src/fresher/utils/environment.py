"""Checks on the environment fresher runs in, done before a loop is constructed."""

import logging
import os
import shutil
from pathlib import Path

from fresher.config import Config, to_bool
from fresher.constants import CLAUDE_COMMAND, CONTAINER_MARKER_VARS
from fresher.exceptions import EnvironmentValidationError
from fresher.models.state import LoopMode

logger = logging.getLogger(__name__)


def is_inside_container() -> bool:
    """True when a container entrypoint has set one of the marker variables."""
    return any(to_bool(os.environ.get(var, "")) is True for var in CONTAINER_MARKER_VARS)


def enforce_container_isolation(config: Config) -> None:
    """Refuse to run on the host when the project asks for container isolation."""
    if not config.docker.use_docker or is_inside_container():
        return
    raise EnvironmentValidationError(
        "Docker isolation is enabled but fresher is not running inside a container. "
        "Run it through the project's container, or set FRESHER_USE_DOCKER=false."
    )


def validate_environment(mode: LoopMode, config: Config, project_dir: Path) -> None:
    """Fail fast on anything that would stop the first iteration from running."""
    enforce_container_isolation(config)

    if shutil.which(CLAUDE_COMMAND) is None:
        raise EnvironmentValidationError(
            f"{CLAUDE_COMMAND} command not found. Please install Claude Code first."
        )

    project_dir = Path(project_dir)
    if mode == LoopMode.BUILDING:
        plan_path = project_dir / config.paths.plan_file
        impl_readme = project_dir / config.paths.impl_dir / "README.md"
        if not plan_path.is_file() and not impl_readme.is_file():
            raise EnvironmentValidationError(
                f"{config.paths.plan_file} not found. Run `fresher plan` first to create a plan."
            )
    else:
        spec_dir = project_dir / config.paths.spec_dir
        if not spec_dir.is_dir():
            raise EnvironmentValidationError(
                f"Specification directory {config.paths.spec_dir}/ not found."
            )
    logger.debug(f"Environment valid for {mode.value} mode in {project_dir}")
