"""Shared plumbing for the ``plan`` and ``build`` commands."""

import sys
from pathlib import Path
from typing import Optional

import click

from fresher.config import load_config
from fresher.exceptions import FresherError
from fresher.models.state import FinishType, LoopMode
from fresher.services.loop_service import run_loop
from fresher.utils.environment import validate_environment
from fresher.utils.interrupt import InterruptFlag, install_signal_handlers
from fresher.utils.logging_setup import setup_logging


def loop_options(func):
    """Options common to every loop command."""
    func = click.option("-v", "--verbose", is_flag=True, help="Show debug logs and stream details")(func)
    func = click.option(
        "--resume", is_flag=True, help="Continue the last unfinished run of this mode"
    )(func)
    func = click.option(
        "-m",
        "--max-iterations",
        type=click.IntRange(min=0),
        default=None,
        help="Stop after N iterations (0 = unlimited; default from config)",
    )(func)
    return func


def execute_loop(
    mode: LoopMode, max_iterations: Optional[int], resume: bool, verbose: bool
) -> None:
    """Validate, run the loop and exit 1 if it finished with an error."""
    project_dir = Path.cwd()
    try:
        config = load_config(project_dir)
        if max_iterations is not None:
            config.fresher.max_iterations = max_iterations

        setup_logging(verbose, project_dir / config.paths.log_dir / "fresher.log")
        validate_environment(mode, config, project_dir)

        with install_signal_handlers(InterruptFlag()) as interrupt:
            state = run_loop(mode, config, project_dir, interrupt, resume=resume, verbose=verbose)
    except FresherError as e:
        raise click.ClickException(str(e))

    if state.finish_type == FinishType.ERROR:
        sys.exit(1)
