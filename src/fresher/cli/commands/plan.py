"""Plan command for fresher CLI."""

import click

from fresher.cli.commands.common import execute_loop, loop_options
from fresher.models.state import LoopMode


@click.command()
@loop_options
def plan(max_iterations, resume, verbose):
    """Run the loop in planning mode: analyze specs and write the implementation plan."""
    execute_loop(LoopMode.PLANNING, max_iterations, resume, verbose)
