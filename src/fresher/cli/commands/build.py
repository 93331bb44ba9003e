"""Build command for fresher CLI."""

import click

from fresher.cli.commands.common import execute_loop, loop_options
from fresher.models.state import LoopMode


@click.command()
@loop_options
def build(max_iterations, resume, verbose):
    """Run the loop in building mode: implement one plan task per iteration."""
    execute_loop(LoopMode.BUILDING, max_iterations, resume, verbose)
