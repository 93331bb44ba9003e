"""Main CLI entry point for fresher."""

import click

from fresher.cli.commands.build import build
from fresher.cli.commands.plan import plan
from fresher.cli.commands.verify import verify
from fresher.cli.commands.version import version
from fresher.constants import VERSION


@click.group()
@click.version_option(VERSION, prog_name="fresher")
def cli():
    """Fresher: run a coding agent in a loop, one fresh context per iteration."""
    pass


cli.add_command(plan)
cli.add_command(build)
cli.add_command(verify)
cli.add_command(version)


if __name__ == "__main__":
    cli()
