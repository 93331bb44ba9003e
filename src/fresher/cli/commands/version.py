"""Version command for fresher CLI."""

import click

from fresher.constants import VERSION


@click.command()
def version():
    """Show the fresher version."""
    click.echo(f"fresher v{VERSION}")
