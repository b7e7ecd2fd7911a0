"""Comp Calc CLI - Command-line interface for compensation projections."""

import logging
import os

import click

from compcalc import __version__

from .profile_commands import profile as profile_group
from .project_commands import project as project_command
from .rsus_commands import rsus as rsus_group
from .prices_commands import prices as prices_group
from .rates_commands import rates as rates_group

# Configure logging based on LOG_LEVEL environment variable
_log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, _log_level, logging.INFO),
    format="%(asctime)s.%(msecs)03d %(levelname)s: %(message)s",
    datefmt="%H:%M:%S"
)


@click.group()
@click.version_option(version=__version__, prog_name="comp-calc")
def cli():
    """Comp Calc - Salary, bonus and RSU projections.

    Projects total compensation year by year from the salary history,
    bonus targets and RSU grants in your profile.

    Configuration is loaded from (in order):

    \b
    1. COMP_CALC_CONFIG_PATH environment variable
    2. settings.json 'profile' key
    3. ~/.config/comp-calc/profile.yaml (XDG default)

    Run 'comp-calc profile init' to create a starter profile.
    """
    pass


# Add subcommand groups
cli.add_command(profile_group)
cli.add_command(project_command)
cli.add_command(rsus_group)
cli.add_command(prices_group)
cli.add_command(rates_group)


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
