import logging

import click

from autopilot import account, init_repo, push, watch

__version__ = "1.0.0"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@click.group()
@click.version_option(__version__, prog_name="autopilot")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr")
def cli(verbose: bool):
    """Automate routine Git and GitHub workflows."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)


cli.add_command(account.connect)
cli.add_command(account.user)
cli.add_command(account.logout)
cli.add_command(init_repo.init)
cli.add_command(push.push)
cli.add_command(watch.watch)
