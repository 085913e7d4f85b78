import sys

import rich
import rich_click as click
import requests
from rich.console import Console
from rich.markup import escape

import dcprov
from dcprov.commands.attributes import get_attributes, set_attributes
from dcprov.commands.config import config
from dcprov.commands.customer import (
    create,
    delete_customer,
    get_customer,
    list_customers,
    update,
)
from dcprov.commands.users import get_users
from dcprov.exceptions import DcProvUsageError, StorageUnavailable
from dcprov.logger import init_logger
from dcprov.runtime import CliRuntime

USAGE_ERRORS = (DcProvUsageError, click.UsageError)


#
# Root command
#
def main(args=None):
    """Main dcprov CLI entry point.

    This wraps the `click` library in order to do some initialization and centralized error handling.
    """
    args = list(args or sys.argv)

    debug = "--debug" in args
    if debug:
        args.remove("--debug")

    init_logger(debug=debug)
    runtime = CliRuntime()
    should_show_stacktraces = debug or runtime.show_stacktraces

    # Hand CLI processing over to click, but handle exceptions
    try:
        cli(args[1:], standalone_mode=False, obj=runtime)
    except click.Abort:  # Keyboard interrupt
        Console(stderr=True).print("\n[red bold]Aborted!")
        sys.exit(1)
    except Exception as e:
        handle_exception(e, should_show_stacktraces)
        sys.exit(1)


def _is_connection_error(error):
    while error is not None:
        if isinstance(error, requests.exceptions.ConnectionError):
            return True
        error = error.__cause__
    return False


def handle_exception(error, should_show_stacktraces=False):
    """Displays error of appropriate message back to user."""
    error_console = Console(stderr=True)
    if _is_connection_error(error):
        connection_error_message(error_console)
    if isinstance(error, click.ClickException):
        error_console.print(f"[red bold]Error: {escape(error.format_message())}")
    else:
        error_console.print(f"[red bold]Error: {escape(str(error))}")
    if isinstance(error, click.UsageError) and error.ctx is not None:
        error_console.print(f"[yellow]{escape(error.ctx.get_usage())}")
    if isinstance(error, StorageUnavailable):
        error_console.print(
            "[yellow]Pass the token with --token to skip secure credential storage."
        )

    if should_show_stacktraces and not isinstance(error, USAGE_ERRORS):
        error_console.print_exception()


def connection_error_message(console: Console):
    message = (
        "We encountered an error with your internet connection. "
        "Please check your connection and the DRACOON url and try again."
    )
    console.print(f"[red bold]{message}")


def show_version_info():
    console = rich.get_console()
    console.print(f"dcprov version: {dcprov.__version__} ({sys.argv[0]})")
    console.print(f"Python version: {sys.version.split()[0]} ({sys.executable})")
    console.print("DRACOON Provisioning CLI tool")


def version_info_wrapper(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    if not value:
        return
    show_version_info()
    ctx.exit()


@click.group("main", help="DRACOON Provisioning API CLI tool (dcprov)")
@click.option(  # based on https://click.palletsprojects.com/en/8.1.x/options/#callbacks-and-eager-options
    "--version",
    is_flag=True,
    expose_value=False,
    is_eager=True,
    help="Show the version and exit.",
    callback=version_info_wrapper,
)
@click.option(
    "-t",
    "--token",
    help="X-SDS-Service-Token to use instead of the stored one.",
)
@click.pass_context
def cli(ctx, token):
    """Top-level `click` command group."""
    runtime = ctx.ensure_object(CliRuntime)
    if token:
        runtime.token = token


@cli.command(name="version", help="Print the current version of dcprov")
def version():
    show_version_info()


# Top Level Commands

cli.add_command(list_customers)
cli.add_command(get_customer)
cli.add_command(update)
cli.add_command(delete_customer)
cli.add_command(create)
cli.add_command(config)
cli.add_command(get_users)
cli.add_command(get_attributes)
cli.add_command(set_attributes)
