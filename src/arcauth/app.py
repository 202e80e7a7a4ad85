"""Typer application and CLI entry point for arcauth.

This module wires the top-level Typer application, registers the session
commands (``status``, ``login``, ``logout``, ``providers``, ``check``,
``whoami``) and configures logging and output from the global flags.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. Uncaught :class:`~arcauth.exceptions.ArcAuthError`
instances exit with their ``exit_code``.

See Also:
    :mod:`arcauth.commands.session`: The command implementations.
    :mod:`arcauth.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
from typing import Any

import typer
from rich.console import Console
from rich.logging import RichHandler

from arcauth import __version__
from arcauth.commands.session import (
    check_command,
    login_command,
    logout_command,
    providers_command,
    status_command,
    whoami_command,
)
from arcauth.exit_codes import EXIT_GENERIC_FAILURE, EXIT_SUCCESS

app = typer.Typer(
    name="arcauth",
    help="Sign in with identity providers and manage the local session.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("status")(status_command)
app.command("login")(login_command)
app.command("logout")(logout_command)
app.command("providers")(providers_command)
app.command("check")(check_command)
app.command("whoami")(whoami_command)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"arcauth {__version__}")
        raise typer.Exit(code=EXIT_SUCCESS)


def _configure_logging(verbose: bool, no_color: bool) -> None:
    """Send ``arcauth`` log records to stderr through a Rich handler."""
    handler = RichHandler(
        console=Console(stderr=True, no_color=no_color),
        show_path=False,
        rich_tracebacks=verbose,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    logger = logging.getLogger("arcauth")
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Root callback executed before every command.

    Installs the global :class:`~arcauth.output.OutputManager` and the
    logging handler from the CLI flags.
    """
    from arcauth.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.JSON if json_output else OutputFormat.AUTO
    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    _configure_logging(verbose, no_color)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``arcauth`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from arcauth.exceptions import ArcAuthError
        from arcauth.output import error

        if isinstance(exc, ArcAuthError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
