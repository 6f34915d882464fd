"""Typer application and CLI entry point for apidesk.

This module wires together the top-level Typer application and registers
the built-in commands (``init``, ``run``, ``send``, ``requests``,
``config``). The root callback sets up the output system and logging for
every invocation.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
The root callback creates the request document on first use. Unhandled
exceptions are written to a crash log under the data directory.

See Also:
    :mod:`apidesk.config`: Global configuration and data file resolution.
    :mod:`apidesk.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from apidesk import __version__
from apidesk.commands.config import config_app
from apidesk.commands.init import init_command
from apidesk.commands.requests import requests_app
from apidesk.commands.run import run_command, send_command
from apidesk.exit_codes import EXIT_CANCELLED, EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="apidesk",
    help="Send HTTP requests and manage a library of saved requests.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("init")(init_command)
app.command("run")(run_command)
app.command("send")(send_command)
app.add_typer(requests_app, name="requests", help="Saved request management.")
app.add_typer(config_app, name="config", help="Configuration management.")

# Commands that read or write the request document.
_STORE_COMMANDS = frozenset({"run", "send", "requests"})


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"apidesk {__version__}")
        raise typer.Exit()


def _log_level(verbose: bool) -> str:
    """Pick the log level: DEBUG for ``--verbose``, else the configured one."""
    if verbose:
        return "DEBUG"
    from apidesk.config import load_global_config
    from apidesk.exceptions import ConfigError

    try:
        return load_global_config().log_level
    except ConfigError:
        # Reported by whichever command loads the config for real.
        return "WARNING"


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    data_file: Optional[str] = typer.Option(
        None, "--data-file", help="Path of the saved-request document."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmations."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~apidesk.output.OutputManager` and the
    ``apidesk`` logger from CLI flags, and stores shared options
    (``data_file`` and ``force``) in ``ctx.obj``.
    """
    from apidesk.output import OutputFormat, OutputManager, configure_logging, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(
        format=fmt,
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
    )
    set_output(output)
    configure_logging(_log_level(verbose), output)

    ctx.ensure_object(dict)
    ctx.obj["data_file"] = data_file
    ctx.obj["force"] = force

    if ctx.invoked_subcommand in _STORE_COMMANDS:
        _bootstrap_store(data_file)


def _bootstrap_store(data_file: Optional[str]) -> None:
    """Create the request document with empty defaults on first run."""
    from apidesk.exceptions import ApideskError
    from apidesk.output import error
    from apidesk.store import DocumentStore

    try:
        DocumentStore.from_config(data_file).ensure()
    except ApideskError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C outside a request exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_CANCELLED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from apidesk.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``apidesk`` console script.

    Unhandled :class:`~apidesk.exceptions.ApideskError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce
    a crash log and a generic failure exit.

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
        sys.exit(EXIT_CANCELLED)
    except Exception as exc:
        from apidesk.exceptions import ApideskError
        from apidesk.output import error

        if isinstance(exc, ApideskError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
