"""Typer application and CLI entry point for rmqadmin.

This module wires together the top-level Typer application: the root
callback that collects the global connection and output options, the
table-driven verb/resource command trees from
:mod:`rmqadmin.commands.dispatch`, and the extra ``show``, ``purge``,
``close`` and ``definitions`` commands.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers, resolves the
environment-driven :class:`~rmqadmin.models.RuntimeSettings` once, and
invokes the Typer app with those settings as the Typer context object.
Unhandled exceptions are written to a crash log under the data directory.

See Also:
    :mod:`rmqadmin.config`: Connection profile resolution.
    :mod:`rmqadmin.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from rmqadmin import __version__
from rmqadmin.commands.dispatch import cli_errors, register_commands
from rmqadmin.commands.extras import close_app, definitions_app, purge_app, show_app
from rmqadmin.commands.inference import InferringGroup, runtime_settings
from rmqadmin.exit_codes import EXIT_GENERIC_FAILURE
from rmqadmin.models import CliFlags, TableStyle


app = typer.Typer(
    name="rmqadmin",
    help="Administer RabbitMQ through its HTTP management API.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
    cls=InferringGroup,
)

register_commands(app)
app.add_typer(show_app, name="show", help="Show cluster-wide information.")
app.add_typer(purge_app, name="purge", help="Purge messages.")
app.add_typer(close_app, name="close", help="Close client connections.")
app.add_typer(definitions_app, name="definitions", help="Export and import definitions.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"rmqadmin {__version__}")
        raise typer.Exit()


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
    host: Optional[str] = typer.Option(None, "--host", help="Management API host."),
    port: Optional[int] = typer.Option(None, "--port", help="Management API port."),
    vhost: Optional[str] = typer.Option(None, "--vhost", "-V", help="Virtual host."),
    username: Optional[str] = typer.Option(None, "--username", "-u", help="Username."),
    password: Optional[str] = typer.Option(None, "--password", "-p", help="Password."),
    node: Optional[str] = typer.Option(
        None, "--node", "-N", help="Node alias (config file section) to use."
    ),
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Config file path (default ~/.rabbitmqadmin.conf)."
    ),
    timeout: Optional[int] = typer.Option(
        None, "--timeout", help="Per-request timeout in seconds (positive integer)."
    ),
    table_style: Optional[TableStyle] = typer.Option(
        None, "--table-style", help="Table border style."
    ),
    base_uri: Optional[str] = typer.Option(
        None, "--base-uri", "-U", help="Endpoint as a URI, e.g. https://rabbit:15671/mgmt."
    ),
    path_prefix: Optional[str] = typer.Option(
        None, "--path-prefix", help="Path prefix of the management UI."
    ),
    use_tls: bool = typer.Option(False, "--use-tls", help="Connect over HTTPS."),
    insecure: bool = typer.Option(
        False, "--insecure", "-k", help="Skip TLS certificate verification."
    ),
    tls_ca_cert_file: Optional[str] = typer.Option(
        None, "--tls-ca-cert-file", help="CA certificate bundle (PEM) for TLS."
    ),
    non_interactive: bool = typer.Option(
        False, "--non-interactive", help="Print bare tab-separated rows, no headers or styling."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~rmqadmin.output.OutputManager` and
    stores the connection flags in the Typer context. The connection profile
    itself is resolved by each command, so ``--help`` works even when the
    config file is broken. An invalid ``--timeout`` is rejected here, before
    any file or network access.
    """
    from rmqadmin.config import validate_timeout
    from rmqadmin.output import OutputFormat, OutputManager, set_output

    settings = runtime_settings(ctx)
    output = OutputManager(
        format=OutputFormat.JSON if json_output else OutputFormat.AUTO,
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
        non_interactive=non_interactive or settings.non_interactive,
        table_style=table_style or TableStyle.MODERN,
    )
    set_output(output)

    with cli_errors():
        if timeout is not None:
            validate_timeout(timeout)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["flags"] = CliFlags(
        host=host,
        port=port,
        vhost=vhost,
        username=username,
        password=password,
        node=node,
        config=config,
        timeout=timeout,
        table_style=table_style,
        base_uri=base_uri,
        path_prefix=path_prefix,
        use_tls=use_tls,
        insecure=insecure,
        tls_ca_cert_file=tls_ca_cert_file,
    )


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from rmqadmin.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``rmqadmin`` console script.

    1. Install signal handlers for clean Ctrl-C behaviour.
    2. Resolve :class:`~rmqadmin.models.RuntimeSettings` from the
       environment, once.
    3. Invoke the Typer application with the settings in the context object.

    Unhandled :class:`~rmqadmin.exceptions.RmqAdminError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce a
    crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        from rmqadmin.config import read_environment, resolve_runtime_settings

        settings = resolve_runtime_settings(read_environment())
        app(obj={"settings": settings})
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from rmqadmin.exceptions import RmqAdminError
        from rmqadmin.output import error

        if isinstance(exc, RmqAdminError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
