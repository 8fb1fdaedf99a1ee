"""Commands outside the verb/resource table.

* ``rmqadmin show overview`` -- cluster-wide summary from ``/api/overview``.
* ``rmqadmin show endpoint`` -- the endpoint the resolved profile points at.
* ``rmqadmin purge queue`` -- drop all ready messages from a queue.
* ``rmqadmin close connection`` -- close one client connection.
* ``rmqadmin definitions export`` / ``import`` -- move the broker's
  definitions (users, vhosts, queues, exchanges, bindings, policies) to and
  from a JSON file.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from rmqadmin.client.response import render_result
from rmqadmin.client.sync_client import build_path
from rmqadmin.commands import dispatch
from rmqadmin.commands.inference import InferringCommand, InferringGroup
from rmqadmin.exceptions import InvalidUsageError
from rmqadmin.idempotency import DeleteOutcome, execute_delete
from rmqadmin.models import Operation, Verb
from rmqadmin.output import info, print_data, success


show_app = typer.Typer(no_args_is_help=True, cls=InferringGroup)
purge_app = typer.Typer(no_args_is_help=True, cls=InferringGroup)
close_app = typer.Typer(no_args_is_help=True, cls=InferringGroup)
definitions_app = typer.Typer(no_args_is_help=True, cls=InferringGroup)

CLOSE_REASON = "closed via rmqadmin"


@show_app.command("overview", cls=InferringCommand)
def show_overview(ctx: typer.Context) -> None:
    """Show the cluster overview: versions, totals, and message rates.

    Example::

        rmqadmin show overview
        rmqadmin --json show overview
    """
    with dispatch.cli_errors():
        profile = dispatch.resolve_context_profile(ctx)
        with dispatch.create_client(profile) as client:
            data = client.request("GET", "/overview")
        render_result(data)


@show_app.command("endpoint", cls=InferringCommand)
def show_endpoint(ctx: typer.Context) -> None:
    """Print the management API endpoint in use. No request is made."""
    with dispatch.cli_errors():
        profile = dispatch.resolve_context_profile(ctx)
        print_data(profile.api_root())


@purge_app.command("queue", cls=InferringCommand)
def purge_queue(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", help="Queue name."),
    vhost: Optional[str] = typer.Option(
        None, "--vhost", "-V", help="Virtual host (overrides the global --vhost)."
    ),
) -> None:
    """Remove all ready messages from a queue.

    Issues ``DELETE /api/queues/{vhost}/{name}/contents``. Messages that are
    delivered but not yet acknowledged are not affected.
    """
    with dispatch.cli_errors():
        profile = dispatch.resolve_context_profile(ctx)
        target_vhost = vhost or profile.vhost
        with dispatch.create_client(profile) as client:
            client.request("DELETE", build_path("queues", target_vhost, name) + "/contents")
        success(f"Purged queue '{name}' in virtual host '{target_vhost}'")


@close_app.command("connection", cls=InferringCommand)
def close_connection(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", help="Connection name, as shown by 'list connections'."),
    idempotently: bool = typer.Option(
        False, "--idempotently", help="Treat an already closed connection as success."
    ),
) -> None:
    """Close a client connection.

    Issues ``DELETE /api/connections/{name}`` with an ``X-Reason`` header
    that the broker passes on to the client.
    """
    with dispatch.cli_errors():
        operation = Operation(resource="connection", verb=Verb.DELETE, idempotent=idempotently)
        profile = dispatch.resolve_context_profile(ctx)
        with dispatch.create_client(profile) as client:
            outcome = execute_delete(
                operation, lambda: client.close_connection(name, CLOSE_REASON)
            )
        if outcome is DeleteOutcome.SUCCESS:
            success(f"Closed connection '{name}'")
        else:
            info(f"connection '{name}' does not exist; nothing to close")


@definitions_app.command("export", cls=InferringCommand)
def export_definitions(
    ctx: typer.Context,
    file: str = typer.Option("-", "--file", help="Output path, or '-' for stdout."),
    vhost: Optional[str] = typer.Option(
        None, "--vhost", "-V", help="Export only this virtual host's definitions."
    ),
) -> None:
    """Export definitions as JSON.

    Without ``--vhost`` the cluster-wide definitions from
    ``GET /api/definitions`` are exported; with it, those of one virtual
    host from ``GET /api/definitions/{vhost}``.
    """
    with dispatch.cli_errors():
        profile = dispatch.resolve_context_profile(ctx)
        path = build_path("definitions", vhost)
        with dispatch.create_client(profile) as client:
            definitions = client.request("GET", path)
        text = json.dumps(definitions, indent=2)
        if file == "-":
            print_data(text)
        else:
            Path(file).write_text(text + "\n")
            success(f"Exported definitions to {file}")


@definitions_app.command("import", cls=InferringCommand)
def import_definitions(
    ctx: typer.Context,
    file: str = typer.Option(..., "--file", help="JSON file with definitions."),
    vhost: Optional[str] = typer.Option(
        None, "--vhost", "-V", help="Import into this virtual host only."
    ),
) -> None:
    """Import definitions from a JSON file.

    Issues ``POST /api/definitions`` (or ``/api/definitions/{vhost}``). The
    file is read and checked before any request is made.
    """
    with dispatch.cli_errors():
        try:
            definitions = json.loads(Path(file).read_text())
        except OSError as exc:
            raise InvalidUsageError(f"cannot read definitions file '{file}': {exc}") from exc
        except json.JSONDecodeError as exc:
            raise InvalidUsageError(f"definitions file '{file}' is not valid JSON: {exc}") from exc
        if not isinstance(definitions, dict):
            raise InvalidUsageError(f"definitions file '{file}' must hold a JSON object")

        profile = dispatch.resolve_context_profile(ctx)
        with dispatch.create_client(profile) as client:
            client.request("POST", build_path("definitions", vhost), json_body=definitions)
        success(f"Imported definitions from {file}")
