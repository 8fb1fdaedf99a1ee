"""Dispatch for table-driven commands.

Builds the two command trees from :data:`~rmqadmin.commands.table.COMMAND_LIST`:

* verb first -- ``rmqadmin list queues``, ``rmqadmin delete vhost --name x``;
* resource first -- ``rmqadmin queues list``, ``rmqadmin vhosts delete --name x``.

Both spellings of a command share one generated function, so they issue the
same request and print the same result. Each generated function exposes only
the options its row needs (``--vhost`` for vhost-scoped resources,
``--name``/``--user``/``--component`` for path segments, ``--body`` for
declares, ``--source``/``--destination`` and friends for bindings,
``--page``/``--page-size`` for pageable lists) and hands the
parsed values to :func:`run_command`.
"""

from __future__ import annotations

import inspect
import json
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

import typer

from rmqadmin.client import ManagementClient
from rmqadmin.client.response import render_result
from rmqadmin.client.sync_client import encode_segment
from rmqadmin.commands.inference import InferringCommand, InferringGroup
from rmqadmin.commands.table import COMMANDS, CommandSpec, groups
from rmqadmin.config import resolve_config
from rmqadmin.exceptions import InvalidUsageError, RmqAdminError
from rmqadmin.idempotency import DeleteOutcome, ensure_deletable, execute_delete
from rmqadmin.models import (
    BindingDestinationType,
    CliFlags,
    ConnectionProfile,
    Operation,
    PageRequest,
    Verb,
)
from rmqadmin.output import debug, error, get_output, info, success, warning
from rmqadmin.pagination import DEFAULT_PAGE_SIZE, Paginator, validate_page_arguments


VERB_HELP: dict[Verb, str] = {
    Verb.LIST: "List resources.",
    Verb.GET: "Show a single resource.",
    Verb.DECLARE: "Create or update resources.",
    Verb.DELETE: "Delete resources.",
}


# ------------------------------------------------------------------ #
# Shared helpers for every command handler
# ------------------------------------------------------------------ #


def create_client(profile: ConnectionProfile) -> ManagementClient:
    """Create the API client for *profile*. Tests replace this to inject a transport."""
    return ManagementClient(profile)


@contextmanager
def cli_errors() -> Iterator[None]:
    """Report an :class:`RmqAdminError` on stderr and exit with its code."""
    try:
        yield
    except RmqAdminError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def resolve_context_profile(ctx: typer.Context) -> ConnectionProfile:
    """Resolve the connection profile from the flags stored by the root callback."""
    obj = ctx.obj if isinstance(ctx.obj, dict) else {}
    flags = obj.get("flags") or CliFlags()
    profile = resolve_config(flags)
    get_output().table_style = profile.table_style
    if profile.scheme == "https" and not profile.verify_tls:
        warning("TLS certificate verification is disabled (--insecure)")
    debug(f"Using endpoint {profile.endpoint()} as user '{profile.username}'")
    return profile


def parse_body(body: Optional[str], option: str = "--body") -> Optional[dict[str, Any]]:
    """Parse the value of *option* as a JSON object."""
    if body is None:
        return None
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError as exc:
        raise InvalidUsageError(f"{option} is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise InvalidUsageError(f"{option} must be a JSON object")
    return parsed


# ------------------------------------------------------------------ #
# Execution
# ------------------------------------------------------------------ #


def build_operation(
    spec: CommandSpec,
    idempotently: bool = False,
    page: Optional[int] = None,
    page_size: Optional[int] = None,
) -> Operation:
    """Validate the per-command options and build the :class:`Operation`.

    Raises:
        InvalidUsageError: ``--idempotently`` on a non-delete command, or
            out-of-range paging arguments.
    """
    page_request = None
    if page is not None or page_size is not None:
        page = 1 if page is None else page
        page_size = DEFAULT_PAGE_SIZE if page_size is None else page_size
        validate_page_arguments(page, page_size)
        page_request = PageRequest(page=page, page_size=page_size)
    operation = Operation(
        resource=spec.resource,
        verb=spec.verb,
        idempotent=idempotently,
        page_request=page_request,
    )
    if idempotently:
        ensure_deletable(operation)
    return operation


def resource_path(spec: CommandSpec, options: dict[str, Any]) -> str:
    """Fill the ``{component}``/``{user}`` placeholder of the row's API path."""
    if spec.qualifier is None:
        return spec.path
    return spec.path.replace(
        "{" + spec.qualifier + "}", encode_segment(options[spec.qualifier])
    )


def describe_target(spec: CommandSpec, options: dict[str, Any]) -> str:
    """Human-readable name of the object a command acts on."""
    if spec.binding:
        destination_type = BindingDestinationType(options["destination_type"])
        return (
            f"{spec.resource} from '{options['source']}' to "
            f"{destination_type.value} '{options['destination']}'"
        )
    return f"{spec.resource} '{options.get(spec.name_option)}'"


def execute(
    client: ManagementClient,
    spec: CommandSpec,
    operation: Operation,
    options: dict[str, Any],
    vhost: Optional[str],
    body: Optional[dict[str, Any]] = None,
) -> Any:
    """Issue the request(s) for one table command and return the decoded result."""
    if spec.binding:
        return _execute_binding(client, spec, operation, options, vhost, body)

    path = resource_path(spec, options)
    name = options.get(spec.name_option) if spec.name_option else None

    if spec.verb is Verb.LIST:
        if operation.page_request is not None:
            paginator = Paginator(lambda req: client.list_page(path, req, vhost=vhost))
            items = list(
                paginator.paginate(
                    operation.page_request.page_size,
                    start_page=operation.page_request.page,
                )
            )
            debug(f"Fetched {len(items)} item(s) in {paginator.requests_issued} page(s)")
            return items
        return client.list(path, vhost=vhost)

    if spec.verb is Verb.GET:
        return client.get(path, name, vhost=vhost)

    if spec.verb is Verb.DECLARE:
        return client.declare(path, name, body=body, vhost=vhost)

    return _delete(spec, operation, options, lambda: client.delete(path, name, vhost=vhost))


def _execute_binding(
    client: ManagementClient,
    spec: CommandSpec,
    operation: Operation,
    options: dict[str, Any],
    vhost: Optional[str],
    arguments: Optional[dict[str, Any]],
) -> Any:
    binding = (
        vhost,
        options["source"],
        BindingDestinationType(options["destination_type"]),
        options["destination"],
        options.get("routing_key") or "",
        arguments,
    )
    if spec.verb is Verb.DECLARE:
        return client.bind(*binding)
    return _delete(spec, operation, options, lambda: client.unbind(*binding))


def _delete(
    spec: CommandSpec,
    operation: Operation,
    options: dict[str, Any],
    call: Callable[[], Any],
) -> DeleteOutcome:
    outcome = execute_delete(operation, call)
    if outcome is DeleteOutcome.NOT_FOUND_SUPPRESSED:
        info(f"{describe_target(spec, options)} does not exist; nothing to delete")
    return outcome


def run_command(ctx: typer.Context, spec: CommandSpec, options: dict[str, Any]) -> None:
    """Run one table command end to end: validate, resolve, execute, render."""
    with cli_errors():
        operation = build_operation(
            spec,
            idempotently=options.get("idempotently", False),
            page=options.get("page"),
            page_size=options.get("page_size"),
        )
        if spec.binding:
            body = parse_body(options.get("arguments"), "--arguments")
        elif spec.verb is Verb.DECLARE:
            body = parse_body(options.get("body"))
        else:
            body = None
        profile = resolve_context_profile(ctx)
        vhost = (options.get("vhost") or profile.vhost) if spec.vhost_scoped else None

        with create_client(profile) as client:
            result = execute(client, spec, operation, options, vhost, body)

        if spec.verb is Verb.LIST:
            render_result(result, spec.columns)
        elif spec.verb is Verb.GET:
            render_result(result)
        elif spec.verb is Verb.DECLARE:
            success(f"Declared {describe_target(spec, options)}")
            render_result(result)
        elif result is DeleteOutcome.SUCCESS:
            success(f"Deleted {describe_target(spec, options)}")


# ------------------------------------------------------------------ #
# Command tree construction
# ------------------------------------------------------------------ #


def _option_parameters(spec: CommandSpec) -> list[inspect.Parameter]:
    """Typer parameters for the options *spec* accepts."""
    kw = inspect.Parameter.KEYWORD_ONLY
    params: list[inspect.Parameter] = []

    def add(name: str, annotation: Any, default: Any) -> None:
        params.append(inspect.Parameter(name, kw, default=default, annotation=annotation))

    if spec.vhost_scoped:
        add("vhost", Optional[str], typer.Option(
            None, "--vhost", "-V", help="Virtual host (overrides the global --vhost)."
        ))
    if spec.qualifier == "component":
        add("component", str, typer.Option(
            ..., "--component", help="Runtime parameter component, e.g. federation-upstream."
        ))
    if spec.qualifier == "user" or spec.name_option == "user":
        add("user", str, typer.Option(..., "--user", help="User name."))
    if spec.name_option == "name":
        add("name", str, typer.Option(..., "--name", help="Resource name."))
    if spec.binding:
        add("source", str, typer.Option(..., "--source", help="Source exchange."))
        add("destination_type", BindingDestinationType, typer.Option(
            ..., "--destination-type", help="Whether the destination is a queue or an exchange."
        ))
        add("destination", str, typer.Option(
            ..., "--destination", help="Destination queue or exchange."
        ))
        add("routing_key", str, typer.Option("", "--routing-key", help="Routing key."))
        add("arguments", Optional[str], typer.Option(
            None, "--arguments", help="Binding arguments as a JSON object."
        ))
    elif spec.verb is Verb.DECLARE:
        add("body", Optional[str], typer.Option(
            None, "--body", help="Resource definition as a JSON object."
        ))
    if spec.pageable:
        add("page", Optional[int], typer.Option(
            None, "--page", help="First page to fetch (enables paging)."
        ))
        add("page_size", Optional[int], typer.Option(
            None, "--page-size", help=f"Items per page (enables paging, default {DEFAULT_PAGE_SIZE})."
        ))
    add("idempotently", bool, typer.Option(
        False, "--idempotently", help="Treat a missing resource as success (delete only)."
    ))
    return params


def build_command_function(spec: CommandSpec) -> Callable[..., None]:
    """Generate the Typer command function for one table row.

    The function's signature is assembled from :func:`_option_parameters`
    so that Typer derives exactly the options the row needs.
    """

    def command(ctx: typer.Context, **options: Any) -> None:
        run_command(ctx, spec, options)

    context_param = inspect.Parameter(
        "ctx", inspect.Parameter.POSITIONAL_OR_KEYWORD, annotation=typer.Context
    )
    command.__signature__ = inspect.Signature([context_param, *_option_parameters(spec)])
    command.__name__ = f"{spec.verb.value}_{spec.resource}"
    command.__doc__ = spec.help
    return command


def register_commands(app: typer.Typer) -> None:
    """Attach the verb-first and resource-first command trees to *app*."""
    functions = {key: build_command_function(spec) for key, spec in COMMANDS.items()}

    verb_apps: dict[Verb, typer.Typer] = {}
    for verb, help_text in VERB_HELP.items():
        verb_apps[verb] = typer.Typer(help=help_text, no_args_is_help=True, cls=InferringGroup)
    for spec in COMMANDS.values():
        verb_apps[spec.verb].command(spec.resource, help=spec.help, cls=InferringCommand)(
            functions[spec.key]
        )
    for verb, verb_app in verb_apps.items():
        app.add_typer(verb_app, name=verb.value)

    for group, specs in groups().items():
        group_app = typer.Typer(
            help=f"Operations on {group.replace('_', ' ')}.",
            no_args_is_help=True,
            cls=InferringGroup,
        )
        for spec in specs:
            group_app.command(spec.verb.value, help=spec.help, cls=InferringCommand)(
                functions[spec.key]
            )
        app.add_typer(group_app, name=group)
