"""Static command table.

Every table-driven command is one :class:`CommandSpec` row keyed by
``(verb, resource)``. The same row backs both spellings of a command,
``rmqadmin list queues`` and ``rmqadmin queues list``, so both reach the same
handler with the same request.

API paths follow ``{resource}[/{vhost}][/{name}]``. A ``{component}`` or
``{user}`` placeholder in :attr:`CommandSpec.path` is filled from the
matching command option before the vhost and name segments are appended.
Binding rows address ``bindings/{vhost}/e/{source}/{q|e}/{destination}``
instead and take their segments from the ``--source``, ``--destination-type``
and ``--destination`` options.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from rmqadmin.models import Verb


@dataclass(frozen=True)
class CommandSpec:
    """One row of the command table.

    Attributes:
        verb: Operation verb.
        resource: Resource word used after the verb (``list queues``).
        group: Resource group used before the verb (``queues list``).
        path: API path fragment, possibly holding a ``{component}`` or
            ``{user}`` placeholder.
        help: One-line help text.
        vhost_scoped: Whether the vhost is a path segment.
        name_option: Option supplying the last path segment, or ``None``
            for collection requests.
        qualifier: Option filling the placeholder in :attr:`path`.
        pageable: Whether ``--page``/``--page-size`` are accepted.
        columns: Preferred table columns for list output.
        binding: Whether the row addresses a binding by source and
            destination rather than by name.
    """

    verb: Verb
    resource: str
    group: str
    path: str
    help: str
    vhost_scoped: bool = False
    name_option: Optional[str] = None
    qualifier: Optional[str] = None
    pageable: bool = False
    columns: tuple[str, ...] = ()
    binding: bool = False

    @property
    def key(self) -> tuple[Verb, str]:
        return (self.verb, self.resource)


def _list(resource: str, path: str, help: str, **kwargs) -> CommandSpec:
    return CommandSpec(Verb.LIST, resource, resource, path, help, **kwargs)


def _item(verb: Verb, resource: str, group: str, path: str, help: str, **kwargs) -> CommandSpec:
    kwargs.setdefault("name_option", "name")
    return CommandSpec(verb, resource, group, path, help, **kwargs)


def _writable(
    resource: str, group: str, path: str, noun: str, **kwargs
) -> list[CommandSpec]:
    return [
        _item(Verb.DECLARE, resource, group, path, f"Declare {noun}.", **kwargs),
        _item(Verb.DELETE, resource, group, path, f"Delete {noun}.", **kwargs),
    ]


COMMAND_LIST: list[CommandSpec] = [
    # list
    _list("nodes", "nodes", "List cluster nodes.",
          columns=("name", "type", "running", "mem_used", "uptime")),
    _list("vhosts", "vhosts", "List virtual hosts.", pageable=True,
          columns=("name", "description", "tracing")),
    _list("users", "users", "List users.", pageable=True, columns=("name", "tags")),
    _list("permissions", "permissions", "List user permissions.",
          columns=("user", "vhost", "configure", "write", "read")),
    _list("connections", "connections", "List client connections.", pageable=True,
          columns=("name", "user", "vhost", "state", "channels")),
    _list("channels", "channels", "List channels.", pageable=True,
          columns=("name", "user", "vhost", "state", "number")),
    _list("consumers", "consumers", "List consumers.",
          columns=("consumer_tag", "ack_required", "prefetch_count", "exclusive")),
    _list("queues", "queues", "List queues in a virtual host.", vhost_scoped=True, pageable=True,
          columns=("name", "vhost", "type", "durable", "messages", "consumers")),
    _list("exchanges", "exchanges", "List exchanges in a virtual host.", vhost_scoped=True,
          pageable=True, columns=("name", "vhost", "type", "durable", "auto_delete")),
    _list("bindings", "bindings", "List bindings in a virtual host.", vhost_scoped=True,
          columns=("source", "vhost", "destination", "destination_type", "routing_key")),
    _list("policies", "policies", "List policies in a virtual host.", vhost_scoped=True,
          columns=("name", "vhost", "pattern", "apply-to", "priority", "definition")),
    _list("operator_policies", "operator-policies", "List operator policies in a virtual host.",
          vhost_scoped=True,
          columns=("name", "vhost", "pattern", "apply-to", "priority", "definition")),
    _list("parameters", "parameters/{component}", "List runtime parameters of a component.",
          vhost_scoped=True, qualifier="component",
          columns=("name", "vhost", "component", "value")),
    _list("vhost_limits", "vhost-limits", "List virtual host limits.", columns=("vhost", "value")),
    _list("user_limits", "user-limits", "List user limits.", columns=("user", "value")),
    _list("feature_flags", "feature-flags", "List feature flags.",
          columns=("name", "state", "stability", "desc")),
    _list("deprecated_features", "deprecated-features", "List deprecated features.",
          columns=("name", "deprecation_phase", "desc")),
    # get
    _item(Verb.GET, "node", "nodes", "nodes", "Show one node."),
    _item(Verb.GET, "vhost", "vhosts", "vhosts", "Show one virtual host."),
    _item(Verb.GET, "user", "users", "users", "Show one user."),
    _item(Verb.GET, "queue", "queues", "queues", "Show one queue.", vhost_scoped=True),
    _item(Verb.GET, "exchange", "exchanges", "exchanges", "Show one exchange.", vhost_scoped=True),
    _item(Verb.GET, "policy", "policies", "policies", "Show one policy.", vhost_scoped=True),
    # declare / delete
    *_writable("vhost", "vhosts", "vhosts", "a virtual host"),
    *_writable("user", "users", "users", "a user"),
    *_writable("permissions", "permissions", "permissions", "permissions of a user in a virtual host",
               vhost_scoped=True, name_option="user"),
    *_writable("queue", "queues", "queues", "a queue", vhost_scoped=True),
    *_writable("exchange", "exchanges", "exchanges", "an exchange", vhost_scoped=True),
    *_writable("policy", "policies", "policies", "a policy", vhost_scoped=True),
    *_writable("operator_policy", "operator_policies", "operator-policies", "an operator policy",
               vhost_scoped=True),
    *_writable("parameter", "parameters", "parameters/{component}", "a runtime parameter",
               vhost_scoped=True, qualifier="component"),
    *_writable("vhost_limit", "vhost_limits", "vhost-limits", "a virtual host limit",
               vhost_scoped=True),
    *_writable("user_limit", "user_limits", "user-limits/{user}", "a user limit", qualifier="user"),
    _item(Verb.DECLARE, "binding", "bindings", "bindings",
          "Bind an exchange to a queue or another exchange.",
          vhost_scoped=True, name_option=None, binding=True),
    _item(Verb.DELETE, "binding", "bindings", "bindings", "Delete a binding.",
          vhost_scoped=True, name_option=None, binding=True),
]

COMMANDS: dict[tuple[Verb, str], CommandSpec] = {spec.key: spec for spec in COMMAND_LIST}


def groups() -> dict[str, list[CommandSpec]]:
    """Rows grouped by their resource group, in table order."""
    grouped: dict[str, list[CommandSpec]] = {}
    for spec in COMMAND_LIST:
        grouped.setdefault(spec.group, []).append(spec)
    return grouped
