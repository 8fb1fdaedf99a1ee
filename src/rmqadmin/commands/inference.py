"""Unique-prefix inference for subcommands and long options.

With ``RABBITMQADMIN_INFER_SUBCOMMANDS=true`` a command word may be
abbreviated to any unique prefix (``rmqadmin li que`` runs
``list queues``). With ``RABBITMQADMIN_INFER_LONG_OPTIONS=true`` the same
applies to long options (``--idem`` for ``--idempotently``). Both switches
are read once at startup into :class:`~rmqadmin.models.RuntimeSettings`,
which :func:`~rmqadmin.app.main` passes in as the Typer context object.

Ambiguous or unknown prefixes are left untouched so that the option parser reports
them the usual way.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

import typer
from typer.core import TyperCommand, TyperGroup

from rmqadmin.models import RuntimeSettings


def runtime_settings(ctx: typer.Context) -> RuntimeSettings:
    """Return the settings stored in the root context object, or the defaults."""
    obj = ctx.find_root().obj
    if isinstance(obj, dict):
        settings = obj.get("settings")
        if isinstance(settings, RuntimeSettings):
            return settings
    return RuntimeSettings()


def unique_prefix_match(prefix: str, candidates: Sequence[str]) -> Optional[str]:
    """Return the only candidate starting with *prefix*, if exactly one does."""
    if prefix in candidates:
        return prefix
    matches = [c for c in candidates if c.startswith(prefix)]
    return matches[0] if len(matches) == 1 else None


def expand_long_options(args: list[str], params: Sequence[Any]) -> list[str]:
    """Expand abbreviated long options among the leading option tokens of *args*.

    Scanning stops at the first positional token, which for a group is the
    subcommand name; its arguments belong to the subcommand's own parser.
    """
    options: dict[str, Any] = {}
    for param in params:
        if param.param_type_name == "option":
            for opt in (*param.opts, *param.secondary_opts):
                options[opt] = param
    long_names = [opt for opt in options if opt.startswith("--")]

    expanded: list[str] = []
    expects_value = False
    for index, arg in enumerate(args):
        if expects_value:
            expanded.append(arg)
            expects_value = False
            continue
        if arg == "--" or not arg.startswith("-") or arg == "-":
            expanded.extend(args[index:])
            break

        name, sep, value = arg.partition("=")
        if name.startswith("--"):
            name = unique_prefix_match(name, long_names) or name
        param = options.get(name)
        expanded.append(f"{name}{sep}{value}" if sep else name)
        if param is not None and not param.is_flag and not sep:
            expects_value = True
    return expanded


class InferringGroup(TyperGroup):
    """A Typer group that resolves unique prefixes of command names and long options."""

    def resolve_command(self, ctx: typer.Context, args: list[str]):
        if args and runtime_settings(ctx).infer_subcommands:
            if self.get_command(ctx, args[0]) is None:
                match = unique_prefix_match(args[0], self.list_commands(ctx))
                if match is not None:
                    args = [match, *args[1:]]
        return super().resolve_command(ctx, args)

    def parse_args(self, ctx: typer.Context, args: list[str]) -> list[str]:
        if runtime_settings(ctx).infer_long_options:
            args = expand_long_options(args, self.get_params(ctx))
        return super().parse_args(ctx, args)


class InferringCommand(TyperCommand):
    """A Typer command that resolves unique prefixes of its long options."""

    def parse_args(self, ctx: typer.Context, args: list[str]) -> list[str]:
        if runtime_settings(ctx).infer_long_options:
            args = expand_long_options(args, self.get_params(ctx))
        return super().parse_args(ctx, args)
