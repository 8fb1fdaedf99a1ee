"""Tests for subcommand and long-option prefix inference."""

from __future__ import annotations

import typer
from typer.main import get_command

from rmqadmin.app import app
from rmqadmin.commands.inference import (
    expand_long_options,
    runtime_settings,
    unique_prefix_match,
)
from rmqadmin.models import RuntimeSettings


ROOT = get_command(app)


def _command_params(*path: str) -> list:
    """Return the params of the command reached by *path* from the root group."""
    command = ROOT
    ctx = typer.Context(ROOT)
    for name in path:
        command = command.get_command(ctx, name)
        assert command is not None, name
    return command.params


# --vhost/-V, --name, --idempotently
DELETE_QUEUE = _command_params("delete", "queue")


class TestUniquePrefixMatch:
    def test_unique(self) -> None:
        assert unique_prefix_match("que", ["queues", "users", "vhosts"]) == "queues"

    def test_exact_wins_over_longer(self) -> None:
        assert unique_prefix_match("user", ["user", "user_limit"]) == "user"

    def test_ambiguous(self) -> None:
        assert unique_prefix_match("v", ["vhost", "vhost_limit"]) is None

    def test_unknown(self) -> None:
        assert unique_prefix_match("zzz", ["queues"]) is None


class TestExpandLongOptions:
    def test_expands_unique_prefix(self) -> None:
        assert expand_long_options(["--idem", "--na", "q1"], DELETE_QUEUE) == [
            "--idempotently",
            "--name",
            "q1",
        ]

    def test_value_that_looks_like_an_option_is_kept(self) -> None:
        assert expand_long_options(["--vh", "--na"], DELETE_QUEUE) == ["--vhost", "--na"]

    def test_equals_form(self) -> None:
        assert expand_long_options(["--vh=/"], DELETE_QUEUE) == ["--vhost=/"]

    def test_ambiguous_prefix_left_for_the_parser(self) -> None:
        # --node, --non-interactive and --no-color all start with --no
        assert expand_long_options(["--no", "x"], ROOT.params) == ["--no", "x"]

    def test_short_options_consume_values(self) -> None:
        assert expand_long_options(["-V", "/", "--idem"], DELETE_QUEUE) == [
            "-V",
            "/",
            "--idempotently",
        ]

    def test_root_flags_do_not_consume_values(self) -> None:
        assert expand_long_options(["--non-inter", "--nod", "a"], ROOT.params) == [
            "--non-interactive",
            "--node",
            "a",
        ]

    def test_stops_at_first_positional(self) -> None:
        args = ["--vh", "/", "list", "--na", "q1"]
        assert expand_long_options(args, ROOT.params) == ["--vhost", "/", "list", "--na", "q1"]


class TestRuntimeSettingsLookup:
    def test_from_root_object(self) -> None:
        settings = RuntimeSettings(infer_subcommands=True)
        ctx = typer.Context(ROOT, obj={"settings": settings})
        child = typer.Context(ROOT, parent=ctx)
        assert runtime_settings(child) is settings

    def test_defaults_without_object(self) -> None:
        ctx = typer.Context(ROOT)
        assert runtime_settings(ctx) == RuntimeSettings()
