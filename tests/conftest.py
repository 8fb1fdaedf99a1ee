"""Shared test fixtures for rmqadmin.

Provides reusable fixtures for isolating the environment and config file,
managing output state, building connection profiles, faking the management
API with :class:`httpx.MockTransport`, and running CLI commands. These
fixtures are automatically discovered by pytest and available to all test
modules without explicit imports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from rmqadmin.client import ManagementClient
from rmqadmin.models import ConnectionProfile
from rmqadmin.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate the process from the user's environment and config file.

    Clears every ``RABBITMQADMIN_*`` variable, points ``HOME`` and
    ``XDG_DATA_HOME`` at *tmp_path* (so the default
    ``~/.rabbitmqadmin.conf`` does not exist), and returns *tmp_path*.
    """
    import os

    for var in list(os.environ):
        if var.startswith("RABBITMQADMIN_"):
            monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("NO_COLOR", raising=False)
    return tmp_path


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[[str], Path]:
    """Write TOML text to a config file under *tmp_path* and return its path."""

    def _write(text: str, name: str = "rabbitmqadmin.conf") -> Path:
        path = tmp_path / name
        path.write_text(text)
        return path

    return _write


# ---------------------------------------------------------------------------
# Profile fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def profile() -> ConnectionProfile:
    """A profile for a local broker with the default credentials."""
    return ConnectionProfile(timeout=5)


# ---------------------------------------------------------------------------
# Fake management API
# ---------------------------------------------------------------------------


class FakeBroker:
    """Records requests and answers them from a routing table.

    Routes are keyed by ``(method, raw_path)`` where *raw_path* is the
    percent-encoded path without the query string, e.g.
    ``("GET", "/api/queues/%2F")``. Unrouted requests get a 404.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def route(self, method: str, path: str, status: int = 200, json_body: Any = None) -> None:
        def _respond(request: httpx.Request) -> httpx.Response:
            if json_body is None:
                return httpx.Response(status)
            return httpx.Response(status, json=json_body)

        self.routes[(method, path)] = _respond

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.raw_path.split(b"?")[0].decode()
        responder = self.routes.get((request.method, path))
        if responder is None:
            return httpx.Response(404, json={"error": "Object Not Found", "reason": "Not Found"})
        return responder(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def json_body(self, index: int = -1) -> Any:
        return json.loads(self.requests[index].content)


@pytest.fixture
def broker() -> FakeBroker:
    return FakeBroker()


@pytest.fixture
def patched_client(broker: FakeBroker, monkeypatch: pytest.MonkeyPatch) -> list[ConnectionProfile]:
    """Make every command talk to *broker*; returns the profiles clients were built with."""
    from rmqadmin.commands import dispatch

    profiles: list[ConnectionProfile] = []

    def _create_client(profile: ConnectionProfile) -> ManagementClient:
        profiles.append(profile)
        return ManagementClient(profile, transport=broker.transport)

    monkeypatch.setattr(dispatch, "create_client", _create_client)
    return profiles


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner with stderr captured separately."""
    from typer.testing import CliRunner

    try:
        return CliRunner(mix_stderr=False)
    except TypeError:
        return CliRunner()
