"""Shared test fixtures for tenantcli.

Provides isolated config environments, output state management, a mocked
service transport, and a CLI runner. These fixtures are automatically
discovered by pytest and available to all test modules without explicit
imports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from tenantcli.client.async_client import ServiceClient
from tenantcli.framework import CommandExecutor, NullTelemetrySink
from tenantcli.models import GlobalConfig
from tenantcli.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    Resetting forces a fresh manager to be created on next use.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _plain_diagnostics(monkeypatch: pytest.MonkeyPatch) -> None:
    """Disable colour so diagnostics are printed unwrapped, one message per line."""
    monkeypatch.setenv("NO_COLOR", "1")


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path
    so that tests never touch real user config, clears all TENANTCLI_*
    environment variables and changes the working directory to tmp_path
    (where the registration file is written).

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("tenantcli.config._is_xdg_platform", lambda: True)

    for var in [
        "TENANTCLI_OUTPUT",
        "TENANTCLI_GRAPH_URL",
        "TENANTCLI_DISABLE_TELEMETRY",
        "TENANTCLI_ACCESS_TOKEN",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a plain-text, quiet, colourless OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.TEXT, no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Service transport fixtures
# ---------------------------------------------------------------------------


class RecordingHandler:
    """httpx.MockTransport handler answering from a route table.

    Routes are keyed by ``(method, path)``; a value is either a response or
    a callable building one from the request. Every request is recorded.
    Unknown routes answer 404 with a Graph-style error body.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Any] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, response: Any) -> None:
        self.routes[(method.upper(), path)] = response

    def json_body(self, index: int) -> Any:
        return json.loads(self.requests[index].content)

    def calls(self, method: str, path: Optional[str] = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == method and (path is None or r.url.path == path)
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(
                404,
                json={"error": {"code": "NotFound", "message": f"No route {request.url.path}"}},
            )
        if callable(route):
            return route(request)
        return route


@pytest.fixture
def service() -> RecordingHandler:
    """A fresh route table for a mocked remote service."""
    return RecordingHandler()


@pytest.fixture
def make_executor(service: RecordingHandler) -> Callable[..., CommandExecutor]:
    """Build executors whose service client talks to the ``service`` fixture.

    Keyword arguments are passed to :class:`CommandExecutor`; the
    confirmation answer defaults to "no".
    """

    def _client_factory(config: GlobalConfig) -> ServiceClient:
        return ServiceClient(
            config.connection,
            access_token="test-token",
            transport=httpx.MockTransport(service),
        )

    def _make(**kwargs: Any) -> CommandExecutor:
        kwargs.setdefault("confirm", lambda message: False)
        kwargs.setdefault("client_factory", _client_factory)
        kwargs.setdefault("telemetry_sink", NullTelemetrySink())
        return CommandExecutor(**kwargs)

    return _make


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
