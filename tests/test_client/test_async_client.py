"""Tests for the asynchronous service client."""

from __future__ import annotations

import asyncio
import json
from typing import Any
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from tenantcli.client import ServiceClient
from tenantcli.exceptions import ConfigError, RemoteRequestError
from tenantcli.models import ConnectionConfig
from tenantcli.output import OutputManager, set_output


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _connection(**kwargs: Any) -> ConnectionConfig:
    kwargs.setdefault("max_retries", 0)
    return ConnectionConfig(**kwargs)


def _run(connection: ConnectionConfig, handler, coro_fn, token: str | None = "token"):
    async def main():
        async with ServiceClient(
            connection, access_token=token, transport=httpx.MockTransport(handler)
        ) as client:
            return await coro_fn(client)

    return asyncio.run(main())


@pytest.fixture(autouse=True)
def _clean_output():
    set_output(OutputManager(no_color=True, quiet=True))


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class TestRequests:
    def test_auth_and_accept_headers(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "1"})

        result = _run(_connection(), handler, lambda c: c.get_json("/v1.0/me"))
        assert result == {"id": "1"}
        assert seen[0].headers["Authorization"] == "Bearer token"
        assert seen[0].headers["Accept"] == "application/json"
        assert str(seen[0].url) == "https://graph.microsoft.com/v1.0/me"

    def test_absolute_url_and_custom_headers(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"value": []})

        _run(
            _connection(),
            handler,
            lambda c: c.get(
                "https://contoso.sharepoint.com/_api/web/Features",
                headers={"Accept": "application/json;odata=nometadata"},
            ),
        )
        assert seen[0].url.host == "contoso.sharepoint.com"
        assert seen[0].headers["Accept"] == "application/json;odata=nometadata"

    def test_post_json_body(self) -> None:
        bodies: list[Any] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(201, json={"id": "new"})

        result = _run(
            _connection(), handler, lambda c: c.post_json("/v1.0/applications", json_body={"displayName": "x"})
        )
        assert result == {"id": "new"}
        assert bodies == [{"displayName": "x"}]

    def test_empty_body_decodes_to_none(self) -> None:
        result = _run(
            _connection(), lambda r: httpx.Response(204), lambda c: c.get_json("/v1.0/x")
        )
        assert result is None


class TestPaging:
    def test_follows_next_link(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if "skiptoken" in str(request.url):
                return httpx.Response(200, json={"value": [{"id": "2"}]})
            return httpx.Response(
                200,
                json={
                    "value": [{"id": "1"}],
                    "@odata.nextLink": "https://graph.microsoft.com/v1.0/groups?$skiptoken=abc",
                },
            )

        items = _run(
            _connection(),
            handler,
            lambda c: c.get_all_items("/v1.0/groups", params={"$filter": "displayName eq 'x'"}),
        )
        assert items == [{"id": "1"}, {"id": "2"}]
        assert len(seen) == 2
        assert "filter" in str(seen[0].url)
        assert "filter" not in str(seen[1].url)

    def test_missing_value_is_empty(self) -> None:
        items = _run(
            _connection(), lambda r: httpx.Response(200, json={}), lambda c: c.get_all_items("/v1.0/x")
        )
        assert items == []


class TestErrors:
    def test_error_status_raises_with_upstream_message(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                404, json={"error": {"code": "Request_ResourceNotFound", "message": "Not there."}}
            )

        with pytest.raises(RemoteRequestError) as exc_info:
            _run(_connection(), handler, lambda c: c.get("/v1.0/x"))
        assert str(exc_info.value) == "Not there."
        assert exc_info.value.status_code == 404
        assert exc_info.value.payload["error"]["code"] == "Request_ResourceNotFound"

    def test_error_status_without_body(self) -> None:
        with pytest.raises(RemoteRequestError, match="Request failed with status 400"):
            _run(_connection(), lambda r: httpx.Response(400), lambda c: c.get("/v1.0/x"))

    def test_retries_server_errors(self) -> None:
        answers = iter([httpx.Response(503), httpx.Response(200, json={"ok": True})])

        with patch("tenantcli.client.async_client.asyncio.sleep", new=AsyncMock()) as sleep:
            result = _run(_connection(max_retries=2), lambda r: next(answers), lambda c: c.get_json("/x"))
        assert result == {"ok": True}
        sleep.assert_awaited_once_with(1)

    def test_connection_error_after_retries(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with patch("tenantcli.client.async_client.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(RemoteRequestError, match="Connection failed after 2 attempts"):
                _run(_connection(max_retries=1), handler, lambda c: c.get("/x"))

    @pytest.mark.parametrize("method", ["post", "patch", "delete"])
    def test_server_error_not_retried_for_writes(self, method) -> None:
        sent: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            sent.append(request)
            return httpx.Response(503) if len(sent) == 1 else httpx.Response(201, json={})

        with patch("tenantcli.client.async_client.asyncio.sleep", new=AsyncMock()) as sleep:
            with pytest.raises(RemoteRequestError) as exc_info:
                _run(_connection(max_retries=3), handler, lambda c: getattr(c, method)("/x"))
        assert exc_info.value.status_code == 503
        assert len(sent) == 1
        sleep.assert_not_awaited()

    def test_read_timeout_not_retried_for_writes(self) -> None:
        sent: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            sent.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        with patch("tenantcli.client.async_client.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(RemoteRequestError, match="Connection failed after 1 attempts"):
                _run(_connection(max_retries=3), handler, lambda c: c.post("/x", json_body={}))
        assert len(sent) == 1

    def test_connect_error_retried_for_writes(self) -> None:
        sent: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            sent.append(request)
            if len(sent) == 1:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(201, json={"id": "1"})

        with patch("tenantcli.client.async_client.asyncio.sleep", new=AsyncMock()):
            result = _run(_connection(max_retries=1), handler, lambda c: c.post_json("/x", {}))
        assert result == {"id": "1"}
        assert len(sent) == 2


class TestToken:
    def test_token_resolved_from_source(self, monkeypatch) -> None:
        monkeypatch.setenv("TENANTCLI_ACCESS_TOKEN", "from-env")
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        _run(_connection(), handler, lambda c: c.get("/x"), token=None)
        assert seen[0].headers["Authorization"] == "Bearer from-env"

    def test_missing_token_source(self, monkeypatch) -> None:
        monkeypatch.delenv("TENANTCLI_ACCESS_TOKEN", raising=False)
        with pytest.raises(ConfigError, match="TENANTCLI_ACCESS_TOKEN"):
            _run(_connection(), lambda r: httpx.Response(200), lambda c: c.get("/x"), token=None)
