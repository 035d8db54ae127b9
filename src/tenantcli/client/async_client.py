"""Asynchronous service client used by command actions.

:class:`ServiceClient` wraps :class:`httpx.AsyncClient` with bearer-token
injection, retry with exponential backoff, and error mapping. Only
idempotent methods are retried after the server may have seen the
request; a POST, PATCH or DELETE is retried only when the connection
was never established. Relative
paths are resolved against ``connection.graph_url``; absolute URLs (for
example a SharePoint site's ``/_api`` endpoint) are used as given.

Error responses raise :class:`~tenantcli.exceptions.RemoteRequestError`
whose message is the upstream message extracted by
:func:`~tenantcli.framework.normalizer.extract_upstream_message`, so every
command reports service errors the same way.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import httpx

from tenantcli.client.response import extract_response_data
from tenantcli.config import resolve_credential
from tenantcli.exceptions import RemoteRequestError
from tenantcli.framework.normalizer import extract_upstream_message
from tenantcli.models import ConnectionConfig
from tenantcli.output import get_output

NEXT_LINK = "@odata.nextLink"
IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class ServiceClient:
    """Asynchronous HTTP client for the remote services.

    Must be used as an async context manager.

    Args:
        connection: Base URL, credential source and request settings.
        access_token: Bearer token to send. When ``None`` it is resolved
            from ``connection.access_token_source`` on entry.
        transport: Optional httpx transport, used by tests to plug in
            :class:`httpx.MockTransport`.

    Example::

        async with ServiceClient(config.connection) as client:
            app = await client.get_json("/v1.0/applications/<id>")
    """

    def __init__(
        self,
        connection: ConnectionConfig,
        access_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._connection = connection
        self._access_token = access_token
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    @property
    def access_token(self) -> Optional[str]:
        """The bearer token in use, once the client has been entered."""
        return self._access_token

    async def __aenter__(self) -> ServiceClient:
        if self._access_token is None:
            self._access_token = resolve_credential(self._connection.access_token_source)
        self._client = httpx.AsyncClient(
            base_url=self._connection.graph_url,
            timeout=self._connection.timeout,
            verify=self._connection.verify_ssl,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    async def request(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        json_body: Optional[Any] = None,
    ) -> httpx.Response:
        """Send a request with auth injection, retry and error mapping.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE).
            url: Path relative to the Graph base URL, or an absolute URL.
            params: Query parameters.
            headers: Extra request headers.
            json_body: JSON-serialisable body.

        Raises:
            RemoteRequestError: On an error status, or when the service
                cannot be reached after all retries.
        """
        merged_headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Accept": "application/json",
            **(headers or {}),
        }
        get_output().debug(f"{method} {url}")
        response = await self._execute_with_retry(method, url, merged_headers, params, json_body)
        self._map_response_error(response)
        return response

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def patch(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PATCH", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)

    async def get_json(self, url: str, **kwargs: Any) -> Any:
        """GET *url* and return the decoded body."""
        return extract_response_data(await self.get(url, **kwargs))

    async def post_json(self, url: str, json_body: Any = None, **kwargs: Any) -> Any:
        """POST *json_body* to *url* and return the decoded body."""
        return extract_response_data(await self.post(url, json_body=json_body, **kwargs))

    async def get_all_items(self, url: str, **kwargs: Any) -> list[Any]:
        """Collect ``value`` from every page, following ``@odata.nextLink``.

        Query parameters are only sent with the first request; next links
        already carry them.
        """
        items: list[Any] = []
        next_url: Optional[str] = url
        while next_url:
            page = await self.get_json(next_url, **kwargs)
            kwargs.pop("params", None)
            if not isinstance(page, dict):
                break
            items.extend(page.get("value") or [])
            next_url = page.get(NEXT_LINK)
        return items

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _execute_with_retry(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        params: Optional[dict[str, Any]],
        json_body: Any,
    ) -> httpx.Response:
        """Execute the request, retrying transient failures.

        Idempotent methods are retried on 5xx answers, timeouts and network
        errors. Other methods are retried on :class:`httpx.ConnectError`
        only, so a create or delete is never sent twice. The delay doubles
        each attempt: 1 s, 2 s, 4 s, ...
        """
        assert self._client is not None, "Client not initialised -- use as async context manager"

        max_retries = self._connection.max_retries
        idempotent = method.upper() in IDEMPOTENT_METHODS
        output = get_output()

        for attempt in range(max_retries + 1):
            try:
                kwargs: dict[str, Any] = {
                    "method": method,
                    "url": url,
                    "headers": headers,
                    "params": params,
                }
                if json_body is not None:
                    kwargs["json"] = json_body

                response = await self._client.request(**kwargs)

                if response.status_code >= 500 and idempotent and attempt < max_retries:
                    delay = 2 ** attempt
                    output.debug(
                        f"Server error {response.status_code}, retrying in {delay}s "
                        f"(attempt {attempt + 1}/{max_retries})"
                    )
                    await asyncio.sleep(delay)
                    continue

                return response

            except (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError) as exc:
                retryable = idempotent or isinstance(exc, httpx.ConnectError)
                if retryable and attempt < max_retries:
                    delay = 2 ** attempt
                    output.debug(
                        f"Connection error: {exc}, retrying in {delay}s "
                        f"(attempt {attempt + 1}/{max_retries})"
                    )
                    await asyncio.sleep(delay)
                    continue
                raise RemoteRequestError(
                    f"Connection failed after {attempt + 1} attempts: {exc}"
                ) from exc

        raise RemoteRequestError("Request failed after all retries")  # pragma: no cover

    def _map_response_error(self, response: httpx.Response) -> None:
        """Raise :class:`RemoteRequestError` for error status codes."""
        status = response.status_code
        if status < 400:
            return
        payload = extract_response_data(response)
        message = extract_upstream_message(payload) or f"Request failed with status {status}"
        raise RemoteRequestError(message, status_code=status, payload=payload)
