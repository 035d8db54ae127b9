"""HTTP client module for tenantcli.

:class:`ServiceClient` wraps :mod:`httpx` with bearer-token injection,
retry with exponential backoff, ``@odata.nextLink`` paging and uniform
error mapping. Command actions obtain one per invocation through
:meth:`~tenantcli.framework.context.ExecutionContext.get_client`.
"""

from tenantcli.client.async_client import ServiceClient

__all__ = ["ServiceClient"]
