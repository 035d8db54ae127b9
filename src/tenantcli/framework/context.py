"""Per-invocation execution context.

An :class:`ExecutionContext` is created by the
:class:`~tenantcli.framework.executor.CommandExecutor` for exactly one
invocation and dropped afterwards. It carries everything the stages and
the action need that is not part of the immutable command declaration:
the resolved options, the output sink, the confirmation capability, a
lazily opened service client, and a transient ``state`` bag validators use
to hand parsed values (a manifest, a resolved id) to the action.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional

from tenantcli.framework.confirmation import Confirm, prompt_confirm
from tenantcli.framework.telemetry import TelemetryRecord
from tenantcli.models import ErrorKind, GlobalConfig, NormalizedError
from tenantcli.output import OutputManager

if TYPE_CHECKING:
    from tenantcli.client.async_client import ServiceClient
    from tenantcli.framework.options import ResolvedOptions

ClientFactory = Callable[[GlobalConfig], "ServiceClient"]


@dataclass
class ExecutionContext:
    """State owned by a single command invocation.

    Attributes:
        command_name: Full space-separated command name (``"aad app get"``).
        output: The invocation's output manager (stdout results, stderr
            diagnostics).
        config: Effective global configuration.
        confirm: Capability used by the confirmation gate.
        client_factory: Builds the :class:`ServiceClient` on first use.
        options: Resolved options, set once parsing succeeded.
        state: Transient values shared between validators and the action.
        telemetry: The invocation's telemetry record.
        warnings: Non-fatal problems reported during the invocation.
    """

    command_name: str
    output: OutputManager
    config: GlobalConfig = field(default_factory=GlobalConfig)
    confirm: Confirm = prompt_confirm
    client_factory: Optional[ClientFactory] = None
    options: Optional[ResolvedOptions] = None
    state: dict[str, Any] = field(default_factory=dict)
    telemetry: TelemetryRecord = field(default_factory=TelemetryRecord)
    warnings: list[NormalizedError] = field(default_factory=list)
    _client: Optional[ServiceClient] = field(default=None, init=False, repr=False)

    # -- diagnostics ---------------------------------------------------

    def verbose(self, message: str) -> None:
        self.output.verbose(message)

    def debug(self, message: str) -> None:
        self.output.debug(message)

    def warn_local_io(self, message: str) -> None:
        """Report a local file problem that must not fail the command."""
        self.warnings.append(NormalizedError(kind=ErrorKind.LOCAL_IO_WARNING, message=message))
        self.output.warning(message)

    # -- service client ------------------------------------------------

    async def get_client(self) -> ServiceClient:
        """Return the invocation's service client, opening it on first use."""
        if self._client is None:
            if self.client_factory is None:
                from tenantcli.client.async_client import ServiceClient

                client = ServiceClient(self.config.connection)
            else:
                client = self.client_factory(self.config)
            await client.__aenter__()
            self._client = client
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            client, self._client = self._client, None
            await client.__aexit__(None, None, None)
