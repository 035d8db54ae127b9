"""Command descriptor -- the immutable declaration of one command."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from tenantcli.framework.confirmation import ConfirmationGate
from tenantcli.framework.options import OptionSchema, ResolvedOptions
from tenantcli.framework.telemetry import TelemetryHook
from tenantcli.framework.validation import Validator
from tenantcli.models import Option, OptionSet

if TYPE_CHECKING:
    from tenantcli.framework.context import ExecutionContext

Action = Callable[[ResolvedOptions, "ExecutionContext"], Awaitable[Any]]


@dataclass(frozen=True)
class CommandDescriptor:
    """Everything the executor needs to run a command.

    Descriptors are built once, when the registry is populated, and never
    change. Anything resolved while running (ids, parsed files) lives in the
    :class:`~tenantcli.framework.context.ExecutionContext` instead.

    Args:
        name: Space-separated command path, e.g. ``"aad app get"``.
        description: One-line help text.
        action: Async callable ``(options, ctx) -> result``. A ``None``
            result prints nothing.
        options: The command's own options, in declaration order.
        validators: Run in order after option-set enforcement.
        option_sets: "Exactly one of" groups.
        telemetry: Hooks filling the telemetry record.
        confirmation: Set for destructive commands.

    Raises:
        ValueError: If options are declared twice or an option set names
            an option the command does not accept.
    """

    name: str
    description: str
    action: Action
    options: tuple[Option, ...] = ()
    validators: tuple[Validator, ...] = ()
    option_sets: tuple[OptionSet, ...] = ()
    telemetry: tuple[TelemetryHook, ...] = ()
    confirmation: Optional[ConfirmationGate] = None
    schema: OptionSchema = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        for attr in ("options", "validators", "option_sets", "telemetry"):
            object.__setattr__(self, attr, tuple(getattr(self, attr)))

        schema = OptionSchema(self.options, command_name=self.name)
        object.__setattr__(self, "schema", schema)

        for option_set in self.option_sets:
            for member in option_set.members:
                if schema.get(member) is None:
                    raise ValueError(
                        f"Option set member '{member}' is not an option of '{self.name}'"
                    )

        if self.confirmation is not None and schema.get(self.confirmation.bypass_option) is None:
            raise ValueError(
                f"Destructive command '{self.name}' does not declare "
                f"its bypass option '{self.confirmation.bypass_option}'"
            )

    @property
    def destructive(self) -> bool:
        return self.confirmation is not None

    @property
    def path(self) -> tuple[str, ...]:
        """The command name split into group and leaf segments."""
        return tuple(self.name.split())
