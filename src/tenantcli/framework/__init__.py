"""Command execution framework.

Commands are declared as immutable
:class:`~tenantcli.framework.descriptor.CommandDescriptor` objects and run by
the :class:`~tenantcli.framework.executor.CommandExecutor`, which threads
each invocation through option parsing, option-set enforcement, the
validation pipeline, telemetry collection, the confirmation gate and error
normalisation.

Typical usage::

    from tenantcli.framework import CommandDescriptor, CommandExecutor
    from tenantcli.models import Option, OptionSet

    async def show(options, ctx):
        return {"id": options.id}

    descriptor = CommandDescriptor(
        name="thing get",
        description="Gets a thing",
        action=show,
        options=(Option(name="id"), Option(name="name")),
        option_sets=(OptionSet(members=("id", "name")),),
    )
    CommandExecutor().run(descriptor, {"id": "42"})
"""

from tenantcli.framework.confirmation import ConfirmationGate, prompt_confirm
from tenantcli.framework.context import ExecutionContext
from tenantcli.framework.descriptor import CommandDescriptor
from tenantcli.framework.executor import CommandExecutor, InvocationResult
from tenantcli.framework.fanout import fan_out
from tenantcli.framework.lookup import require_single
from tenantcli.framework.normalizer import ErrorNormalizer, extract_upstream_message
from tenantcli.framework.option_sets import OptionSetEnforcer
from tenantcli.framework.options import OptionSchema, ResolvedOptions
from tenantcli.framework.registry import CommandRegistry
from tenantcli.framework.telemetry import (
    NullTelemetrySink,
    TelemetryCollector,
    TelemetryRecord,
    TelemetrySink,
    track_presence,
    track_values,
)
from tenantcli.framework.validation import ValidationPipeline

__all__ = [
    "CommandDescriptor",
    "CommandExecutor",
    "CommandRegistry",
    "ConfirmationGate",
    "ErrorNormalizer",
    "ExecutionContext",
    "InvocationResult",
    "NullTelemetrySink",
    "OptionSchema",
    "OptionSetEnforcer",
    "ResolvedOptions",
    "TelemetryCollector",
    "TelemetryRecord",
    "TelemetrySink",
    "ValidationPipeline",
    "extract_upstream_message",
    "fan_out",
    "prompt_confirm",
    "require_single",
    "track_presence",
    "track_values",
]
