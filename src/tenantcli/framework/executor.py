"""Command executor -- runs one invocation through every stage.

Stage order::

    Parse -> EnforceOptionSets -> Validate -> CollectTelemetry
          -> [ConfirmationGate, destructive commands only]
          -> RunAction -> EmitResult

Parse, option-set and validation failures stop the invocation before the
command touches the network. Every failure, whichever stage raised it, goes
through the :class:`~tenantcli.framework.normalizer.ErrorNormalizer` and is
printed as exactly one line on stderr; the exit code follows from its kind.
A declined confirmation is a success: exit code ``0`` and no output.
No stage is ever retried.
"""

from __future__ import annotations

import asyncio
import traceback
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from tenantcli.exceptions import ValidationError
from tenantcli.exit_codes import EXIT_SUCCESS
from tenantcli.framework.confirmation import Confirm, prompt_confirm
from tenantcli.framework.context import ClientFactory, ExecutionContext
from tenantcli.framework.descriptor import CommandDescriptor
from tenantcli.framework.normalizer import ErrorNormalizer
from tenantcli.framework.option_sets import OptionSetEnforcer
from tenantcli.framework.telemetry import TelemetryCollector, TelemetryRecord, TelemetrySink
from tenantcli.framework.validation import ValidationPipeline, allowed_values_validator
from tenantcli.models import GlobalConfig, NormalizedError
from tenantcli.output import (
    VERBOSITY_DEBUG,
    VERBOSITY_NORMAL,
    VERBOSITY_VERBOSE,
    OutputManager,
    format_from_option,
    set_output,
)

TELEMETRY_FILENAME = "telemetry.jsonl"


@dataclass
class InvocationResult:
    """Outcome of one invocation, returned to the CLI layer and to tests."""

    exit_code: int
    result: Any = None
    error: Optional[NormalizedError] = None
    telemetry: TelemetryRecord = field(default_factory=TelemetryRecord)
    warnings: list[NormalizedError] = field(default_factory=list)
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == EXIT_SUCCESS


class CommandExecutor:
    """Composes the framework stages around a command's action.

    Args:
        config: Effective configuration; defaults to built-in defaults.
        confirm: Confirmation capability handed to the gate.
        client_factory: Builds the service client on first use by an action.
        telemetry_sink: Receives each finished telemetry record. By default
            records go to the debug log and, when telemetry is enabled, to
            ``telemetry.jsonl`` in the data directory.
        normalizer: Maps failures to their user-facing form.
    """

    def __init__(
        self,
        config: Optional[GlobalConfig] = None,
        confirm: Confirm = prompt_confirm,
        client_factory: Optional[ClientFactory] = None,
        telemetry_sink: Optional[TelemetrySink] = None,
        normalizer: Optional[ErrorNormalizer] = None,
    ) -> None:
        self._config = config or GlobalConfig()
        self._confirm = confirm
        self._client_factory = client_factory
        self._telemetry_sink = telemetry_sink
        self._normalizer = normalizer or ErrorNormalizer()

    @property
    def config(self) -> GlobalConfig:
        return self._config

    def run(self, descriptor: CommandDescriptor, raw: Mapping[str, Any]) -> InvocationResult:
        """Run one invocation on a fresh event loop."""
        return asyncio.run(self.execute(descriptor, raw))

    async def execute(
        self, descriptor: CommandDescriptor, raw: Mapping[str, Any]
    ) -> InvocationResult:
        """Run one invocation of *descriptor* with the raw option values *raw*.

        Args:
            descriptor: The command to run.
            raw: Option values keyed by canonical option name, as collected
                from the command line. ``None`` means "not supplied".
        """
        output = self._make_output(raw)
        ctx = ExecutionContext(
            command_name=descriptor.name,
            output=output,
            config=self._config,
            confirm=self._confirm,
            client_factory=self._client_factory,
        )

        try:
            options = descriptor.schema.resolve(raw)
            ctx.options = options

            failure = OptionSetEnforcer(descriptor.option_sets).check(options)
            if failure is not None:
                raise ValidationError(failure)

            pipeline = ValidationPipeline(
                (allowed_values_validator(descriptor.schema), *descriptor.validators)
            )
            failure = await pipeline.run(options, ctx)
            if failure is not None:
                raise ValidationError(failure)

            TelemetryCollector(descriptor.telemetry).collect(options, output, ctx.telemetry)
            self._emit_telemetry(descriptor.name, ctx)

            if descriptor.confirmation is not None:
                if not await descriptor.confirmation.allows(options, ctx):
                    output.verbose("Cancelled.")
                    return InvocationResult(
                        exit_code=EXIT_SUCCESS,
                        telemetry=ctx.telemetry,
                        warnings=list(ctx.warnings),
                        cancelled=True,
                    )

            output.verbose(f"Executing {descriptor.name}...")
            result = await descriptor.action(options, ctx)
        except Exception as exc:
            error = self._normalizer.normalize(exc)
            output.debug("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
            output.error(error.message)
            return InvocationResult(
                exit_code=self._normalizer.exit_code(error),
                error=error,
                telemetry=ctx.telemetry,
                warnings=list(ctx.warnings),
            )
        finally:
            await ctx.aclose()

        if result is not None:
            output.format_response(result)
        output.verbose("DONE")
        return InvocationResult(
            exit_code=EXIT_SUCCESS,
            result=result,
            telemetry=ctx.telemetry,
            warnings=list(ctx.warnings),
        )

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _make_output(self, raw: Mapping[str, Any]) -> OutputManager:
        verbosity = VERBOSITY_NORMAL
        if raw.get("debug"):
            verbosity = VERBOSITY_DEBUG
        elif raw.get("verbose"):
            verbosity = VERBOSITY_VERBOSE
        output_format = raw.get("output") or self._config.output.format
        output = OutputManager(format=format_from_option(output_format), verbosity=verbosity)
        set_output(output)
        return output

    def _sink(self) -> TelemetrySink:
        if self._telemetry_sink is not None:
            return self._telemetry_sink
        if not self._config.telemetry.enabled:
            return TelemetrySink(None)
        from tenantcli.config import get_data_dir

        return TelemetrySink(get_data_dir() / TELEMETRY_FILENAME)

    def _emit_telemetry(self, command: str, ctx: ExecutionContext) -> None:
        try:
            self._sink().emit(command, ctx.telemetry)
        except Exception as exc:
            ctx.debug(f"Telemetry sink failed: {exc}")
