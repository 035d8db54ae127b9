"""Validation pipeline -- ordered, awaitable checks over resolved options.

A validator is an async callable ``(options, ctx) -> str | None``. It
returns ``None`` (or ``True``) to pass and a human-readable message to fail.
Validators may await I/O and may leave parsed values in ``ctx.state`` for
later validators and for the command action; they never mutate the options.

:class:`ValidationPipeline` awaits the validators one at a time in
registration order and stops at the first failure. The failure text is
surfaced to the user verbatim.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Sequence, Union

from tenantcli.framework.options import OptionSchema, ResolvedOptions

if TYPE_CHECKING:
    from tenantcli.framework.context import ExecutionContext

ValidatorResult = Union[str, bool, None]
Validator = Callable[[ResolvedOptions, "ExecutionContext"], Awaitable[ValidatorResult]]


def _validator_name(validator: Any) -> str:  # noqa: ANN401
    return getattr(validator, "__name__", None) or type(validator).__name__


class ValidationPipeline:
    """Runs validators strictly in order, stopping at the first failure.

    Args:
        validators: The validators, in the order they must run.
    """

    def __init__(self, validators: Sequence[Validator]) -> None:
        self._validators = tuple(validators)

    def __len__(self) -> int:
        return len(self._validators)

    async def run(self, options: ResolvedOptions, ctx: ExecutionContext) -> Optional[str]:
        """Return the first failure message, or ``None`` if every validator passed."""
        for validator in self._validators:
            ctx.debug(f"Running validator {_validator_name(validator)}")
            result = await validator(options, ctx)
            if result is None or result is True:
                continue
            if result is False:
                return f"Validation failed ({_validator_name(validator)})"
            return str(result)
        return None


def allowed_values_validator(schema: OptionSchema) -> Validator:
    """Build a validator enforcing the allowed-value sets declared in *schema*."""

    async def check_allowed_values(
        options: ResolvedOptions, ctx: ExecutionContext
    ) -> Optional[str]:
        for option in schema.options:
            if not option.choices or not options.is_set(option.name):
                continue
            value = options.value(option.name)
            if value not in option.choices:
                allowed = ", ".join(option.choices)
                return (
                    f"{value} is not a valid value for {option.name}. "
                    f"Allowed values are {allowed}"
                )
        return None

    return check_allowed_values
