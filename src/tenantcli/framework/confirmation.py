"""Confirmation gate for destructive commands.

The prompt itself is an injected capability -- a callable taking the
message and answering ``True``/``False`` (or an awaitable of either) --
so that tests and non-interactive front ends can answer without a TTY.
The default, :func:`prompt_confirm`, asks on the terminal and treats an
empty answer as "no".
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Awaitable, Callable, Union

import click
import typer

from tenantcli.framework.options import ResolvedOptions

if TYPE_CHECKING:
    from tenantcli.framework.context import ExecutionContext

Confirm = Callable[[str], Union[bool, Awaitable[bool]]]
MessageFactory = Callable[[ResolvedOptions], str]


def prompt_confirm(message: str) -> bool:
    """Ask *message* on the terminal; the default answer is no.

    End of input (or Ctrl-C at the prompt) counts as "no".
    """
    try:
        return typer.confirm(message, default=False)
    except click.exceptions.Abort:
        return False


class ConfirmationGate:
    """Holds a destructive action until the user approves it.

    Args:
        message: The question to ask, or a callable building it from the
            resolved options (e.g. to mention the team being removed).
        bypass_option: Name of the flag that skips the prompt.
    """

    def __init__(
        self,
        message: Union[str, MessageFactory],
        bypass_option: str = "confirm",
    ) -> None:
        self._message = message
        self.bypass_option = bypass_option

    def message_for(self, options: ResolvedOptions) -> str:
        if callable(self._message):
            return self._message(options)
        return self._message

    async def allows(self, options: ResolvedOptions, ctx: ExecutionContext) -> bool:
        """Return ``True`` if the action may run."""
        if options.is_set(self.bypass_option):
            ctx.debug(f"Confirmation bypassed by --{self.bypass_option}")
            return True
        answer = ctx.confirm(self.message_for(options))
        if inspect.isawaitable(answer):
            answer = await answer
        return bool(answer)
