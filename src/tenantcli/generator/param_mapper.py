"""Map declared command options to Typer CLI options.

This module converts :class:`~tenantcli.models.Option` declarations into
descriptor dictionaries that
:func:`~tenantcli.generator.command_tree._build_command_function` uses to
construct dynamically generated function signatures.

**Mapping rules:**

* Every option becomes a ``--name`` flag via :func:`typer.Option`, plus
  ``-x`` when it declares a short alias. Option names keep their camelCase
  spelling on the command line (``--appId``).
* Value options are ``Optional[str]`` defaulting to ``None``, so "not
  supplied" stays distinguishable from any value. Required options are
  *not* marked required for Typer: the framework reports them with its own
  message during parsing.
* Boolean flags are ``bool`` defaulting to ``False`` and take no value.
* Allowed-value sets become shell completion candidates; they are enforced
  by the framework, not by Click.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import typer

from tenantcli.framework.options import OptionSchema
from tenantcli.models import Option


def _completer(values: list[str]) -> Callable[[str], list[str]]:
    def _complete(incomplete: str) -> list[str]:
        return [value for value in values if value.startswith(incomplete)]

    return _complete


def build_help_text(option: Option) -> Optional[str]:
    """Return the ``--help`` line for *option*, including its allowed values."""
    help_text = option.help
    if option.choices:
        hint = f"[choices: {', '.join(option.choices)}]"
        help_text = f"{help_text}  {hint}" if help_text else hint
    if option.required:
        help_text = f"{help_text}  [required]" if help_text else "[required]"
    return help_text or None


def map_option_to_typer(option: Option, schema: OptionSchema) -> dict[str, Any]:
    """Map a single :class:`~tenantcli.models.Option` to a Typer descriptor dict.

    Args:
        option: The option to map.
        schema: The merged schema the option belongs to; supplies the
            Python parameter name and completion values.

    Returns:
        A dict with the following keys:

        * ``name`` (``str``) -- Python-safe parameter name (snake_case).
        * ``original_name`` (``str``) -- The canonical option name, used to
          key the raw values handed to the executor.
        * ``type`` -- Python type annotation for the parameter.
        * ``default`` -- A :func:`typer.Option` descriptor.
        * ``help`` (``str``) -- Help text for ``--help`` output.
    """
    py_name = schema.field_name(option.name)
    help_text = build_help_text(option)

    decls = [f"--{option.name}"]
    if option.short:
        decls.append(f"-{option.short}")

    if option.flag:
        py_type: Any = bool
        default = typer.Option(False, *decls, help=help_text)
    else:
        py_type = Optional[str]
        completion = schema.completion_values(option.name)
        if completion:
            default = typer.Option(
                None, *decls, help=help_text, autocompletion=_completer(completion)
            )
        else:
            default = typer.Option(None, *decls, help=help_text)

    return {
        "name": py_name,
        "original_name": option.name,
        "type": py_type,
        "default": default,
        "help": help_text or "",
    }
