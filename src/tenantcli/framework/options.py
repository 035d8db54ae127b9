"""Option schema -- merge global and command options into one typed struct.

Every command declares its options as a tuple of
:class:`~tenantcli.models.Option`. :class:`OptionSchema` checks the
declaration once (duplicate names or short aliases are programming errors
and raise :class:`ValueError` straight away), merges in the options every
command accepts (:data:`GLOBAL_OPTIONS`), and generates a frozen Pydantic
model -- a subclass of :class:`ResolvedOptions` -- with one field per
option.

**Mapping rules:**

* Value options become ``Optional[str]`` fields defaulting to ``None``.
* Flags become ``bool`` fields defaulting to ``False``.
* Field names are the snake_case form of the option name (``appId`` becomes
  ``app_id``); the canonical option name is the field alias, so both
  ``options.app_id`` and ``options.value("appId")`` work.
* Only options the user actually supplied are *set*
  (:meth:`ResolvedOptions.is_set`). Absence is never encoded as a sentinel
  value.
"""

from __future__ import annotations

import keyword
import re
from typing import Any, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, create_model

from tenantcli.exceptions import ValidationError
from tenantcli.models import Option


GLOBAL_OPTIONS: tuple[Option, ...] = (
    Option(
        name="output",
        short="o",
        choices=("json", "text"),
        help="Output type. json, text. Default text",
    ),
    Option(name="verbose", flag=True, help="Runs command with verbose logging"),
    Option(name="debug", flag=True, help="Runs command with debug logging"),
)


# ---------------------------------------------------------------------------
# Name sanitisation
# ---------------------------------------------------------------------------

_INVALID_IDENT_RE = re.compile(r"[^a-zA-Z0-9_]")


def sanitize_option_name(name: str) -> str:
    """Convert an option name to a valid Python identifier.

    Example::

        >>> sanitize_option_name("appId")
        'app_id'
        >>> sanitize_option_name("scopeAdminConsentDisplayName")
        'scope_admin_consent_display_name'
        >>> sanitize_option_name("global")
        'global_'
    """
    result = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    result = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", result)
    result = result.lower().replace("-", "_").replace(".", "_")
    result = _INVALID_IDENT_RE.sub("_", result)
    result = re.sub(r"_+", "_", result).strip("_")
    if not result:
        result = "option"
    if result[0].isdigit():
        result = f"_{result}"
    if keyword.iskeyword(result) or hasattr(ResolvedOptions, result):
        result = f"{result}_"
    return result


# ---------------------------------------------------------------------------
# Resolved options
# ---------------------------------------------------------------------------


class ResolvedOptions(BaseModel):
    """Base class for the per-command option structs generated by :class:`OptionSchema`.

    Instances are immutable. Fields the user did not supply hold their
    default (``None`` or ``False``) and are *not set*.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    @classmethod
    def _field_for(cls, name: str) -> str:
        for field_name, info in cls.model_fields.items():
            if info.alias == name or field_name == name:
                return field_name
        raise KeyError(f"Unknown option: {name}")

    def is_set(self, name: str) -> bool:
        """Return ``True`` when the option *name* was supplied on this invocation."""
        return self._field_for(name) in self.model_fields_set

    def value(self, name: str, default: Any = None) -> Any:  # noqa: ANN401
        """Return the value of option *name*, or *default* when it is not set."""
        field_name = self._field_for(name)
        if field_name not in self.model_fields_set:
            return default
        return getattr(self, field_name)

    def supplied(self) -> list[str]:
        """Return the canonical names of every supplied option, in declaration order."""
        fields = type(self).model_fields
        return [
            fields[f].alias or f
            for f in fields
            if f in self.model_fields_set
        ]


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


class OptionSchema:
    """The merged, checked option declaration of one command.

    Args:
        options: The command's own options, in declaration order.
        command_name: Used in the generated model's name and in error
            messages.

    Raises:
        ValueError: If two command options share a name or a short alias.
    """

    def __init__(self, options: Sequence[Option], command_name: str = "command") -> None:
        names: set[str] = set()
        shorts: set[str] = set()
        for option in options:
            if option.name in names:
                raise ValueError(
                    f"Option '{option.name}' is declared twice on command '{command_name}'"
                )
            if option.short is not None and option.short in shorts:
                raise ValueError(
                    f"Short alias '-{option.short}' is declared twice on command '{command_name}'"
                )
            names.add(option.name)
            if option.short is not None:
                shorts.add(option.short)

        merged: dict[str, Option] = {option.name: option for option in options}
        for option in GLOBAL_OPTIONS:
            if option.name in merged:
                continue  # the command's own declaration wins
            if option.short is not None and option.short in shorts:
                option = option.model_copy(update={"short": None})
            merged[option.name] = option

        self._command_name = command_name
        self._options = merged
        self._field_names = {name: sanitize_option_name(name) for name in merged}
        self.model: type[ResolvedOptions] = self._build_model()

    @property
    def options(self) -> tuple[Option, ...]:
        """All accepted options, command options first, then global ones."""
        return tuple(self._options.values())

    def get(self, name: str) -> Optional[Option]:
        return self._options.get(name)

    def field_name(self, name: str) -> str:
        """Return the Python attribute name used for option *name*."""
        return self._field_names[name]

    def completion_values(self, name: str) -> list[str]:
        option = self._options.get(name)
        if option is None or not option.choices:
            return []
        return list(option.choices)

    def resolve(self, raw: Mapping[str, Any]) -> ResolvedOptions:
        """Build the immutable option struct for one invocation.

        Args:
            raw: Values keyed by canonical option name. ``None`` (and
                ``False`` for flags) means "not supplied".

        Raises:
            ValidationError: If *raw* names an unknown option or a required
                option was not supplied.
        """
        supplied: dict[str, Any] = {}
        for name, value in raw.items():
            option = self._options.get(name)
            if option is None:
                raise ValidationError(f"Unknown option: {name}")
            if value is None or (option.flag and value is False):
                continue
            supplied[name] = bool(value) if option.flag else str(value)

        for option in self._options.values():
            if option.required and option.name not in supplied:
                raise ValidationError(f"Required option {option.name} not specified")

        return self.model.model_validate(supplied)

    def _build_model(self) -> type[ResolvedOptions]:
        fields: dict[str, Any] = {}
        for name, option in self._options.items():
            field_name = self._field_names[name]
            if option.flag:
                fields[field_name] = (bool, Field(default=False, alias=name))
            else:
                fields[field_name] = (Optional[str], Field(default=None, alias=name))
        model_name = "".join(
            part.capitalize() for part in re.split(r"[^a-zA-Z0-9]+", self._command_name) if part
        ) + "Options"
        return create_model(model_name, __base__=ResolvedOptions, **fields)
