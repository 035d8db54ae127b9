"""Canonical Pydantic models shared across all tenantcli modules.

The models fall into two groups:

**Command models** -- the declarative pieces a command is built from and the
values the framework produces while running it:
    :class:`Option`, :class:`OptionSet`, :class:`ErrorKind`,
    :class:`NormalizedError`, and :class:`RegisteredApp`.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`OutputConfig`, :class:`ConnectionConfig`,
    :class:`TelemetryConfig`, and :class:`GlobalConfig`.

All models use Pydantic v2. Command models are frozen: they are built once
when the command registry is populated and never change afterwards.
"""

from __future__ import annotations

import enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Command declarations ---


class Option(BaseModel):
    """A single command-line option accepted by a command.

    Example::

        Option(name="appId", short="i", help="Application (client) ID")
        Option(name="platform", choices=["spa", "web", "publicClient"])
        Option(name="confirm", flag=True)
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Canonical long name, used as --name on the CLI")
    short: Optional[str] = Field(
        default=None, description="Single-letter alias, used as -x on the CLI"
    )
    required: bool = False
    choices: Optional[tuple[str, ...]] = Field(
        default=None,
        description="Allowed values: completion hints and enforced by validation",
    )
    flag: bool = Field(default=False, description="Boolean flag that takes no value")
    help: str = ""

    @field_validator("short")
    @classmethod
    def _single_letter(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and len(value) != 1:
            raise ValueError(f"short alias must be a single character, got {value!r}")
        return value


class OptionSet(BaseModel):
    """A group of options of which exactly one must be supplied."""

    model_config = ConfigDict(frozen=True)

    members: tuple[str, ...]

    @field_validator("members")
    @classmethod
    def _at_least_two(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if len(value) < 2:
            raise ValueError("an option set needs at least two members")
        return value


# --- Error taxonomy ---


class ErrorKind(str, enum.Enum):
    """The closed set of failure kinds surfaced to the user."""

    VALIDATION_FAILURE = "ValidationFailure"
    NOT_FOUND = "NotFound"
    AMBIGUOUS_MATCH = "AmbiguousMatch"
    REMOTE_REQUEST_FAILURE = "RemoteRequestFailure"
    LOCAL_IO_WARNING = "LocalIOWarning"


class NormalizedError(BaseModel):
    """A failure reduced to its kind and one line of human-readable text."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str

    @property
    def is_fatal(self) -> bool:
        return self.kind != ErrorKind.LOCAL_IO_WARNING


# --- Local state ---


class RegisteredApp(BaseModel):
    """One entry of the local app registration file."""

    model_config = ConfigDict(populate_by_name=True)

    app_id: str = Field(alias="appId")
    name: str


# --- Configuration ---


class OutputConfig(BaseModel):
    """Output formatting defaults."""

    format: Literal["json", "text"] = Field(default="text", description="Result format: json, text")


class ConnectionConfig(BaseModel):
    """How commands reach the remote services.

    ``access_token_source`` uses the same descriptor syntax as
    :func:`~tenantcli.config.resolve_credential` (``env:VAR``,
    ``file:/path``, ``prompt``).
    """

    graph_url: str = "https://graph.microsoft.com"
    access_token_source: str = "env:TENANTCLI_ACCESS_TOKEN"
    timeout: int = Field(default=30, ge=1)
    max_retries: int = Field(default=2, ge=0)
    verify_ssl: bool = True


class TelemetryConfig(BaseModel):
    """Usage telemetry settings."""

    enabled: bool = True


class GlobalConfig(BaseModel):
    """Top-level user configuration, stored as ``config.json``."""

    output: OutputConfig = Field(default_factory=OutputConfig)
    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)
    registration_file: str = Field(
        default=".tenantclirc.json",
        description="Path of the local app registration file written by --save",
    )
