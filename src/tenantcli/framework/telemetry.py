"""Telemetry -- a flat usage-property bag built once per invocation.

Each command declares *telemetry hooks*: callables receiving the resolved
options and the invocation's :class:`TelemetryRecord`. Hooks describe what
kind of invocation happened ("was ``--appId`` used", "which ``--scope``"),
never the secret or free-text values themselves.

Telemetry has no error path. :class:`TelemetryCollector` reports a hook that
raises on the diagnostic channel at debug level and moves on, and the
:class:`TelemetrySink` implementations do the same for write failures.
This mirrors how plugin hooks are isolated from the request they observe.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterator, Mapping, Optional, Sequence, Union

from tenantcli.framework.options import ResolvedOptions
from tenantcli.output import OutputManager, get_output

TelemetryValue = Union[str, bool]


class TelemetryRecord(Mapping[str, TelemetryValue]):
    """Flat mapping of property name to a string or boolean value."""

    def __init__(self) -> None:
        self._properties: dict[str, TelemetryValue] = {}

    def set(self, name: str, value: TelemetryValue) -> None:
        if not isinstance(value, (str, bool)):
            raise TypeError(
                f"Telemetry property '{name}' must be str or bool, got {type(value).__name__}"
            )
        self._properties[name] = value

    def as_dict(self) -> dict[str, TelemetryValue]:
        return dict(self._properties)

    def __getitem__(self, name: str) -> TelemetryValue:
        return self._properties[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._properties)

    def __len__(self) -> int:
        return len(self._properties)

    def __repr__(self) -> str:
        return f"TelemetryRecord({self._properties!r})"


TelemetryHook = Callable[[ResolvedOptions, TelemetryRecord], None]


def track_presence(*names: str) -> TelemetryHook:
    """Hook factory recording, per option, whether the user supplied it.

    Example::

        track_presence("appId", "objectId")
        # -> {"appId": True, "objectId": False}
    """

    def _presence(options: ResolvedOptions, record: TelemetryRecord) -> None:
        for name in names:
            record.set(name, options.is_set(name))

    _presence.__name__ = f"track_presence({', '.join(names)})"
    return _presence


def track_values(*names: str) -> TelemetryHook:
    """Hook factory echoing enumerated option values verbatim.

    Only use this for options with a closed value set. Unset options are
    left out of the record.
    """

    def _values(options: ResolvedOptions, record: TelemetryRecord) -> None:
        for name in names:
            if options.is_set(name):
                record.set(name, options.value(name))

    _values.__name__ = f"track_values({', '.join(names)})"
    return _values


class TelemetryCollector:
    """Runs every telemetry hook of a command exactly once, in order."""

    def __init__(self, hooks: Sequence[TelemetryHook]) -> None:
        self._hooks = tuple(hooks)

    def collect(
        self,
        options: ResolvedOptions,
        output: Optional[OutputManager] = None,
        record: Optional[TelemetryRecord] = None,
    ) -> TelemetryRecord:
        """Build the telemetry record for one invocation.

        The global options are always recorded first: ``debug`` and
        ``verbose`` as booleans, and ``output`` with its value when set.
        """
        output = output or get_output()
        record = record if record is not None else TelemetryRecord()

        record.set("debug", options.is_set("debug"))
        record.set("verbose", options.is_set("verbose"))
        if options.is_set("output"):
            record.set("output", options.value("output"))

        for hook in self._hooks:
            try:
                hook(options, record)
            except Exception as exc:
                name = getattr(hook, "__name__", type(hook).__name__)
                output.debug(f"Telemetry hook {name} failed: {exc}")
        return record


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------


class TelemetrySink:
    """Receives the finished record of every invocation.

    The default implementation logs the record at debug level and, when a
    *path* is given, appends one JSON line per invocation to it.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def emit(self, command: str, record: TelemetryRecord) -> None:
        output = get_output()
        properties = record.as_dict()
        output.debug(f"Telemetry for {command}: {json.dumps(properties, sort_keys=True)}")
        if self._path is None:
            return
        entry = {
            "command": command,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "properties": properties,
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(entry) + "\n")
        except OSError as exc:
            output.debug(f"Could not write telemetry to {self._path}: {exc}")


class NullTelemetrySink(TelemetrySink):
    """Discards every record."""

    def __init__(self) -> None:
        super().__init__(None)

    def emit(self, command: str, record: TelemetryRecord) -> None:
        return None
