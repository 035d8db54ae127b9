"""Build a Typer command tree from the command registry.

**Algorithm summary**

1. Split each descriptor's name into group segments and a leaf verb
   (``"aad app get"`` -> group ``("aad", "app")``, verb ``"get"``).
2. Build a tree of :class:`typer.Typer` sub-apps -- one per group segment.
3. Attach one leaf command per descriptor. Each leaf is a dynamically
   generated function whose signature matches the descriptor's merged
   option schema, so Typer can parse and document it.
4. When invoked, the leaf collects its option values keyed by canonical
   option name and hands them to the dispatch callback, which runs the
   framework executor.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Optional

import typer

from tenantcli.framework.descriptor import CommandDescriptor
from tenantcli.framework.registry import CommandRegistry
from tenantcli.generator.param_mapper import map_option_to_typer

Dispatch = Callable[[CommandDescriptor, dict[str, Any]], Any]


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def build_command_tree(
    registry: CommandRegistry,
    dispatch: Dispatch,
    app: Optional[typer.Typer] = None,
    group_help: Optional[dict[tuple[str, ...], str]] = None,
) -> typer.Typer:
    """Attach every registered command to a nested Typer application.

    Args:
        registry: The populated command registry.
        dispatch: Called as ``dispatch(descriptor, raw)`` when a generated
            command runs. ``raw`` maps canonical option names to the values
            Typer parsed (``None``/``False`` when not supplied).
        app: Root application to attach to. A new one is created when
            ``None``.
        group_help: Optional help strings for groups, keyed by segment
            tuple (``("aad", "app")``).

    Returns:
        The root :class:`typer.Typer` app.
    """
    if app is None:
        app = typer.Typer(no_args_is_help=True)

    sub_apps: dict[tuple[str, ...], typer.Typer] = {}
    for descriptor in registry.all():
        parts = descriptor.path
        if len(parts) < 2:
            parent_app = app
        else:
            parent_app = _ensure_sub_apps(app, parts[:-1], sub_apps, group_help)
        cmd_fn = _build_command_function(descriptor, dispatch)
        parent_app.command(name=parts[-1], help=descriptor.description)(cmd_fn)

    return app


# ---------------------------------------------------------------------------
# Sub-app tree construction
# ---------------------------------------------------------------------------


def _ensure_sub_apps(
    root: typer.Typer,
    parts: tuple[str, ...],
    registry: dict[tuple[str, ...], typer.Typer],
    group_help: Optional[dict[tuple[str, ...], str]] = None,
) -> typer.Typer:
    """Lazily create Typer sub-apps for every prefix of *parts*.

    Walks through the *parts* tuple depth-by-depth (e.g., for
    ``("aad", "app")`` it ensures both ``("aad",)`` and ``("aad", "app")``
    exist). Missing sub-apps are created, recorded in *registry*, and
    attached to their parent via :meth:`typer.Typer.add_typer`.

    Returns:
        The :class:`typer.Typer` instance for the full *parts* tuple.
    """
    for depth in range(1, len(parts) + 1):
        prefix = parts[:depth]
        if prefix in registry:
            continue

        parent_app = registry.get(prefix[:-1], root)
        help_text = (group_help or {}).get(prefix) or _humanize_group(prefix[-1])

        sub = typer.Typer(name=prefix[-1], help=help_text, no_args_is_help=True)
        parent_app.add_typer(sub)
        registry[prefix] = sub

    return registry[parts]


def _humanize_group(name: str) -> str:
    """Turn a group slug into a readable label.

    ``"eventreceiver"`` -> ``"Manage eventreceiver commands."``
    """
    return f"Manage {name.replace('-', ' ')} commands."


# ---------------------------------------------------------------------------
# Dynamic command function builder
# ---------------------------------------------------------------------------


def _build_command_function(
    descriptor: CommandDescriptor,
    dispatch: Dispatch,
) -> Callable[..., Any]:
    """Dynamically generate a Typer-compatible function for *descriptor*.

    The function source is built as a string, compiled, and executed into a
    namespace so that :mod:`inspect` (which Typer relies on) can read its
    signature. When invoked, it collects every option value under the
    option's canonical name and calls *dispatch*.
    """
    param_descriptors = [
        map_option_to_typer(option, descriptor.schema) for option in descriptor.schema.options
    ]

    func_name = f"_cmd_{_slugify(descriptor.name)}"
    namespace: dict[str, Any] = {}
    sig_parts: list[str] = []

    for idx, desc in enumerate(param_descriptors):
        sentinel = f"_default_opt_{idx}"
        namespace[sentinel] = desc["default"]
        ann = f"_ann_opt_{idx}"
        namespace[ann] = desc["type"]
        sig_parts.append(f"{desc['name']}: {ann} = {sentinel}")

    body_lines = ["    raw = {}"]
    for desc in param_descriptors:
        body_lines.append(f"    raw[{desc['original_name']!r}] = {desc['name']}")
    body_lines.append("    return _dispatch(_descriptor, raw)")

    source = f"def {func_name}({', '.join(sig_parts)}):\n" + "\n".join(body_lines) + "\n"

    namespace["_dispatch"] = dispatch
    namespace["_descriptor"] = descriptor

    code = compile(source, f"<tenantcli:{descriptor.name}>", "exec")
    exec(code, namespace)  # noqa: S102 -- controlled code generation
    fn = namespace[func_name]

    fn.__doc__ = descriptor.description
    fn.__name__ = func_name
    fn.__qualname__ = func_name
    return fn


def _slugify(text: str) -> str:
    """Convert *text* to a valid Python identifier fragment."""
    slug = re.sub(r"[^a-zA-Z0-9]+", "_", text).strip("_").lower()
    return slug or "command"
