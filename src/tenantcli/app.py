"""Typer application factory and CLI entry point for tenantcli.

This module wires together the top-level Typer application: the ``config``
sub-command group, and every service command in the registry, each turned
into a Typer command whose options mirror its declaration. Running a
service command hands the parsed values to a
:class:`~tenantcli.framework.CommandExecutor`.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. Unhandled exceptions are written to a crash log under
the data directory.
"""

from __future__ import annotations

import sys
import traceback
from datetime import datetime
from typing import Any, Callable, Optional

import typer

from tenantcli import __version__
from tenantcli.exit_codes import EXIT_GENERIC_FAILURE, EXIT_SUCCESS
from tenantcli.framework import CommandDescriptor, CommandExecutor, CommandRegistry

ExecutorFactory = Callable[[], CommandExecutor]


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"tenantcli {__version__}")
        raise typer.Exit()


def _root_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Manage Microsoft 365 tenants from the command line."""


def default_executor() -> CommandExecutor:
    """Build an executor from the effective configuration.

    Raises:
        ConfigError: If the stored configuration cannot be loaded.
    """
    from tenantcli.config import resolve_config

    return CommandExecutor(config=resolve_config())


def make_dispatch(executor_factory: ExecutorFactory) -> Callable[[CommandDescriptor, dict[str, Any]], None]:
    """Return the callback generated commands use to run an invocation."""

    def _dispatch(descriptor: CommandDescriptor, raw: dict[str, Any]) -> None:
        outcome = executor_factory().run(descriptor, raw)
        if outcome.exit_code != EXIT_SUCCESS:
            raise typer.Exit(code=outcome.exit_code)

    return _dispatch


def create_app(
    registry: Optional[CommandRegistry] = None,
    executor_factory: ExecutorFactory = default_executor,
) -> typer.Typer:
    """Build the root Typer application.

    Args:
        registry: Service commands to expose. Defaults to the built-in
            commands from :func:`tenantcli.commands.build_registry`.
        executor_factory: Creates the executor for each invocation; tests
            pass one with a mocked transport and confirmation.
    """
    from tenantcli.commands import GROUP_HELP, build_registry
    from tenantcli.commands.config import config_app
    from tenantcli.generator import build_command_tree

    app = typer.Typer(
        name="tenantcli",
        help="Manage Microsoft 365 tenants from the command line.",
        no_args_is_help=True,
        add_completion=True,
        rich_markup_mode="rich",
    )
    app.callback()(_root_callback)
    app.add_typer(config_app, name="config", help="Configuration management.")

    if registry is None:
        registry = build_registry()
    build_command_tree(
        registry,
        make_dispatch(executor_factory),
        app=app,
        group_help=GROUP_HELP,
    )
    return app


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from tenantcli.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``tenantcli`` console script.

    Unhandled :class:`~tenantcli.exceptions.TenantCliError` instances (for
    example a broken config file) cause a clean exit with the error's
    ``exit_code``. All other exceptions produce a crash log and a generic
    failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    try:
        create_app()()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from tenantcli.exceptions import TenantCliError
        from tenantcli.output import error

        if isinstance(exc, TenantCliError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
