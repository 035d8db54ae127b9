"""Config commands -- view and modify global configuration.

Provides the ``tenantcli config`` sub-command group for reading and
updating the user's global configuration file
(:class:`~tenantcli.models.GlobalConfig`). Settings are persisted in the
tenantcli config directory and control defaults such as output format,
the Graph endpoint, the access-token source and telemetry.
"""

from __future__ import annotations

import typer
from pydantic import ValidationError as PydanticValidationError

from tenantcli.exit_codes import EXIT_VALIDATION_FAILURE
from tenantcli.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show current configuration.

    Example::

        tenantcli config show
    """
    from tenantcli.config import get_config_dir, load_global_config

    config = load_global_config()
    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'connection.graph_url')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Uses dot notation for nested keys. The value is coerced to match the
    existing field's type (bool, int, or str) and the result is validated
    against :class:`~tenantcli.models.GlobalConfig` before saving.

    Raises:
        typer.Exit: With code 2 if the key path is invalid, the value
            cannot be coerced, or validation fails.

    Example::

        tenantcli config set output.format json
        tenantcli config set telemetry.enabled false
    """
    from tenantcli.config import load_global_config, save_global_config
    from tenantcli.models import GlobalConfig

    config = load_global_config()
    data = config.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=EXIT_VALIDATION_FAILURE)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], dict):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=EXIT_VALIDATION_FAILURE)

    current = target[final_key]
    if isinstance(current, bool):
        coerced: object = value.lower() in ("true", "1", "yes")
    elif isinstance(current, int):
        try:
            coerced = int(value)
        except ValueError:
            error(f"Expected integer for {key}, got: {value}")
            raise typer.Exit(code=EXIT_VALIDATION_FAILURE) from None
    else:
        coerced = value

    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except PydanticValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=EXIT_VALIDATION_FAILURE) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")
