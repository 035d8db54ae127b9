"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for tenantcli:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.tenantcli/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- A single :class:`~tenantcli.models.GlobalConfig`
  JSON file storing defaults (output format, connection, telemetry).
* **Precedence resolution** -- :func:`resolve_config` layers environment
  variables over the stored config.
* **Credential resolution** -- :func:`resolve_credential` reads secrets
  from env vars, files, or interactive prompts.

All file writes go through :func:`atomic_write` (temp file, then rename) so a
crash never leaves a half-written file behind.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path

from tenantcli.exceptions import ConfigError
from tenantcli.models import GlobalConfig

_APP_NAME = "tenantcli"
_CONFIG_FILENAME = "config.json"

ENV_OUTPUT = "TENANTCLI_OUTPUT"
ENV_GRAPH_URL = "TENANTCLI_GRAPH_URL"
ENV_DISABLE_TELEMETRY = "TENANTCLI_DISABLE_TELEMETRY"


# --- XDG path resolution ---

# (environment variable, default under $HOME, sub-directory on other platforms)
_XDG_DIRS = {
    "config": ("XDG_CONFIG_HOME", (".config",), None),
    "data": ("XDG_DATA_HOME", (".local", "share"), "data"),
}


def _is_xdg_platform() -> bool:
    """Return True if the platform uses XDG Base Directory layout (Linux/FreeBSD)."""
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(kind: str) -> Path:
    env_var, home_segments, fallback_sub = _XDG_DIRS[kind]
    if _is_xdg_platform():
        base = os.environ.get(env_var) or str(Path.home().joinpath(*home_segments))
        path = Path(base) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
        if fallback_sub:
            path = path / fallback_sub
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/tenantcli/`` (default ``~/.config/tenantcli/``).
    On macOS/Windows: ``~/.tenantcli/``.
    """
    return _app_dir("config")


def get_data_dir() -> Path:
    """Return the data directory (crash logs, telemetry), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/tenantcli/`` (default ``~/.local/share/tenantcli/``).
    On macOS/Windows: ``~/.tenantcli/data/``.
    """
    return _app_dir("data")


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* via a synced temp file in the same directory.

    The temp file is removed if anything fails; the exception propagates.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = tempfile.NamedTemporaryFile(
        mode="w",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
        encoding="utf-8",
    )
    try:
        with tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp.name, path)
    except BaseException:
        Path(tmp.name).unlink(missing_ok=True)
        raise


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the config directory.

    Returns:
        The deserialised :class:`~tenantcli.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_config() -> GlobalConfig:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. Environment variables (``TENANTCLI_OUTPUT``,
           ``TENANTCLI_GRAPH_URL``, ``TENANTCLI_DISABLE_TELEMETRY``)
        2. User config (``~/.config/tenantcli/config.json``)
        3. Defaults

    Command-line options (``--output``) are applied later, per invocation.
    """
    config = load_global_config()

    env_output = os.environ.get(ENV_OUTPUT)
    if env_output:
        config.output.format = env_output

    env_graph_url = os.environ.get(ENV_GRAPH_URL)
    if env_graph_url:
        config.connection.graph_url = env_graph_url

    if os.environ.get(ENV_DISABLE_TELEMETRY, "").lower() in ("1", "true", "yes"):
        config.telemetry.enabled = False

    return config


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts user interactively (requires a TTY)

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError(
                "Cannot prompt for credentials: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Enter access token: ")

    raise ConfigError(f"Unknown credential source format: {source}")
