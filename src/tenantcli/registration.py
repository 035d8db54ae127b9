"""Local app registration file.

Commands run with ``--save`` remember the apps they touched in a small JSON
file in the working directory (``.tenantclirc.json`` by default)::

    {"apps": [{"appId": "...", "name": "..."}]}

Writes are read-merge-write: other top-level keys are preserved and an app
already listed (same ``appId``) is not added twice. A file that cannot be
read, parsed or written never fails the command; the problem is reported
as a warning and the command's result stands.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from tenantcli.config import atomic_write
from tenantcli.models import RegisteredApp

if TYPE_CHECKING:
    from tenantcli.framework.context import ExecutionContext


def registration_path(ctx: ExecutionContext) -> Path:
    return Path(ctx.config.registration_file).expanduser().resolve()


def _load(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {"apps": []}
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {"apps": []}
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("top-level value is not an object")
    apps = data.setdefault("apps", [])
    if not isinstance(apps, list):
        raise ValueError("'apps' is not a list")
    return data


def save_app_registration(app_id: str, name: str, ctx: ExecutionContext) -> bool:
    """Add the app to the registration file unless it is already there.

    Returns:
        ``True`` when the file now lists the app, ``False`` when the file
        could not be used (a warning has been reported on *ctx*).
    """
    path = registration_path(ctx)
    ctx.verbose(f"Saving Azure AD app registration information to {path}")

    try:
        data = _load(path)
    except (OSError, ValueError) as exc:
        ctx.warn_local_io(f"Error reading {path}: {exc}. Please add app info to {path} manually.")
        return False

    try:
        known = [RegisteredApp.model_validate(entry) for entry in data["apps"]]
    except PydanticValidationError as exc:
        ctx.warn_local_io(f"Error reading {path}: {exc}. Please add app info to {path} manually.")
        return False

    if any(app.app_id == app_id for app in known):
        ctx.debug(f"App {app_id} is already listed in {path}")
        return True

    entry = RegisteredApp(app_id=app_id, name=name)
    data["apps"].append(entry.model_dump(by_alias=True))
    try:
        atomic_write(path, json.dumps(data, indent=2) + "\n")
    except OSError as exc:
        ctx.warn_local_io(f"Error writing {path}: {exc}. Please add app info to {path} manually.")
        return False
    return True
