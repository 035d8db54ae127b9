"""Reusable checks for command validators.

Every helper returns ``None`` when the value is acceptable and a
user-facing message otherwise. None of them raise, so command validators
can chain them without wrapping each call.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

_GUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


def is_valid_guid(value: Optional[str]) -> bool:
    """Return ``True`` if *value* is a GUID in the 8-4-4-4-12 hex form."""
    if not value:
        return False
    return _GUID_RE.match(value) is not None


_TEAMS_CHANNEL_ID_RE = re.compile(r"^19:[0-9a-zA-Z\-_]+@thread\.(skype|tacv2)$")


def is_valid_teams_channel_id(value: Optional[str]) -> bool:
    """Return ``True`` for ids shaped like ``19:<token>@thread.tacv2``."""
    if not value:
        return False
    return _TEAMS_CHANNEL_ID_RE.match(value) is not None


def check_guid(value: Optional[str], option: str) -> Optional[str]:
    if is_valid_guid(value):
        return None
    return f"{value} is not a valid GUID for option {option}"


def check_sharepoint_url(value: Optional[str]) -> Optional[str]:
    """Check that *value* is an absolute ``https://`` URL on a SharePoint host.

    Example::

        >>> check_sharepoint_url("https://contoso.sharepoint.com/sites/team") is None
        True
        >>> check_sharepoint_url("http://contoso.com")
        "'http://contoso.com' is not a valid SharePoint Online site URL."
    """
    if not value:
        return "Site URL must not be empty."
    try:
        parsed = urlparse(value)
    except ValueError:
        parsed = None
    if (
        parsed is None
        or parsed.scheme != "https"
        or not parsed.hostname
        or not parsed.hostname.lower().endswith(".sharepoint.com")
    ):
        return f"'{value}' is not a valid SharePoint Online site URL."
    return None


def check_boolean(value: Optional[str], option: str) -> Optional[str]:
    """Accept only the literal strings ``true`` and ``false`` (any case)."""
    if value is not None and value.lower() in ("true", "false"):
        return None
    return f"{value} is not a valid boolean value for option {option}. Allowed values are true|false"


def check_file_exists(path: Optional[str]) -> Optional[str]:
    if not path:
        return "File path must not be empty."
    try:
        exists = Path(path).expanduser().is_file()
    except OSError as exc:
        return f"Cannot access file {path}: {exc}"
    if not exists:
        return f"File {path} does not exist"
    return None


def parse_boolean(value: str) -> bool:
    """Convert a value already accepted by :func:`check_boolean`."""
    return value.lower() == "true"
