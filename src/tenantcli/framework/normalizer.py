"""Error normalizer -- every failure becomes one kind and one line of text.

Upstream services report errors in several shapes. The ones understood by
:func:`extract_upstream_message` are::

    {"error": {"code": "...", "message": "..."}}          # Microsoft Graph
    {"odata.error": {"message": {"value": "..."}}}        # SharePoint REST
    {"error": "invalid_grant", "error_description": "..."} # OAuth endpoints
    {"message": "..."} / {"detail": "..."}                 # generic JSON APIs
    '{"error": {...}}'                                    # any of the above, as a JSON string

:class:`ErrorNormalizer` is the single point the executor sends failures
through. Framework exceptions keep their own kind, transport errors become
``RemoteRequestFailure``, and anything else falls back to ``str(exc)``.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import httpx

from tenantcli.exceptions import TenantCliError
from tenantcli.exit_codes import (
    EXIT_AMBIGUOUS_MATCH,
    EXIT_NOT_FOUND,
    EXIT_REMOTE_REQUEST_FAILURE,
    EXIT_SUCCESS,
    EXIT_VALIDATION_FAILURE,
)
from tenantcli.models import ErrorKind, NormalizedError

_EXIT_CODES: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION_FAILURE: EXIT_VALIDATION_FAILURE,
    ErrorKind.NOT_FOUND: EXIT_NOT_FOUND,
    ErrorKind.AMBIGUOUS_MATCH: EXIT_AMBIGUOUS_MATCH,
    ErrorKind.REMOTE_REQUEST_FAILURE: EXIT_REMOTE_REQUEST_FAILURE,
    ErrorKind.LOCAL_IO_WARNING: EXIT_SUCCESS,
}


def exit_code_for(kind: ErrorKind) -> int:
    """Return the process exit code for an error *kind*."""
    return _EXIT_CODES[kind]


def _one_line(text: str) -> str:
    return " ".join(text.split())


def extract_upstream_message(payload: Any) -> Optional[str]:  # noqa: ANN401
    """Dig the human-readable message out of an upstream error payload.

    Args:
        payload: A decoded JSON body (``dict``/``list``), a raw string that
            may itself contain JSON, or ``None``.

    Returns:
        The message collapsed to a single line, or ``None`` when the payload
        carries nothing usable.
    """
    message = _extract(payload)
    if message is None:
        return None
    message = _one_line(message)
    return message or None


def _extract(payload: Any) -> Optional[str]:  # noqa: ANN401
    if payload is None:
        return None

    if isinstance(payload, str):
        stripped = payload.strip()
        if stripped[:1] in ("{", "["):
            try:
                decoded = json.loads(stripped)
            except json.JSONDecodeError:
                return stripped or None
            return _extract(decoded) or stripped
        return stripped or None

    if isinstance(payload, list):
        for item in payload:
            found = _extract(item)
            if found:
                return found
        return None

    if not isinstance(payload, dict):
        return str(payload)

    odata = payload.get("odata.error")
    if isinstance(odata, dict):
        found = _extract(odata.get("message"))
        if found:
            return found

    error = payload.get("error")
    if isinstance(error, dict):
        found = _extract(error)
        if found:
            return found
    elif isinstance(error, str) and error:
        description = payload.get("error_description")
        if isinstance(description, str) and description:
            return description
        return error

    description = payload.get("error_description")
    if isinstance(description, str) and description:
        return description

    message = payload.get("message")
    if isinstance(message, str) and message:
        return message
    if isinstance(message, dict):
        value = message.get("value")
        if isinstance(value, str) and value:
            return value

    value = payload.get("value")
    if isinstance(value, str) and value:
        return value

    detail = payload.get("detail")
    if isinstance(detail, str) and detail:
        return detail

    return None


class ErrorNormalizer:
    """Map any exception raised by a command to a :class:`NormalizedError`."""

    def normalize(self, exc: BaseException) -> NormalizedError:
        if isinstance(exc, TenantCliError):
            return NormalizedError(kind=exc.kind, message=_one_line(exc.message) or type(exc).__name__)

        if isinstance(exc, httpx.HTTPStatusError):
            from tenantcli.client.response import extract_response_data

            status = exc.response.status_code
            message = extract_upstream_message(extract_response_data(exc.response))
            return NormalizedError(
                kind=ErrorKind.REMOTE_REQUEST_FAILURE,
                message=message or f"Request failed with status {status}",
            )

        if isinstance(exc, httpx.RequestError):
            return NormalizedError(
                kind=ErrorKind.REMOTE_REQUEST_FAILURE,
                message=_one_line(str(exc)) or f"{type(exc).__name__} while contacting the service",
            )

        message = extract_upstream_message(str(exc)) if str(exc) else None
        return NormalizedError(
            kind=ErrorKind.REMOTE_REQUEST_FAILURE,
            message=message or repr(exc),
        )

    def exit_code(self, error: NormalizedError) -> int:
        return exit_code_for(error.kind)

