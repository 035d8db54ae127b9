"""Exception hierarchy for tenantcli.

All exceptions inherit from :class:`TenantCliError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`tenantcli.exit_codes`
and a ``kind`` from the closed :class:`~tenantcli.models.ErrorKind`
taxonomy. Command actions raise these; the
:class:`~tenantcli.framework.normalizer.ErrorNormalizer` turns every failure
(these, transport errors, and anything else) into a single
:class:`~tenantcli.models.NormalizedError` before it reaches the user.

Subclass hierarchy::

    TenantCliError (exit 1)
    +-- ValidationError       (exit 2)
    +-- NotFoundError         (exit 3)
    +-- AmbiguousMatchError   (exit 4)
    +-- RemoteRequestError    (exit 5)
    +-- ConfigError           (exit 1)
"""

from __future__ import annotations

from typing import Any, Optional

from tenantcli.exit_codes import (
    EXIT_AMBIGUOUS_MATCH,
    EXIT_GENERIC_FAILURE,
    EXIT_NOT_FOUND,
    EXIT_REMOTE_REQUEST_FAILURE,
    EXIT_VALIDATION_FAILURE,
)
from tenantcli.models import ErrorKind


class TenantCliError(Exception):
    """Base exception for all tenantcli errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE
    kind: ErrorKind = ErrorKind.REMOTE_REQUEST_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(TenantCliError):
    """Raised when the supplied options are rejected before any network access."""

    exit_code = EXIT_VALIDATION_FAILURE
    kind = ErrorKind.VALIDATION_FAILURE


class NotFoundError(TenantCliError):
    """Raised when a lookup by identifier or name returns zero matches."""

    exit_code = EXIT_NOT_FOUND
    kind = ErrorKind.NOT_FOUND


class AmbiguousMatchError(TenantCliError):
    """Raised when a lookup by identifier or name returns more than one match.

    Args:
        message: Human-readable error description.
        candidates: Identifiers of every match, in the order the service
            returned them.
    """

    exit_code = EXIT_AMBIGUOUS_MATCH
    kind = ErrorKind.AMBIGUOUS_MATCH

    def __init__(self, message: str, candidates: list[str] | None = None):
        super().__init__(message)
        self.candidates = list(candidates or [])


class RemoteRequestError(TenantCliError):
    """Raised when the remote service answers with an error response.

    Args:
        message: The message extracted from the upstream payload.
        status_code: HTTP status code of the failed response, if any.
        payload: The decoded response body, kept for diagnostics only.
            It is never shown to the user.
    """

    exit_code = EXIT_REMOTE_REQUEST_FAILURE
    kind = ErrorKind.REMOTE_REQUEST_FAILURE

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        payload: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class ConfigError(TenantCliError):
    """Raised for configuration problems (invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE
