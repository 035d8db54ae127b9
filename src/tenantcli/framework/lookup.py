"""Helpers for resolving a single remote object from a query result."""

from __future__ import annotations

from typing import Any, Sequence

from tenantcli.exceptions import AmbiguousMatchError, NotFoundError


def odata_literal(value: str) -> str:
    """Quote *value* as an OData string literal (``O'Neil`` -> ``'O''Neil'``)."""
    return "'" + value.replace("'", "''") + "'"


def require_single(
    matches: Sequence[dict[str, Any]],
    resource: str,
    identifier: str,
    key: str = "id",
) -> dict[str, Any]:
    """Return the only element of *matches*.

    Args:
        matches: Objects returned by the lookup query, in service order.
        resource: Plural resource noun used in messages (``"Azure AD apps"``).
        identifier: The name or id that was looked up, echoed back.
        key: Attribute listed for each candidate when the match is ambiguous.

    Raises:
        NotFoundError: When nothing matched.
        AmbiguousMatchError: When more than one object matched.
    """
    if not matches:
        raise NotFoundError(f"No {resource} with {identifier} found")
    if len(matches) > 1:
        candidates = [str(match.get(key, "")) for match in matches]
        raise AmbiguousMatchError(
            f"Multiple {resource} with {identifier} found. "
            f"Please disambiguate: {','.join(candidates)}",
            candidates=candidates,
        )
    return matches[0]
