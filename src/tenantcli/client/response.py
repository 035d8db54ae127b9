"""Response body decoding shared by the client and the error mapping."""

from __future__ import annotations

import json
from typing import Any

import httpx


def extract_response_data(response: httpx.Response) -> Any:
    """Decode *response* as JSON, falling back to its text.

    Graph answers ``204 No Content`` to most updates and deletes; an empty
    body decodes to ``None``. SharePoint error pages and some proxies answer
    with HTML, which is returned as a string so the error mapping can still
    quote it.
    """
    if not response.content:
        return None
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text
