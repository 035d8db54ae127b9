"""``spo eventreceiver remove`` -- remove an event receiver from a web, site or list."""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import urlparse

from tenantcli.exceptions import AmbiguousMatchError, NotFoundError
from tenantcli.framework import (
    CommandDescriptor,
    ConfirmationGate,
    ExecutionContext,
    ResolvedOptions,
    track_presence,
    track_values,
)
from tenantcli.framework.lookup import odata_literal
from tenantcli.framework.validators import check_sharepoint_url, is_valid_guid
from tenantcli.models import Option, OptionSet

SPO_HEADERS = {"Accept": "application/json;odata=nometadata"}
LIST_SELECTORS = ("listTitle", "listId", "listUrl")


async def validate_options(options: ResolvedOptions, ctx: ExecutionContext) -> Optional[str]:
    failure = check_sharepoint_url(options.web_url)
    if failure:
        return failure

    selected = [name for name in LIST_SELECTORS if options.is_set(name)]
    if len(selected) > 1:
        return "Specify either list id or title or list url"

    if options.is_set("listId") and not is_valid_guid(options.list_id):
        return f"{options.list_id} is not a valid GUID"

    if selected and options.value("scope") == "site":
        return "Scope cannot be set to site when retrieving list event receivers."

    return None


def confirmation_message(options: ResolvedOptions) -> str:
    if options.is_set("id"):
        return f"Are you sure you want to remove event receiver with id {options.id}?"
    return f"Are you sure you want to remove event receiver with name {options.name}?"


def server_relative_path(web_url: str, list_url: str) -> str:
    """Resolve *list_url* (server- or web-relative) to a server-relative path."""
    web_path = urlparse(web_url).path.rstrip("/")
    path = "/" + list_url.strip("/")
    if path.lower().startswith(f"{web_path.lower()}/"):
        return path
    if not list_url.startswith("/"):
        return f"{web_path}{path}"
    return path


def receivers_url(options: ResolvedOptions) -> str:
    web_url = options.web_url.rstrip("/")
    if options.is_set("listId"):
        return f"{web_url}/_api/web/lists(guid'{options.list_id}')/eventreceivers"
    if options.is_set("listTitle"):
        return f"{web_url}/_api/web/lists/getByTitle({odata_literal(options.list_title)})/eventreceivers"
    if options.is_set("listUrl"):
        path = server_relative_path(web_url, options.list_url)
        return f"{web_url}/_api/web/GetList({odata_literal(path)})/eventreceivers"
    scope = options.value("scope", "web")
    return f"{web_url}/_api/{scope}/eventreceivers"


def _single_receiver(receivers: list[dict[str, Any]], options: ResolvedOptions) -> dict[str, Any]:
    if options.is_set("name"):
        label = f"name {options.name}"
    else:
        label = f"id {options.id}"
    if not receivers:
        raise NotFoundError(f"Specified event receiver with {label} cannot be found")
    if len(receivers) > 1:
        ids = [str(r.get("ReceiverId", "")) for r in receivers]
        if options.is_set("name"):
            message = f"Multiple eventreceivers with {label}, ids: {','.join(ids)} found"
        else:
            message = f"Multiple eventreceivers with {label} found"
        raise AmbiguousMatchError(message, candidates=ids)
    return receivers[0]


async def remove_event_receiver(options: ResolvedOptions, ctx: ExecutionContext) -> None:
    base_url = receivers_url(options)
    if options.is_set("name"):
        query = f"receivername eq {odata_literal(options.name)}"
    else:
        query = f"receiverid eq (guid{odata_literal(options.id)})"

    client = await ctx.get_client()
    receivers = await client.get_all_items(base_url, params={"$filter": query}, headers=SPO_HEADERS)
    receiver = _single_receiver(receivers, options)

    ctx.verbose(f"Removing event receiver {receiver['ReceiverId']}...")
    await client.post(
        f"{base_url}('{receiver['ReceiverId']}')/deleteObject",
        headers=SPO_HEADERS,
    )


descriptor = CommandDescriptor(
    name="spo eventreceiver remove",
    description="Removes event receivers for the specified web, site, or list",
    action=remove_event_receiver,
    options=(
        Option(name="webUrl", short="u", required=True, help="URL of the site"),
        Option(name="listTitle", help="Title of the list"),
        Option(name="listId", help="ID of the list"),
        Option(name="listUrl", help="Server- or web-relative URL of the list"),
        Option(name="name", short="n", help="Name of the event receiver"),
        Option(name="id", short="i", help="ID of the event receiver"),
        Option(name="scope", short="s", choices=("web", "site"), help="Scope of the event receiver. Default web"),
        Option(name="confirm", flag=True, help="Don't prompt for confirmation"),
    ),
    validators=(validate_options,),
    option_sets=(OptionSet(members=("name", "id")),),
    telemetry=(
        track_presence("listTitle", "listId", "listUrl", "name", "id", "confirm"),
        track_values("scope"),
    ),
    confirmation=ConfirmationGate(confirmation_message),
)
