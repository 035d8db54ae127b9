"""``aad app get`` -- get an Azure AD app registration."""

from __future__ import annotations

from typing import Any, Optional

from tenantcli.framework import CommandDescriptor, ExecutionContext, ResolvedOptions, track_presence
from tenantcli.framework.lookup import odata_literal, require_single
from tenantcli.framework.validators import is_valid_guid
from tenantcli.models import Option, OptionSet
from tenantcli.registration import save_app_registration

APPLICATIONS_URL = "/v1.0/myorganization/applications"


async def validate_ids(options: ResolvedOptions, ctx: ExecutionContext) -> Optional[str]:
    for name in ("appId", "objectId"):
        value = options.value(name)
        if value is not None and not is_valid_guid(value):
            return f"{value} is not a valid GUID"
    return None


async def _app_object_id(options: ResolvedOptions, ctx: ExecutionContext) -> str:
    if options.is_set("objectId"):
        return options.value("objectId")

    if options.is_set("appId"):
        query = f"appId eq {odata_literal(options.app_id)}"
        identifier = f"ID {options.app_id}"
    else:
        query = f"displayName eq {odata_literal(options.name)}"
        identifier = f"name {options.name}"

    client = await ctx.get_client()
    matches = await client.get_all_items(
        APPLICATIONS_URL, params={"$filter": query, "$select": "id"}
    )
    return require_single(matches, "Azure AD application registration", identifier)["id"]


async def get_app(options: ResolvedOptions, ctx: ExecutionContext) -> Any:
    object_id = await _app_object_id(options, ctx)
    ctx.verbose(f"Retrieving Azure AD app registration {object_id}...")
    client = await ctx.get_client()
    app = await client.get_json(f"{APPLICATIONS_URL}/{object_id}")
    if options.save:
        save_app_registration(app["appId"], app.get("displayName", ""), ctx)
    return app


descriptor = CommandDescriptor(
    name="aad app get",
    description="Gets an Azure AD app registration",
    action=get_app,
    options=(
        Option(name="appId", help="Application (client) ID of the app registration"),
        Option(name="objectId", help="Object ID of the app registration"),
        Option(name="name", help="Display name of the app registration"),
        Option(name="save", flag=True, help="Save the app information to the local registration file"),
    ),
    validators=(validate_ids,),
    option_sets=(OptionSet(members=("appId", "objectId", "name")),),
    telemetry=(track_presence("appId", "objectId", "name"),),
)
