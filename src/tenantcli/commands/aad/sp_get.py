"""``aad sp get`` -- get a service principal."""

from __future__ import annotations

from typing import Any, Optional

from tenantcli.framework import CommandDescriptor, ExecutionContext, ResolvedOptions, track_presence
from tenantcli.framework.lookup import odata_literal, require_single
from tenantcli.framework.validators import is_valid_guid
from tenantcli.models import Option, OptionSet

SERVICE_PRINCIPALS_URL = "/v1.0/servicePrincipals"


async def validate_ids(options: ResolvedOptions, ctx: ExecutionContext) -> Optional[str]:
    if options.is_set("appId") and not is_valid_guid(options.app_id):
        return f"{options.app_id} is not a valid appId GUID"
    if options.is_set("objectId") and not is_valid_guid(options.object_id):
        return f"{options.object_id} is not a valid objectId GUID"
    return None


async def _service_principal_id(options: ResolvedOptions, ctx: ExecutionContext) -> str:
    if options.is_set("objectId"):
        return options.object_id

    if options.is_set("displayName"):
        query = f"displayName eq {odata_literal(options.display_name)}"
        identifier = f"displayName {options.display_name}"
    else:
        query = f"appId eq {odata_literal(options.app_id)}"
        identifier = f"appId {options.app_id}"

    client = await ctx.get_client()
    matches = await client.get_all_items(SERVICE_PRINCIPALS_URL, params={"$filter": query})
    return require_single(matches, "Azure AD service principal", identifier)["id"]


async def get_service_principal(options: ResolvedOptions, ctx: ExecutionContext) -> Any:
    ctx.verbose("Retrieving service principal information...")
    sp_id = await _service_principal_id(options, ctx)
    client = await ctx.get_client()
    return await client.get_json(f"{SERVICE_PRINCIPALS_URL}/{sp_id}")


descriptor = CommandDescriptor(
    name="aad sp get",
    description="Gets information about the specific service principal",
    action=get_service_principal,
    options=(
        Option(name="appId", short="i", help="ID of the application"),
        Option(name="displayName", short="n", help="Display name of the service principal"),
        Option(name="objectId", help="Object ID of the service principal"),
    ),
    validators=(validate_ids,),
    option_sets=(OptionSet(members=("appId", "displayName", "objectId")),),
    telemetry=(track_presence("appId", "displayName", "objectId"),),
)
