"""``teams team remove`` -- remove a Microsoft Teams team."""

from __future__ import annotations

from typing import Optional

from tenantcli.exceptions import NotFoundError
from tenantcli.framework import (
    CommandDescriptor,
    ConfirmationGate,
    ExecutionContext,
    ResolvedOptions,
    track_presence,
)
from tenantcli.framework.lookup import odata_literal, require_single
from tenantcli.framework.validators import is_valid_guid
from tenantcli.models import Option

GROUPS_URL = "/v1.0/groups"


async def validate_team(options: ResolvedOptions, ctx: ExecutionContext) -> Optional[str]:
    has_id = options.is_set("id") or options.is_set("teamId")
    if not has_id and not options.is_set("name"):
        return "Specify either id or name"
    if options.is_set("name") and has_id:
        return "Specify either id or name but not both"
    for name in ("teamId", "id"):
        value = options.value(name)
        if value is not None and not is_valid_guid(value):
            return f"{value} is not a valid GUID"
    return None


def confirmation_message(options: ResolvedOptions) -> str:
    team = options.value("id") or options.value("teamId") or options.value("name")
    return f"Are you sure you want to remove the team {team}?"


async def team_id_by_name(name: str, ctx: ExecutionContext) -> str:
    """Return the id of the Teams-enabled group called *name*."""
    client = await ctx.get_client()
    groups = await client.get_all_items(
        GROUPS_URL, params={"$filter": f"displayName eq {odata_literal(name)}"}
    )
    group = require_single(groups, "Azure AD group", f"name {name}")
    if "Team" not in (group.get("resourceProvisioningOptions") or []):
        raise NotFoundError("The specified team does not exist in the Microsoft Teams")
    return group["id"]


async def _team_id(options: ResolvedOptions, ctx: ExecutionContext) -> str:
    team_id = options.value("id") or options.value("teamId")
    if team_id:
        return team_id
    return await team_id_by_name(options.name, ctx)


async def remove_team(options: ResolvedOptions, ctx: ExecutionContext) -> None:
    if options.is_set("teamId"):
        ctx.output.warning("Option 'teamId' is deprecated. Please use 'id' instead.")

    team_id = await _team_id(options, ctx)
    ctx.verbose(f"Removing team {team_id}...")
    client = await ctx.get_client()
    await client.delete(f"{GROUPS_URL}/{team_id}")


descriptor = CommandDescriptor(
    name="teams team remove",
    description="Removes the specified Microsoft Teams team",
    action=remove_team,
    options=(
        Option(name="id", short="i", help="ID of the team to remove"),
        Option(name="name", short="n", help="Display name of the team to remove"),
        Option(name="teamId", help="(deprecated. Use 'id' instead) ID of the team to remove"),
        Option(name="confirm", flag=True, help="Don't prompt for confirming removing the team"),
    ),
    validators=(validate_team,),
    telemetry=(track_presence("confirm"),),
    confirmation=ConfirmationGate(confirmation_message),
)
