"""``teams channel set`` -- update a channel of a Microsoft Teams team."""

from __future__ import annotations

from typing import Optional

from tenantcli.exceptions import NotFoundError
from tenantcli.framework import CommandDescriptor, ExecutionContext, ResolvedOptions, track_presence
from tenantcli.framework.lookup import odata_literal
from tenantcli.framework.validators import is_valid_guid
from tenantcli.models import Option


async def validate_channel(options: ResolvedOptions, ctx: ExecutionContext) -> Optional[str]:
    if not is_valid_guid(options.team_id):
        return f"{options.team_id} is not a valid GUID"
    if options.channel_name.lower() == "general":
        return "General channel cannot be updated"
    return None


async def set_channel(options: ResolvedOptions, ctx: ExecutionContext) -> None:
    channels_url = f"/v1.0/teams/{options.team_id}/channels"
    client = await ctx.get_client()
    channels = await client.get_all_items(
        channels_url,
        params={"$filter": f"displayName eq {odata_literal(options.channel_name)}"},
    )
    if not channels:
        raise NotFoundError("The specified channel does not exist in the Microsoft Teams team")

    body = {}
    if options.is_set("newChannelName"):
        body["displayName"] = options.new_channel_name
    if options.is_set("description"):
        body["description"] = options.description

    ctx.verbose(f"Updating channel {channels[0]['id']}...")
    await client.patch(f"{channels_url}/{channels[0]['id']}", json_body=body)


descriptor = CommandDescriptor(
    name="teams channel set",
    description="Updates properties of the specified channel in the given Microsoft Teams team",
    action=set_channel,
    options=(
        Option(name="teamId", short="i", required=True, help="ID of the team where the channel is"),
        Option(name="channelName", required=True, help="Name of the channel to update"),
        Option(name="newChannelName", help="New name of the channel"),
        Option(name="description", help="Description of the channel"),
    ),
    validators=(validate_channel,),
    telemetry=(track_presence("newChannelName", "description"),),
)
