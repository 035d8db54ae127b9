"""``teams channel get`` -- get a channel of a Microsoft Teams team.

The team is picked by ``--teamId`` or ``--teamName`` and, independently,
the channel by ``--channelId``, ``--channelName`` or ``--primary``. The
team id resolved by name is kept in the invocation state so the channel
lookup and the final request share it.
"""

from __future__ import annotations

from typing import Any, Optional

from tenantcli.commands.teams.team_remove import team_id_by_name
from tenantcli.exceptions import NotFoundError
from tenantcli.framework import CommandDescriptor, ExecutionContext, ResolvedOptions, track_presence
from tenantcli.framework.lookup import odata_literal
from tenantcli.framework.telemetry import TelemetryRecord
from tenantcli.framework.validators import is_valid_guid, is_valid_teams_channel_id
from tenantcli.models import Option, OptionSet

TEAM_ID_STATE_KEY = "teamId"
GRAPH_HEADERS = {"Accept": "application/json;odata.metadata=none"}


async def validate_ids(options: ResolvedOptions, ctx: ExecutionContext) -> Optional[str]:
    if options.is_set("teamId") and not is_valid_guid(options.team_id):
        return f"{options.team_id} is not a valid GUID"
    if options.is_set("channelId") and not is_valid_teams_channel_id(options.channel_id):
        return f"{options.channel_id} is not a valid Teams ChannelId"
    return None


def record_primary(options: ResolvedOptions, record: TelemetryRecord) -> None:
    record.set("primary", str(options.primary).lower())


async def _team_id(options: ResolvedOptions, ctx: ExecutionContext) -> str:
    if options.is_set("teamId"):
        return options.team_id
    return await team_id_by_name(options.team_name, ctx)


async def _channel_id(options: ResolvedOptions, ctx: ExecutionContext) -> str:
    if options.is_set("channelId"):
        return options.channel_id

    client = await ctx.get_client()
    channels = await client.get_all_items(
        f"/v1.0/teams/{ctx.state[TEAM_ID_STATE_KEY]}/channels",
        params={"$filter": f"displayName eq {odata_literal(options.channel_name)}"},
        headers=GRAPH_HEADERS,
    )
    if not channels:
        raise NotFoundError("The specified channel does not exist in the Microsoft Teams team")
    return channels[0]["id"]


async def get_channel(options: ResolvedOptions, ctx: ExecutionContext) -> Any:
    ctx.state[TEAM_ID_STATE_KEY] = await _team_id(options, ctx)
    team_url = f"/v1.0/teams/{ctx.state[TEAM_ID_STATE_KEY]}"

    if options.primary:
        url = f"{team_url}/primaryChannel"
    else:
        url = f"{team_url}/channels/{await _channel_id(options, ctx)}"

    client = await ctx.get_client()
    return await client.get_json(url, headers=GRAPH_HEADERS)


descriptor = CommandDescriptor(
    name="teams channel get",
    description="Gets information about the specific Microsoft Teams team channel",
    action=get_channel,
    options=(
        Option(name="teamId", short="i", help="ID of the team to which the channel belongs"),
        Option(name="teamName", help="Display name of the team to which the channel belongs"),
        Option(name="channelId", short="c", help="ID of the channel"),
        Option(name="channelName", help="Display name of the channel"),
        Option(name="primary", flag=True, help="Get the default channel, General, of the team"),
    ),
    validators=(validate_ids,),
    option_sets=(
        OptionSet(members=("teamId", "teamName")),
        OptionSet(members=("channelId", "channelName", "primary")),
    ),
    telemetry=(track_presence("teamId", "teamName", "channelId", "channelName"), record_primary),
)
