"""Microsoft Teams commands."""

from tenantcli.commands.teams import channel_get, channel_set, team_remove

DESCRIPTORS = (channel_get.descriptor, channel_set.descriptor, team_remove.descriptor)
