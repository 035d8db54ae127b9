"""``spo site inplacerecordsmanagement set`` -- toggle in-place records management."""

from __future__ import annotations

from typing import Optional

from tenantcli.framework import CommandDescriptor, ExecutionContext, ResolvedOptions, track_values
from tenantcli.framework.validators import check_boolean, check_sharepoint_url, parse_boolean
from tenantcli.models import Option

IN_PLACE_RECORDS_FEATURE_ID = "da2e115b-07e4-49d9-bb2c-35e93bb9fca9"
SPO_HEADERS = {"Accept": "application/json;odata=nometadata"}


async def validate_options(options: ResolvedOptions, ctx: ExecutionContext) -> Optional[str]:
    if check_boolean(options.enabled, "enabled") is not None:
        return 'Invalid "enabled" option value. Specify "true" or "false"'
    return check_sharepoint_url(options.site_url)


async def set_records_management(options: ResolvedOptions, ctx: ExecutionContext) -> None:
    enabled = parse_boolean(options.enabled)
    ctx.verbose(
        f"{'Activating' if enabled else 'Deactivating'} in-place records management "
        f"for site {options.site_url}"
    )
    client = await ctx.get_client()
    await client.post(
        f"{options.site_url.rstrip('/')}/_api/site/features/{'add' if enabled else 'remove'}",
        headers=SPO_HEADERS,
        json_body={"featureId": IN_PLACE_RECORDS_FEATURE_ID, "force": True},
    )


descriptor = CommandDescriptor(
    name="spo site inplacerecordsmanagement set",
    description="Activates or deactivates in-place records management for a site collection",
    action=set_records_management,
    options=(
        Option(name="siteUrl", short="u", required=True, help="URL of the site collection"),
        Option(name="enabled", required=True, help="true to activate, false to deactivate"),
    ),
    validators=(validate_options,),
    telemetry=(track_values("enabled"),),
)
