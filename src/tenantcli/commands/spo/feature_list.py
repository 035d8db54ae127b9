"""``spo feature list`` -- list features activated on a site or site collection."""

from __future__ import annotations

from typing import Any, Optional

from tenantcli.framework import CommandDescriptor, ExecutionContext, ResolvedOptions
from tenantcli.framework.telemetry import TelemetryRecord
from tenantcli.framework.validators import check_sharepoint_url
from tenantcli.models import Option

SPO_HEADERS = {"Accept": "application/json;odata=nometadata"}
DEFAULT_SCOPE = "Web"


async def validate_url(options: ResolvedOptions, ctx: ExecutionContext) -> Optional[str]:
    return check_sharepoint_url(options.url)


def record_scope(options: ResolvedOptions, record: TelemetryRecord) -> None:
    record.set("scope", options.value("scope", DEFAULT_SCOPE))


async def list_features(options: ResolvedOptions, ctx: ExecutionContext) -> Any:
    scope = options.value("scope", DEFAULT_SCOPE)
    client = await ctx.get_client()
    features = await client.get_all_items(
        f"{options.url.rstrip('/')}/_api/{scope}/Features",
        params={"$select": "DisplayName,DefinitionId"},
        headers=SPO_HEADERS,
    )
    if not features:
        ctx.verbose("No activated Features found")
        return None
    return features


descriptor = CommandDescriptor(
    name="spo feature list",
    description="Lists Features activated in the specified site or site collection",
    action=list_features,
    options=(
        Option(name="url", short="u", required=True, help="URL of the site or site collection"),
        Option(name="scope", short="s", choices=("Site", "Web"), help="Scope of the Features to list. Default Web"),
    ),
    validators=(validate_url,),
    telemetry=(record_scope,),
)
