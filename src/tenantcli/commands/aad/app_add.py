"""``aad app add`` -- create an Azure AD app registration.

Besides creating the application object this command can resolve API
permissions by name (``--apisDelegated``/``--apisApplication``), apply a
manifest exported from the Azure portal, grant admin consent, expose an
API scope, create a client secret and remember the app in the local
registration file.

API permissions are resolved against the tenant's service principals
before the app is created. The permissions to consent to are accumulated
in an invocation-local :class:`PermissionMap`; granting consent then fans
out one request per delegated scope set and per application role.
"""

from __future__ import annotations

import base64
import copy
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

from tenantcli.exceptions import NotFoundError
from tenantcli.framework import CommandDescriptor, ExecutionContext, ResolvedOptions, fan_out
from tenantcli.framework.telemetry import TelemetryRecord
from tenantcli.framework.validators import check_file_exists
from tenantcli.models import Option
from tenantcli.registration import save_app_registration

APPLICATIONS_URL = "/v1.0/myorganization/applications"
SERVICE_PRINCIPALS_URL = "/v1.0/myorganization/servicePrincipals"
PERMISSION_GRANTS_URL = "/v1.0/myorganization/oauth2PermissionGrants"

PLATFORMS = ("spa", "web", "publicClient")
SCOPE_CONSENT_BY = ("admins", "adminsAndUsers")

MANIFEST_STATE_KEY = "manifest"
CERTIFICATE_STATE_KEY = "certificate"

# v2 manifest properties with no Graph equivalent
_UNSUPPORTED_MANIFEST_PROPERTIES = (
    "accessTokenAcceptedVersion",
    "disabledByMicrosoftStatus",
    "errorUrl",
    "oauth2RequirePostResponse",
    "oauth2AllowUrlPathMatching",
    "orgRestrictions",
    "samlMetadataUrl",
)


# ---------------------------------------------------------------------------
# Permission accumulation
# ---------------------------------------------------------------------------


@dataclass
class ResourcePermissions:
    """Everything to consent to on one resource service principal."""

    resource_id: str
    resource_access: list[dict[str, str]] = field(default_factory=list)
    scopes: list[str] = field(default_factory=list)


class PermissionMap:
    """Permissions requested by the new app, keyed by resource service principal id."""

    def __init__(self) -> None:
        self._by_resource: dict[str, ResourcePermissions] = {}

    def add(self, resource_id: str, access: dict[str, str], scope_value: Optional[str] = None) -> None:
        entry = self._by_resource.setdefault(resource_id, ResourcePermissions(resource_id))
        if access["type"] == "Scope" and scope_value and scope_value not in entry.scopes:
            entry.scopes.append(scope_value)
        if not any(existing["id"] == access["id"] for existing in entry.resource_access):
            entry.resource_access.append(access)

    def __iter__(self):
        return iter(self._by_resource.values())

    def __len__(self) -> int:
        return len(self._by_resource)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


async def validate_options(options: ResolvedOptions, ctx: ExecutionContext) -> Optional[str]:
    if not options.is_set("manifest") and not options.is_set("name"):
        return "Specify either the name of the app to create or the manifest"

    if options.is_set("redirectUris") and not options.is_set("platform"):
        return "When you specify redirectUris you also need to specify platform"

    if options.is_set("certificateFile") and options.is_set("certificateBase64Encoded"):
        return "Specify either certificateFile or certificateBase64Encoded but not both"

    if options.is_set("certificateDisplayName") and not (
        options.is_set("certificateFile") or options.is_set("certificateBase64Encoded")
    ):
        return (
            "When you specify certificateDisplayName you also need to specify "
            "certificateFile or certificateBase64Encoded"
        )

    if options.is_set("certificateFile") and check_file_exists(options.certificate_file):
        return "Certificate file not found"

    if options.is_set("scopeName"):
        for required in ("uri", "scopeAdminConsentDescription", "scopeAdminConsentDisplayName"):
            if not options.is_set(required):
                return f"When you specify scopeName you also need to specify {required}"

    return None


async def parse_manifest(options: ResolvedOptions, ctx: ExecutionContext) -> Optional[str]:
    """Parse ``--manifest`` once and keep it in the context for the action."""
    if not options.is_set("manifest"):
        return None
    try:
        manifest = json.loads(options.manifest)
    except json.JSONDecodeError as exc:
        return f"Error while parsing the specified manifest: {exc}"
    if not isinstance(manifest, dict):
        return "Error while parsing the specified manifest: the manifest must be a JSON object"
    if not options.is_set("name") and not manifest.get("name"):
        return (
            "Specify the name of the app to create either through the 'name' option "
            "or the 'name' property in the manifest"
        )
    ctx.state[MANIFEST_STATE_KEY] = manifest
    return None


async def load_certificate(options: ResolvedOptions, ctx: ExecutionContext) -> Optional[str]:
    """Read the certificate up front so an unreadable file fails before any request."""
    if options.is_set("certificateBase64Encoded"):
        ctx.state[CERTIFICATE_STATE_KEY] = options.certificate_base64_encoded
        return None
    if not options.is_set("certificateFile"):
        return None
    ctx.debug(f"Reading existing {options.certificate_file}...")
    try:
        data = Path(options.certificate_file).expanduser().read_bytes()
    except OSError as exc:
        return (
            f"Error reading certificate file: {exc}. Please add the certificate using "
            "base64 option '--certificateBase64Encoded'."
        )
    ctx.state[CERTIFICATE_STATE_KEY] = base64.b64encode(data).decode("ascii")
    return None


def record_telemetry(options: ResolvedOptions, record: TelemetryRecord) -> None:
    for name in (
        "redirectUris",
        "scopeAdminConsentDescription",
        "scopeAdminConsentDisplayName",
        "scopeName",
        "uri",
        "certificateFile",
        "certificateBase64Encoded",
        "certificateDisplayName",
        "grantAdminConsent",
        "manifest",
    ):
        record.set(name, options.is_set(name))
    record.set("apis", options.is_set("apisDelegated"))
    record.set("implicitFlow", options.implicit_flow)
    record.set("multitenant", options.multitenant)
    record.set("withSecret", options.with_secret)
    for name in ("platform", "scopeConsentBy"):
        if options.is_set(name):
            record.set(name, options.value(name))


# ---------------------------------------------------------------------------
# API resolution
# ---------------------------------------------------------------------------


def _find_service_principal(service_principals: list[dict[str, Any]], name: str) -> Optional[dict[str, Any]]:
    for sp in service_principals:
        names = sp.get("servicePrincipalNames") or []
        if name in names or f"{name}/" in names:
            return sp
    return None


def _required_resource_access(
    service_principals: list[dict[str, Any]],
    apis: Optional[str],
    scope_type: str,
    permissions: PermissionMap,
    ctx: ExecutionContext,
) -> list[dict[str, Any]]:
    if not apis:
        return []

    resolved: list[dict[str, Any]] = []
    for api in (a.strip() for a in apis.split(",")):
        sp_name, _, permission_name = api.rpartition("/")
        ctx.debug(f"Resolving {api}: service principal {sp_name}, permission {permission_name}")

        sp = _find_service_principal(service_principals, sp_name)
        if sp is None:
            raise NotFoundError(f"Service principal {sp_name} not found")

        candidates = sp.get("oauth2PermissionScopes" if scope_type == "Scope" else "appRoles") or []
        permission = next((p for p in candidates if p.get("value") == permission_name), None)
        if permission is None:
            raise NotFoundError(
                f"Permission {permission_name} for service principal {sp_name} not found"
            )

        entry = next((r for r in resolved if r["resourceAppId"] == sp["appId"]), None)
        if entry is None:
            entry = {"resourceAppId": sp["appId"], "resourceAccess": []}
            resolved.append(entry)

        access = {"id": permission["id"], "type": scope_type}
        entry["resourceAccess"].append(access)
        permissions.add(sp["id"], access, permission.get("value"))

    return resolved


async def resolve_apis(
    options: ResolvedOptions, ctx: ExecutionContext, permissions: PermissionMap
) -> list[dict[str, Any]]:
    manifest = ctx.state.get(MANIFEST_STATE_KEY) or {}
    manifest_apis = manifest.get("requiredResourceAccess") or []
    if not options.is_set("apisDelegated") and not options.is_set("apisApplication") and not manifest_apis:
        return []

    ctx.verbose("Resolving requested APIs...")
    client = await ctx.get_client()
    service_principals = await client.get_all_items(
        SERVICE_PRINCIPALS_URL,
        params={"$select": "appId,appRoles,id,oauth2PermissionScopes,servicePrincipalNames"},
    )

    if options.is_set("apisDelegated") or options.is_set("apisApplication"):
        resolved = _required_resource_access(
            service_principals, options.apis_delegated, "Scope", permissions, ctx
        )
        application = _required_resource_access(
            service_principals, options.apis_application, "Role", permissions, ctx
        )
        for required in application:
            existing = next(
                (r for r in resolved if r["resourceAppId"] == required["resourceAppId"]), None
            )
            if existing is not None:
                existing["resourceAccess"].extend(required["resourceAccess"])
            else:
                resolved.append(required)
        return resolved

    resolved = []
    for manifest_api in manifest_apis:
        resolved.append(manifest_api)
        sp = next(
            (s for s in service_principals if s.get("appId") == manifest_api.get("resourceAppId")),
            None,
        )
        if sp is None:
            continue
        for access in manifest_api.get("resourceAccess") or []:
            scope_value = next(
                (
                    scope.get("value")
                    for scope in sp.get("oauth2PermissionScopes") or []
                    if scope.get("id") == access.get("id")
                ),
                None,
            )
            permissions.add(sp["id"], {"id": access["id"], "type": access["type"]}, scope_value)
    return resolved


# ---------------------------------------------------------------------------
# Manifest handling
# ---------------------------------------------------------------------------


def _platform_type(platform: str) -> str:
    if platform == "publicClient":
        return "InstalledClient"
    return platform[:1].upper() + platform[1:]


def _parse_date(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _pop_secrets(manifest: dict[str, Any]) -> list[tuple[str, datetime]]:
    """Remove password credentials from *manifest*, keeping name and lifetime."""
    credentials = manifest.pop("passwordCredentials", None) or []
    secrets = []
    now = datetime.now(timezone.utc)
    for credential in credentials:
        lifetime = _parse_date(credential["endDate"]) - _parse_date(credential["startDate"])
        secrets.append((credential.get("displayName") or "Default", now + lifetime))
    return secrets


def transform_manifest(v2_manifest: dict[str, Any]) -> dict[str, Any]:
    """Convert a portal (v2) manifest into a Graph application update body."""
    graph = copy.deepcopy(v2_manifest)
    api = graph.setdefault("api", {})
    info = graph.setdefault("info", {})
    web = graph.setdefault("web", {"implicitGrantSettings": {}, "redirectUris": []})
    web.setdefault("implicitGrantSettings", {})
    web.setdefault("redirectUris", [])
    spa = graph.setdefault("spa", {"redirectUris": []})

    for name in _UNSUPPORTED_MANIFEST_PROPERTIES:
        graph.pop(name, None)

    api["acceptMappedClaims"] = graph.pop("acceptMappedClaims", None)
    graph["isFallbackPublicClient"] = graph.pop("allowPublicClient", None)

    urls = graph.pop("informationalUrls", None) or {}
    info["termsOfServiceUrl"] = urls.get("termsOfService")
    info["supportUrl"] = urls.get("support")
    info["privacyStatementUrl"] = urls.get("privacy")
    info["marketingUrl"] = urls.get("marketing")
    info["logoUrl"] = graph.pop("logoUrl", None)

    api["knownClientApplications"] = graph.pop("knownClientApplications", None)
    web["logoutUrl"] = graph.pop("logoutUrl", None)
    graph["displayName"] = graph.pop("name", None)
    web["implicitGrantSettings"]["enableAccessTokenIssuance"] = graph.pop(
        "oauth2AllowImplicitFlow", None
    )
    web["implicitGrantSettings"]["enableIdTokenIssuance"] = graph.pop(
        "oauth2AllowIdTokenImplicitFlow", None
    )

    scopes = graph.pop("oauth2Permissions", None)
    api["oauth2PermissionScopes"] = scopes
    for scope in scopes or []:
        scope.pop("lang", None)
        scope.pop("origin", None)

    graph.pop("oauth2RequiredPostResponse", None)
    # pre-authorized apps need the scopes to exist first
    graph.pop("preAuthorizedApplications", None)

    for reply_url in graph.pop("replyUrlsWithType", None) or []:
        if reply_url.get("type") == "Web":
            web["redirectUris"].append(reply_url["url"])
        elif reply_url.get("type") == "Spa":
            spa["redirectUris"].append(reply_url["url"])

    web["homePageUrl"] = graph.pop("signInUrl", None)

    for role in graph.get("appRoles") or []:
        role.pop("lang", None)

    return graph


async def _create_secret(
    ctx: ExecutionContext,
    app_object_id: str,
    display_name: str = "Default",
    expires: Optional[datetime] = None,
) -> dict[str, str]:
    if expires is None:
        expires = datetime.now(timezone.utc) + timedelta(days=365)
    client = await ctx.get_client()
    password = await client.post_json(
        f"{APPLICATIONS_URL}/{app_object_id}/addPassword",
        json_body={
            "passwordCredential": {
                "displayName": display_name,
                "endDateTime": expires.isoformat().replace("+00:00", "Z"),
            }
        },
    )
    return {"displayName": display_name, "value": password["secretText"]}


async def update_app_from_manifest(
    options: ResolvedOptions, ctx: ExecutionContext, app_info: dict[str, Any]
) -> None:
    manifest = ctx.state.get(MANIFEST_STATE_KEY)
    if manifest is None:
        return

    v2_manifest = copy.deepcopy(manifest)
    for name in ("id", "appId", "publisherDomain"):
        v2_manifest.pop(name, None)
    secrets = _pop_secrets(v2_manifest)

    if options.is_set("apisApplication") or options.is_set("apisDelegated"):
        v2_manifest["requiredResourceAccess"] = app_info.get("requiredResourceAccess")
    if options.is_set("redirectUris"):
        v2_manifest["replyUrlsWithType"] = [
            {"url": uri.strip(), "type": _platform_type(options.platform)}
            for uri in options.redirect_uris.split(",")
        ]
    if options.multitenant:
        v2_manifest["signInAudience"] = "AzureADMultipleOrgs"
    if options.implicit_flow:
        v2_manifest.pop("oauth2AllowIdTokenImplicitFlow", None)
        v2_manifest.pop("oauth2AllowImplicitFlow", None)
    if options.is_set("scopeName"):
        v2_manifest.pop("oauth2Permissions", None)
    if options.is_set("certificateFile") or options.is_set("certificateBase64Encoded"):
        v2_manifest.pop("keyCredentials", None)

    client = await ctx.get_client()
    app_url = f"{APPLICATIONS_URL}/{app_info['id']}"
    await client.patch(app_url, json_body=transform_manifest(v2_manifest))

    pre_authorized = v2_manifest.get("preAuthorizedApplications") or []
    if pre_authorized:
        apps = []
        for entry in pre_authorized:
            entry = dict(entry)
            entry["delegatedPermissionIds"] = entry.pop("permissionIds", [])
            apps.append(entry)
        await client.patch(app_url, json_body={"api": {"preAuthorizedApplications": apps}})

    if secrets:
        app_info["secrets"] = await fan_out(
            *(_create_secret(ctx, app_info["id"], name, expires) for name, expires in secrets)
        )


# ---------------------------------------------------------------------------
# Consent, URI, secret
# ---------------------------------------------------------------------------


async def grant_admin_consent(
    options: ResolvedOptions, ctx: ExecutionContext, app_info: dict[str, Any], permissions: PermissionMap
) -> None:
    if not options.grant_admin_consent or not len(permissions):
        return

    client = await ctx.get_client()
    sp = await client.post_json(SERVICE_PRINCIPALS_URL, json_body={"appId": app_info["appId"]})
    ctx.debug(f"Service principal created, returned object id: {sp['id']}")

    tasks = []
    for entry in permissions:
        if entry.scopes:
            tasks.append(
                client.post(
                    PERMISSION_GRANTS_URL,
                    json_body={
                        "clientId": sp["id"],
                        "consentType": "AllPrincipals",
                        "principalId": None,
                        "resourceId": entry.resource_id,
                        "scope": " ".join(entry.scopes),
                    },
                )
            )
            ctx.debug(
                f"Admin consent granted for resource {entry.resource_id}, "
                f"delegated permissions: {','.join(entry.scopes)}"
            )
        for access in entry.resource_access:
            if access["type"] != "Role":
                continue
            tasks.append(
                client.post(
                    f"{SERVICE_PRINCIPALS_URL}/{sp['id']}/appRoleAssignments",
                    json_body={
                        "appRoleId": access["id"],
                        "principalId": sp["id"],
                        "resourceId": entry.resource_id,
                    },
                )
            )
            ctx.debug(
                f"Admin consent granted for resource {entry.resource_id}, "
                f"application permission: {access['id']}"
            )

    await fan_out(*tasks)


async def configure_uri(options: ResolvedOptions, ctx: ExecutionContext, app_info: dict[str, Any]) -> None:
    if not options.is_set("uri"):
        return

    ctx.verbose("Configuring Azure AD application ID URI...")
    body: dict[str, Any] = {"identifierUris": [options.uri.replace("_appId_", app_info["appId"])]}
    if options.is_set("scopeName"):
        body["api"] = {
            "oauth2PermissionScopes": [
                {
                    "adminConsentDescription": options.scope_admin_consent_description,
                    "adminConsentDisplayName": options.scope_admin_consent_display_name,
                    "id": str(uuid.uuid4()),
                    "type": "User" if options.scope_consent_by == "adminsAndUsers" else "Admin",
                    "value": options.scope_name,
                }
            ]
        }
    client = await ctx.get_client()
    await client.patch(f"{APPLICATIONS_URL}/{app_info['id']}", json_body=body)


async def configure_secret(options: ResolvedOptions, ctx: ExecutionContext, app_info: dict[str, Any]) -> None:
    if not options.with_secret or app_info.get("secrets"):
        return
    ctx.verbose("Configure Azure AD app secret...")
    secret = await _create_secret(ctx, app_info["id"])
    app_info["secret"] = secret["value"]
    app_info["secrets"] = [secret]


def tenant_id_from_token(token: Optional[str]) -> str:
    """Return the ``tid`` claim of a JWT access token, or ``""``."""
    if not token or token.count(".") < 2:
        return ""
    payload = token.split(".")[1]
    payload += "=" * (-len(payload) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(payload))
    except (ValueError, json.JSONDecodeError):
        return ""
    if not isinstance(claims, dict):
        return ""
    return str(claims.get("tid", ""))


# ---------------------------------------------------------------------------
# Action
# ---------------------------------------------------------------------------


async def add_app(options: ResolvedOptions, ctx: ExecutionContext) -> dict[str, Any]:
    permissions = PermissionMap()
    apis = await resolve_apis(options, ctx, permissions)

    manifest = ctx.state.get(MANIFEST_STATE_KEY) or {}
    app_name = options.name or manifest.get("name")
    body: dict[str, Any] = {
        "displayName": app_name,
        "signInAudience": "AzureADMultipleOrgs" if options.multitenant else "AzureADMyOrg",
    }
    if apis:
        body["requiredResourceAccess"] = apis
    if options.is_set("redirectUris"):
        body[options.platform] = {
            "redirectUris": [uri.strip() for uri in options.redirect_uris.split(",")]
        }
    if options.implicit_flow:
        body.setdefault("web", {})["implicitGrantSettings"] = {
            "enableAccessTokenIssuance": True,
            "enableIdTokenIssuance": True,
        }
    if CERTIFICATE_STATE_KEY in ctx.state:
        body["keyCredentials"] = [
            {
                "type": "AsymmetricX509Cert",
                "usage": "Verify",
                "displayName": options.certificate_display_name,
                "key": ctx.state[CERTIFICATE_STATE_KEY],
            }
        ]

    ctx.verbose("Creating Azure AD app registration...")
    client = await ctx.get_client()
    app_info = await client.post_json(APPLICATIONS_URL, json_body=body)
    app_info["tenantId"] = tenant_id_from_token(client.access_token)

    await update_app_from_manifest(options, ctx, app_info)
    await grant_admin_consent(options, ctx, app_info, permissions)
    await configure_uri(options, ctx, app_info)
    await configure_secret(options, ctx, app_info)

    if options.save:
        save_app_registration(app_info["appId"], app_name, ctx)

    result = {
        "appId": app_info["appId"],
        "objectId": app_info["id"],
        "tenantId": app_info["tenantId"],
    }
    if app_info.get("secret"):
        result["secret"] = app_info["secret"]
    if app_info.get("secrets"):
        result["secrets"] = app_info["secrets"]
    return result


descriptor = CommandDescriptor(
    name="aad app add",
    description="Creates new Azure AD app registration",
    action=add_app,
    options=(
        Option(name="name", short="n", help="Name of the app"),
        Option(name="multitenant", flag=True, help="Specify, to make the app available to all Azure AD orgs"),
        Option(name="redirectUris", short="r", help="Comma-separated list of redirect URIs"),
        Option(name="platform", short="p", choices=PLATFORMS, help="Platform for which the app is configured"),
        Option(name="implicitFlow", flag=True, help="Specify, to enable the implicit flow"),
        Option(name="withSecret", short="s", flag=True, help="Specify, to create a secret for the app"),
        Option(name="apisDelegated", help="Comma-separated list of delegated permissions to register"),
        Option(name="apisApplication", help="Comma-separated list of application permissions to register"),
        Option(name="uri", short="u", help="Application ID URI; _appId_ is replaced with the app ID"),
        Option(name="scopeName", help="Name of the scope to add"),
        Option(name="scopeConsentBy", choices=SCOPE_CONSENT_BY, help="Who can consent to the scope"),
        Option(name="scopeAdminConsentDisplayName", help="Scope admin consent display name"),
        Option(name="scopeAdminConsentDescription", help="Scope admin consent description"),
        Option(name="certificateFile", help="Path to the file with a certificate to add"),
        Option(name="certificateBase64Encoded", help="Base64-encoded string of the certificate to add"),
        Option(name="certificateDisplayName", help="Display name of the certificate"),
        Option(name="manifest", help="Azure AD app manifest as retrieved from the Azure portal"),
        Option(name="save", flag=True, help="Save the app information to the local registration file"),
        Option(name="grantAdminConsent", flag=True, help="Grant admin consent for the requested permissions"),
    ),
    validators=(validate_options, parse_manifest, load_certificate),
    telemetry=(record_telemetry,),
)
