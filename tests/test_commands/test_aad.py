"""Tests for the ``aad`` commands against a mocked Microsoft Graph."""

from __future__ import annotations

import base64
import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from tenantcli.commands.aad import app_add, app_get, sp_get
from tenantcli.models import ErrorKind

SP_ID = "11111111-1111-1111-1111-111111111111"
GRAPH_APP_ID = "00000003-0000-0000-c000-000000000000"


# ---------------------------------------------------------------------------
# aad sp get
# ---------------------------------------------------------------------------


class TestSpGet:
    def test_lookup_by_display_name(self, make_executor, service, capsys) -> None:
        service.add("GET", "/v1.0/servicePrincipals", httpx.Response(200, json={"value": [{"id": SP_ID}]}))
        service.add(
            "GET",
            f"/v1.0/servicePrincipals/{SP_ID}",
            httpx.Response(200, json={"id": SP_ID, "displayName": "Contoso App"}),
        )

        outcome = make_executor().run(
            sp_get.descriptor, {"displayName": "Contoso App", "output": "json"}
        )

        assert outcome.exit_code == 0
        assert outcome.result["id"] == SP_ID
        assert service.requests[0].url.params["$filter"] == "displayName eq 'Contoso App'"
        assert json.loads(capsys.readouterr().out)["id"] == SP_ID

    def test_not_found_echoes_identifier(self, make_executor, service, capsys) -> None:
        service.add("GET", "/v1.0/servicePrincipals", httpx.Response(200, json={"value": []}))

        outcome = make_executor().run(sp_get.descriptor, {"displayName": "Contoso App"})

        assert outcome.exit_code == 3
        assert outcome.error.kind == ErrorKind.NOT_FOUND
        assert "Contoso App" in outcome.error.message
        assert capsys.readouterr().out == ""

    def test_ambiguous_lists_ids_in_lookup_order(self, make_executor, service, capsys) -> None:
        service.add(
            "GET",
            "/v1.0/servicePrincipals",
            httpx.Response(200, json={"value": [{"id": "id1"}, {"id": "id2"}]}),
        )

        outcome = make_executor().run(sp_get.descriptor, {"displayName": "Contoso App"})

        assert outcome.exit_code == 4
        assert outcome.error.kind == ErrorKind.AMBIGUOUS_MATCH
        assert outcome.error.message.endswith("id1,id2")
        err = capsys.readouterr().err
        assert err.count("\n") == 1
        assert "id1,id2" in err

    def test_object_id_skips_lookup(self, make_executor, service) -> None:
        service.add("GET", f"/v1.0/servicePrincipals/{SP_ID}", httpx.Response(200, json={"id": SP_ID}))
        outcome = make_executor().run(sp_get.descriptor, {"objectId": SP_ID})
        assert outcome.ok
        assert len(service.requests) == 1

    @pytest.mark.parametrize(
        "raw, message",
        [
            ({"appId": "abc"}, "abc is not a valid appId GUID"),
            ({"objectId": "abc"}, "abc is not a valid objectId GUID"),
            ({}, "Specify one of: appId, displayName, objectId"),
        ],
    )
    def test_validation(self, make_executor, service, raw, message) -> None:
        outcome = make_executor().run(sp_get.descriptor, raw)
        assert outcome.exit_code == 2
        assert outcome.error.message == message
        assert service.requests == []

    def test_telemetry(self, make_executor, service) -> None:
        service.add("GET", f"/v1.0/servicePrincipals/{SP_ID}", httpx.Response(200, json={"id": SP_ID}))
        outcome = make_executor().run(sp_get.descriptor, {"objectId": SP_ID})
        assert outcome.telemetry.as_dict() == {
            "debug": False,
            "verbose": False,
            "appId": False,
            "displayName": False,
            "objectId": True,
        }


# ---------------------------------------------------------------------------
# aad app get
# ---------------------------------------------------------------------------

APPS_URL = "/v1.0/myorganization/applications"
APP = {"id": "obj-1", "appId": "app-1", "displayName": "Contoso"}


@pytest.fixture
def app_routes(service):
    service.add("GET", APPS_URL, httpx.Response(200, json={"value": [{"id": "obj-1"}]}))
    service.add("GET", f"{APPS_URL}/obj-1", httpx.Response(200, json=APP))
    return service


class TestAppGet:
    def test_lookup_by_name(self, make_executor, app_routes) -> None:
        outcome = make_executor().run(app_get.descriptor, {"name": "Contoso"})
        assert outcome.result == APP
        params = app_routes.requests[0].url.params
        assert params["$filter"] == "displayName eq 'Contoso'"
        assert params["$select"] == "id"

    def test_save_writes_registration(self, isolated_config: Path, make_executor, app_routes) -> None:
        outcome = make_executor().run(app_get.descriptor, {"name": "Contoso", "save": True})
        assert outcome.ok
        data = json.loads((isolated_config / ".tenantclirc.json").read_text())
        assert data == {"apps": [{"appId": "app-1", "name": "Contoso"}]}

    def test_save_failure_still_succeeds(
        self, isolated_config: Path, make_executor, app_routes, capsys
    ) -> None:
        (isolated_config / ".tenantclirc.json").mkdir()

        outcome = make_executor().run(
            app_get.descriptor, {"name": "Contoso", "save": True, "output": "json"}
        )

        assert outcome.exit_code == 0
        assert outcome.error is None
        assert [w.kind for w in outcome.warnings] == [ErrorKind.LOCAL_IO_WARNING]
        captured = capsys.readouterr()
        assert json.loads(captured.out) == APP
        assert "Warning: Error reading" in captured.err
        assert "Please add app info to" in captured.err

    def test_invalid_guid(self, make_executor) -> None:
        outcome = make_executor().run(app_get.descriptor, {"appId": "not-a-guid"})
        assert outcome.exit_code == 2
        assert outcome.error.message == "not-a-guid is not a valid GUID"

    def test_not_found_by_app_id(self, make_executor, service) -> None:
        service.add("GET", APPS_URL, httpx.Response(200, json={"value": []}))
        outcome = make_executor().run(app_get.descriptor, {"appId": SP_ID})
        assert outcome.exit_code == 3
        assert outcome.error.message == (
            f"No Azure AD application registration with ID {SP_ID} found"
        )


# ---------------------------------------------------------------------------
# aad app add
# ---------------------------------------------------------------------------

SPS_URL = "/v1.0/myorganization/servicePrincipals"
GRAPH_SP = {
    "id": "sp-graph",
    "appId": GRAPH_APP_ID,
    "servicePrincipalNames": ["https://graph.microsoft.com"],
    "oauth2PermissionScopes": [{"id": "scope-user-read", "value": "User.Read"}],
    "appRoles": [{"id": "role-mail-read", "value": "Mail.Read"}],
}


@pytest.fixture
def graph(service):
    service.add("GET", SPS_URL, httpx.Response(200, json={"value": [GRAPH_SP]}))
    service.add("POST", APPS_URL, httpx.Response(201, json={"id": "obj-1", "appId": "app-1"}))
    service.add("POST", SPS_URL, httpx.Response(201, json={"id": "sp-new"}))
    service.add("POST", "/v1.0/myorganization/oauth2PermissionGrants", httpx.Response(201, json={}))
    service.add("POST", f"{SPS_URL}/sp-new/appRoleAssignments", httpx.Response(201, json={}))
    service.add(
        "POST", f"{APPS_URL}/obj-1/addPassword", httpx.Response(200, json={"secretText": "s3cret"})
    )
    service.add("PATCH", f"{APPS_URL}/obj-1", httpx.Response(204))
    return service


APIS = {
    "name": "My App",
    "apisDelegated": "https://graph.microsoft.com/User.Read",
    "apisApplication": "https://graph.microsoft.com/Mail.Read",
}


class TestAppAdd:
    def test_minimal(self, make_executor, graph) -> None:
        outcome = make_executor().run(app_add.descriptor, {"name": "My App"})
        assert outcome.result == {"appId": "app-1", "objectId": "obj-1", "tenantId": ""}
        body = json.loads(graph.calls("POST", APPS_URL)[0].content)
        assert body == {"displayName": "My App", "signInAudience": "AzureADMyOrg"}

    def test_resolves_permissions(self, make_executor, graph) -> None:
        make_executor().run(app_add.descriptor, APIS)
        body = json.loads(graph.calls("POST", APPS_URL)[0].content)
        assert body["requiredResourceAccess"] == [
            {
                "resourceAppId": GRAPH_APP_ID,
                "resourceAccess": [
                    {"id": "scope-user-read", "type": "Scope"},
                    {"id": "role-mail-read", "type": "Role"},
                ],
            }
        ]

    def test_grant_admin_consent_fans_out(self, make_executor, graph) -> None:
        outcome = make_executor().run(app_add.descriptor, {**APIS, "grantAdminConsent": True})

        assert outcome.ok
        grant = json.loads(graph.calls("POST", "/v1.0/myorganization/oauth2PermissionGrants")[0].content)
        assert grant["clientId"] == "sp-new"
        assert grant["resourceId"] == "sp-graph"
        assert grant["scope"] == "User.Read"
        assignment = json.loads(graph.calls("POST", f"{SPS_URL}/sp-new/appRoleAssignments")[0].content)
        assert assignment == {
            "appRoleId": "role-mail-read",
            "principalId": "sp-new",
            "resourceId": "sp-graph",
        }

    def test_failed_grant_does_not_cancel_siblings(self, make_executor, graph) -> None:
        graph.add(
            "POST",
            "/v1.0/myorganization/oauth2PermissionGrants",
            httpx.Response(400, json={"error": {"message": "Permission entry already exists."}}),
        )

        outcome = make_executor().run(app_add.descriptor, {**APIS, "grantAdminConsent": True})

        assert outcome.exit_code == 5
        assert outcome.error.message == "Permission entry already exists."
        assert len(graph.calls("POST", f"{SPS_URL}/sp-new/appRoleAssignments")) == 1

    def test_unknown_permission(self, make_executor, graph) -> None:
        outcome = make_executor().run(
            app_add.descriptor,
            {"name": "My App", "apisDelegated": "https://graph.microsoft.com/Bogus.Read"},
        )
        assert outcome.exit_code == 3
        assert outcome.error.message == (
            "Permission Bogus.Read for service principal https://graph.microsoft.com not found"
        )
        assert graph.calls("POST", APPS_URL) == []

    def test_unknown_service_principal(self, make_executor, graph) -> None:
        outcome = make_executor().run(
            app_add.descriptor, {"name": "My App", "apisDelegated": "https://contoso.com/Read"}
        )
        assert outcome.exit_code == 3
        assert outcome.error.message == "Service principal https://contoso.com not found"

    def test_with_secret(self, make_executor, graph) -> None:
        outcome = make_executor().run(app_add.descriptor, {"name": "My App", "withSecret": True})
        assert outcome.result["secret"] == "s3cret"
        assert outcome.result["secrets"] == [{"displayName": "Default", "value": "s3cret"}]

    def test_uri_and_scope(self, make_executor, graph) -> None:
        make_executor().run(
            app_add.descriptor,
            {
                "name": "My App",
                "uri": "api://_appId_",
                "scopeName": "access_as_user",
                "scopeAdminConsentDescription": "Access as user",
                "scopeAdminConsentDisplayName": "Access",
                "scopeConsentBy": "adminsAndUsers",
            },
        )
        body = json.loads(graph.calls("PATCH", f"{APPS_URL}/obj-1")[0].content)
        assert body["identifierUris"] == ["api://app-1"]
        scope = body["api"]["oauth2PermissionScopes"][0]
        assert scope["value"] == "access_as_user"
        assert scope["type"] == "User"

    def test_manifest_name_and_redirects(self, make_executor, graph) -> None:
        manifest = {
            "name": "From Manifest",
            "replyUrlsWithType": [{"url": "https://localhost", "type": "Spa"}],
        }
        outcome = make_executor().run(app_add.descriptor, {"manifest": json.dumps(manifest)})

        assert outcome.ok
        created = json.loads(graph.calls("POST", APPS_URL)[0].content)
        assert created["displayName"] == "From Manifest"
        patch_body = json.loads(graph.calls("PATCH", f"{APPS_URL}/obj-1")[0].content)
        assert patch_body["displayName"] == "From Manifest"
        assert patch_body["spa"]["redirectUris"] == ["https://localhost"]

    def test_save_registration(self, isolated_config: Path, make_executor, graph) -> None:
        make_executor().run(app_add.descriptor, {"name": "My App", "save": True})
        data = json.loads((isolated_config / ".tenantclirc.json").read_text())
        assert data["apps"] == [{"appId": "app-1", "name": "My App"}]

    @pytest.mark.parametrize(
        "raw, message",
        [
            ({}, "Specify either the name of the app to create or the manifest"),
            (
                {"name": "x", "redirectUris": "https://localhost"},
                "When you specify redirectUris you also need to specify platform",
            ),
            (
                {"name": "x", "platform": "desktop"},
                "desktop is not a valid value for platform. Allowed values are spa, web, publicClient",
            ),
            (
                {"name": "x", "certificateFile": "a.cer", "certificateBase64Encoded": "b"},
                "Specify either certificateFile or certificateBase64Encoded but not both",
            ),
            ({"name": "x", "certificateFile": "missing.cer"}, "Certificate file not found"),
            (
                {"name": "x", "scopeName": "s", "uri": "api://x"},
                "When you specify scopeName you also need to specify scopeAdminConsentDescription",
            ),
            (
                {"manifest": "{}"},
                "Specify the name of the app to create either through the 'name' option "
                "or the 'name' property in the manifest",
            ),
        ],
    )
    def test_validation(self, isolated_config: Path, make_executor, service, raw, message) -> None:
        outcome = make_executor().run(app_add.descriptor, raw)
        assert outcome.exit_code == 2
        assert outcome.error.message == message
        assert service.requests == []

    def test_server_error_on_create_is_not_resent(self, make_executor, graph) -> None:
        answers = iter([httpx.Response(503), httpx.Response(201, json={"id": "obj-1", "appId": "app-1"})])
        graph.add("POST", APPS_URL, lambda request: next(answers))

        with patch("tenantcli.client.async_client.asyncio.sleep", new=AsyncMock()):
            outcome = make_executor().run(app_add.descriptor, {"name": "My App"})

        assert outcome.exit_code == 5
        assert outcome.error.kind == ErrorKind.REMOTE_REQUEST_FAILURE
        assert len(graph.calls("POST", APPS_URL)) == 1

    def test_certificate_file_encoded(self, isolated_config: Path, make_executor, graph) -> None:
        (isolated_config / "app.cer").write_bytes(b"certificate bytes")

        outcome = make_executor().run(
            app_add.descriptor,
            {"name": "My App", "certificateFile": "app.cer", "certificateDisplayName": "Cert"},
        )

        assert outcome.ok, outcome.error
        body = json.loads(graph.calls("POST", APPS_URL)[0].content)
        assert body["keyCredentials"] == [
            {
                "type": "AsymmetricX509Cert",
                "usage": "Verify",
                "displayName": "Cert",
                "key": base64.b64encode(b"certificate bytes").decode(),
            }
        ]

    def test_unreadable_certificate_fails_before_any_request(
        self, isolated_config: Path, make_executor, graph, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (isolated_config / "app.cer").write_bytes(b"certificate bytes")

        def read_bytes(self: Path) -> bytes:
            raise PermissionError(13, "Permission denied", str(self))

        monkeypatch.setattr(Path, "read_bytes", read_bytes)
        outcome = make_executor().run(app_add.descriptor, {**APIS, "certificateFile": "app.cer"})

        assert outcome.exit_code == 2
        assert outcome.error.message.startswith("Error reading certificate file")
        assert outcome.error.message.endswith("option '--certificateBase64Encoded'.")
        assert graph.requests == []

    def test_invalid_manifest(self, make_executor, service) -> None:
        outcome = make_executor().run(app_add.descriptor, {"manifest": "{not json"})
        assert outcome.exit_code == 2
        assert outcome.error.message.startswith("Error while parsing the specified manifest")


class TestAppAddHelpers:
    def test_tenant_id_from_token(self) -> None:
        claims = base64.urlsafe_b64encode(json.dumps({"tid": "tenant-1"}).encode()).decode().rstrip("=")
        assert app_add.tenant_id_from_token(f"header.{claims}.signature") == "tenant-1"
        assert app_add.tenant_id_from_token("opaque") == ""
        assert app_add.tenant_id_from_token(None) == ""

    def test_transform_manifest(self) -> None:
        graph = app_add.transform_manifest(
            {
                "name": "App",
                "oauth2AllowImplicitFlow": True,
                "informationalUrls": {"privacy": "https://p"},
                "replyUrlsWithType": [{"url": "https://w", "type": "Web"}],
                "accessTokenAcceptedVersion": 2,
            }
        )
        assert graph["displayName"] == "App"
        assert graph["web"]["implicitGrantSettings"]["enableAccessTokenIssuance"] is True
        assert graph["web"]["redirectUris"] == ["https://w"]
        assert graph["info"]["privacyStatementUrl"] == "https://p"
        assert "accessTokenAcceptedVersion" not in graph
        assert "name" not in graph

    def test_permission_map_deduplicates(self) -> None:
        permissions = app_add.PermissionMap()
        permissions.add("sp-1", {"id": "a", "type": "Scope"}, "User.Read")
        permissions.add("sp-1", {"id": "a", "type": "Scope"}, "User.Read")
        permissions.add("sp-1", {"id": "b", "type": "Role"})
        (entry,) = list(permissions)
        assert entry.scopes == ["User.Read"]
        assert [a["id"] for a in entry.resource_access] == ["a", "b"]
