"""Tests for tenantcli.framework.normalizer -- error kinds, messages and exit codes."""

from __future__ import annotations

import httpx
import pytest

from tenantcli.client.response import extract_response_data
from tenantcli.exceptions import (
    AmbiguousMatchError,
    ConfigError,
    NotFoundError,
    RemoteRequestError,
    ValidationError,
)
from tenantcli.framework.normalizer import ErrorNormalizer, exit_code_for, extract_upstream_message
from tenantcli.models import ErrorKind


def _status_error(status: int, **kwargs) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://graph.microsoft.com/v1.0/me")
    response = httpx.Response(status, request=request, **kwargs)
    return httpx.HTTPStatusError("failed", request=request, response=response)


class TestExtractUpstreamMessage:
    @pytest.mark.parametrize(
        "payload, expected",
        [
            ({"error": {"code": "Request_ResourceNotFound", "message": "Resource does not exist."}},
             "Resource does not exist."),
            ({"odata.error": {"code": "-1", "message": {"lang": "en-US", "value": "List does not exist."}}},
             "List does not exist."),
            ({"error": "invalid_grant", "error_description": "AADSTS70000: Bad grant"},
             "AADSTS70000: Bad grant"),
            ({"error": "access_denied"}, "access_denied"),
            ({"message": "Plain message"}, "Plain message"),
            ({"detail": "Detail message"}, "Detail message"),
            ('{"error": {"message": "Stringified"}}', "Stringified"),
            ([{"message": "First"}, {"message": "Second"}], "First"),
            ("Something went wrong", "Something went wrong"),
        ],
    )
    def test_known_shapes(self, payload, expected) -> None:
        assert extract_upstream_message(payload) == expected

    def test_collapses_to_one_line(self) -> None:
        payload = {"error": {"message": "Line one.\nLine two.\r\n  Line three."}}
        assert extract_upstream_message(payload) == "Line one. Line two. Line three."

    @pytest.mark.parametrize("payload", [None, {}, {"error": {}}, "", "   ", {"unrelated": 1}])
    def test_nothing_usable(self, payload) -> None:
        assert extract_upstream_message(payload) is None

    def test_invalid_json_string_kept_verbatim(self) -> None:
        assert extract_upstream_message("{not json") == "{not json"


class TestErrorNormalizer:
    @pytest.mark.parametrize(
        "exc, kind, code",
        [
            (ValidationError("bad"), ErrorKind.VALIDATION_FAILURE, 2),
            (NotFoundError("none"), ErrorKind.NOT_FOUND, 3),
            (AmbiguousMatchError("many", candidates=["a", "b"]), ErrorKind.AMBIGUOUS_MATCH, 4),
            (RemoteRequestError("remote", status_code=500), ErrorKind.REMOTE_REQUEST_FAILURE, 5),
        ],
    )
    def test_framework_exceptions_keep_their_kind(self, exc, kind, code) -> None:
        normalizer = ErrorNormalizer()
        error = normalizer.normalize(exc)
        assert error.kind == kind
        assert error.message == str(exc)
        assert normalizer.exit_code(error) == code

    def test_http_status_error_uses_upstream_message(self) -> None:
        exc = _status_error(403, json={"error": {"message": "Insufficient privileges."}})
        error = ErrorNormalizer().normalize(exc)
        assert error.kind == ErrorKind.REMOTE_REQUEST_FAILURE
        assert error.message == "Insufficient privileges."

    def test_http_status_error_with_empty_body(self) -> None:
        error = ErrorNormalizer().normalize(_status_error(502, content=b""))
        assert error.message == "Request failed with status 502"

    @pytest.mark.parametrize(
        "content, expected",
        [
            (b"Service Unavailable\n", "Service Unavailable"),
            (b"{not json", "{not json"),
        ],
    )
    def test_http_status_error_decodes_like_the_client(self, content, expected) -> None:
        exc = _status_error(503, content=content)
        assert extract_response_data(exc.response) == content.decode()
        assert ErrorNormalizer().normalize(exc).message == expected

    def test_transport_error(self) -> None:
        exc = httpx.ConnectError("Name or service not known")
        error = ErrorNormalizer().normalize(exc)
        assert error.kind == ErrorKind.REMOTE_REQUEST_FAILURE
        assert error.message == "Name or service not known"

    def test_unrecognised_exception_falls_back_to_str(self) -> None:
        error = ErrorNormalizer().normalize(RuntimeError("disk\nfull"))
        assert error.kind == ErrorKind.REMOTE_REQUEST_FAILURE
        assert error.message == "disk full"

    def test_oserror_is_normalized(self) -> None:
        error = ErrorNormalizer().normalize(FileNotFoundError(2, "No such file", "cert.pfx"))
        assert "No such file" in error.message
        assert "\n" not in error.message

    def test_exception_without_text_uses_repr(self) -> None:
        assert ErrorNormalizer().normalize(KeyError()).message == "KeyError()"

    def test_multiline_framework_message(self) -> None:
        error = ErrorNormalizer().normalize(ValidationError("first\nsecond"))
        assert error.message == "first second"

    def test_config_error_maps_to_remote_kind(self) -> None:
        error = ErrorNormalizer().normalize(ConfigError("Environment variable 'X' is not set"))
        assert error.kind == ErrorKind.REMOTE_REQUEST_FAILURE


class TestExitCodes:
    def test_warning_is_not_fatal(self) -> None:
        assert exit_code_for(ErrorKind.LOCAL_IO_WARNING) == 0

    def test_every_kind_has_an_exit_code(self) -> None:
        codes = {kind: exit_code_for(kind) for kind in ErrorKind}
        assert codes == {
            ErrorKind.VALIDATION_FAILURE: 2,
            ErrorKind.NOT_FOUND: 3,
            ErrorKind.AMBIGUOUS_MATCH: 4,
            ErrorKind.REMOTE_REQUEST_FAILURE: 5,
            ErrorKind.LOCAL_IO_WARNING: 0,
        }
