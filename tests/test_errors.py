"""
Tests for the integration error taxonomy.
"""
import httpx
import pytest

from opsflow.integrations.errors import (
    ApiError,
    AuthError,
    ConfigError,
    IntegrationError,
    NetworkError,
    NotFound,
    malformed_response,
    parse_error,
    status_to_error,
    transport_to_error,
    truncate,
)


class TestStatusToError:
    """Classification of HTTP status codes."""

    @pytest.mark.parametrize(
        "status,expected",
        [
            (400, ApiError(400, "HTTP 400")),
            (401, AuthError("HTTP 401")),
            (403, AuthError("HTTP 403")),
            (404, NotFound()),
            (408, ApiError(408, "HTTP 408")),
            (429, ApiError(429, "HTTP 429")),
            (500, ApiError(500, "HTTP 500")),
            (503, ApiError(503, "HTTP 503")),
        ],
    )
    def test_boundary_statuses(self, status, expected):
        assert status_to_error(status) == expected

    def test_total_over_status_range(self):
        """Every status maps to exactly one variant"""
        for status in range(100, 600):
            error = status_to_error(status)
            assert isinstance(error, IntegrationError)
            if status in (401, 403):
                assert isinstance(error, AuthError)
            elif status == 404:
                assert isinstance(error, NotFound)
            else:
                assert isinstance(error, ApiError)
                assert error.status == status

    def test_custom_message(self):
        error = status_to_error(502, "Server error: 502 - bad gateway")
        assert error.message == "Server error: 502 - bad gateway"


class TestErrorSerialization:
    """Tagged-union form and display strings."""

    def test_api_error_dict(self):
        assert ApiError(503, "down").to_dict() == {"type": "ApiError", "status": 503, "message": "down"}

    def test_not_found_has_no_payload(self):
        assert NotFound().to_dict() == {"type": "NotFound"}

    def test_message_variants_dict(self):
        for cls in (NetworkError, AuthError, ConfigError):
            assert cls("x").to_dict() == {"type": cls.__name__, "message": "x"}

    def test_display_strings(self):
        assert str(NetworkError("refused")) == "Network error: refused"
        assert str(AuthError("bad token")) == "Authentication error: bad token"
        assert str(ApiError(500, "boom")) == "API error (status 500): boom"
        assert str(ConfigError("no url")) == "Configuration error: no url"
        assert str(NotFound()) == "Resource not found"


class TestTransportErrors:
    def test_timeout(self):
        assert transport_to_error(httpx.ReadTimeout("slow")) == NetworkError("Request timed out")

    def test_connect_error(self):
        error = transport_to_error(httpx.ConnectError("refused"))
        assert error == NetworkError("Failed to connect to server")

    def test_other_transport_error(self):
        error = transport_to_error(httpx.RemoteProtocolError("eof"))
        assert isinstance(error, NetworkError)
        assert "eof" in error.message


class TestHelpers:
    def test_truncate_long_text(self):
        text = "x" * 600
        assert truncate(text) == "x" * 500 + "..."

    def test_truncate_short_text_unchanged(self):
        assert truncate("short") == "short"

    def test_parse_error_is_config_error_with_snippet(self):
        error = parse_error(ValueError("Expecting value"), "<html>" + "a" * 300)
        assert isinstance(error, ConfigError)
        assert "Expecting value" in error.message
        assert "<html>" in error.message
        assert "a" * 250 not in error.message


class TestMalformedResponse:
    def test_missing_key(self):
        with pytest.raises(ConfigError) as exc_info:
            with malformed_response("project"):
                {}["path"]
        assert exc_info.value.message == "Invalid project format: missing 'path'"

    def test_validation_error_names_field(self):
        from opsflow.models.schemas import GitLabProject

        with pytest.raises(ConfigError) as exc_info:
            with malformed_response("project"):
                GitLabProject(id="abc", name="a", path="a", web_url="u")
        assert exc_info.value.message == "Invalid project format: invalid id"

    def test_non_object_item(self):
        with pytest.raises(ConfigError):
            with malformed_response("build"):
                "not-a-dict".get("number")

    def test_integration_errors_pass_through(self):
        with pytest.raises(NotFound):
            with malformed_response("build"):
                raise NotFound()
