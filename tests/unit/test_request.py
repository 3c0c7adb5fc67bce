"""
Unit tests for HTTP request parsing.
"""

import pytest

from gamestate_api.http.request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
)


@pytest.fixture
def parser() -> RequestParser:
    return RequestParser()


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, parser: RequestParser, sample_get_request: bytes):
        """Test parsing a simple GET request."""
        request = parser.parse(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.path == "/api/players"
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)

    def test_parse_headers(self, parser: RequestParser, sample_get_request: bytes):
        """Test that headers are parsed correctly."""
        request = parser.parse(sample_get_request)

        assert request.headers["host"] == "localhost:8080"
        assert request.user_agent == "pytest"
        assert request.headers["accept"] == "application/json"
        assert request.is_keep_alive is True

    def test_parse_query_params(self, parser: RequestParser, sample_get_request: bytes):
        """Test query parameter parsing."""
        request = parser.parse(sample_get_request)

        assert request.get_query("equipment") == "true"
        assert request.get_query("page") == "2"
        assert request.get_query("missing") is None
        assert request.get_query("missing", "default") == "default"

    def test_path_is_percent_decoded(self, parser: RequestParser):
        """Route captures see decoded names."""
        raw = b"GET /api/player/Jaina%20Proudmoore HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parser.parse(raw)

        assert request.path == "/api/player/Jaina Proudmoore"

    def test_parse_options(self, parser: RequestParser):
        """OPTIONS is an accepted method."""
        raw = b"OPTIONS /api/host HTTP/1.1\r\nOrigin: http://dash\r\n\r\n"
        request = parser.parse(raw)

        assert request.method == "OPTIONS"
        assert request.get_header("Origin") == "http://dash"

    def test_parse_invalid_method(self, parser: RequestParser):
        """Test that invalid methods are rejected."""
        raw = b"BREW /pot HTTP/1.1\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(raw)

        assert exc_info.value.status_code == 405

    def test_parse_invalid_request_line(self, parser: RequestParser):
        """Test handling of malformed request line."""
        raw = b"GET\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(raw)

        assert exc_info.value.status_code == 400

    def test_parse_missing_terminator(self, parser: RequestParser):
        """Headers without the blank line are incomplete."""
        with pytest.raises(HTTPParseError):
            parser.parse(b"GET / HTTP/1.1\r\nHost: test\r\n")

    def test_parse_missing_headers(self, parser: RequestParser):
        """Test parsing request with no headers."""
        request = parser.parse(b"GET / HTTP/1.1\r\n\r\n")

        assert request.method == "GET"
        assert request.path == "/"
        assert len(request.headers) == 0

    def test_parse_path_traversal_blocked(self, parser: RequestParser):
        """Test that path traversal attempts are blocked."""
        raw = b"GET /api/../../etc/passwd HTTP/1.1\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(raw)

        assert "path" in str(exc_info.value).lower()

    def test_parse_request_too_large(self):
        """Test that oversized requests are rejected."""
        parser = RequestParser(max_request_size=100)
        raw = b"GET / HTTP/1.1\r\n" + b"X-Large: " + b"A" * 200 + b"\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(raw)

        assert exc_info.value.status_code == 413

    def test_unsupported_version(self, parser: RequestParser):
        """HTTP/2.0 in a request line is answered with 505."""
        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(b"GET / HTTP/2.0\r\n\r\n")

        assert exc_info.value.status_code == 505

    def test_http_version_parsing(self, parser: RequestParser):
        """Test HTTP/1.0 and HTTP/1.1 version handling."""
        request_10 = parser.parse(b"GET / HTTP/1.0\r\nHost: test\r\n\r\n")
        assert request_10.version == "HTTP/1.0"
        assert request_10.is_keep_alive is False

        request_11 = parser.parse(b"GET / HTTP/1.1\r\nHost: test\r\n\r\n")
        assert request_11.version == "HTTP/1.1"
        assert request_11.is_keep_alive is True

    def test_content_length_handling(self, parser: RequestParser):
        """Body is cut at Content-Length."""
        raw = b"POST / HTTP/1.1\r\nContent-Length: 4\r\n\r\nbodyEXTRA"
        request = parser.parse(raw)

        assert request.body == b"body"

    def test_invalid_content_length(self, parser: RequestParser):
        with pytest.raises(HTTPParseError):
            parser.parse(b"POST / HTTP/1.1\r\nContent-Length: lots\r\n\r\n")

    def test_case_insensitive_headers(self, parser: RequestParser):
        """Test that header names are case-insensitive."""
        request = parser.parse(b"GET / HTTP/1.1\r\nCONTENT-TYPE: text/html\r\n\r\n")

        assert request.get_header("Content-Type") == "text/html"
        assert request.get_header("content-type") == "text/html"

    def test_repeated_and_folded_headers(self, parser: RequestParser):
        """Repeated names are joined, continuation lines appended."""
        raw = (
            b"GET / HTTP/1.1\r\n"
            b"Accept: text/html\r\n"
            b"Accept: application/json\r\n"
            b"X-Note: first\r\n"
            b"  second\r\n"
            b"\r\n"
        )
        request = parser.parse(raw)

        assert request.headers["accept"] == "text/html, application/json"
        assert request.headers["x-note"] == "first second"


class TestHTTPRequest:
    """Tests for HTTPRequest dataclass."""

    def test_get_header_default(self):
        """Test get_header with default value."""
        request = HTTPRequest(method="GET", path="/")

        assert request.get_header("X-Missing") == ""
        assert request.get_header("X-Missing", "default") == "default"

    def test_get_query_first_value(self):
        """Only the first of repeated query values is returned."""
        request = HTTPRequest(
            method="GET",
            path="/",
            query_params={"include": ["equipment", "stats"]},
        )

        assert request.get_query("include") == "equipment"

    def test_keep_alive_http10_opt_in(self):
        request = HTTPRequest(
            method="GET", path="/", version="HTTP/1.0",
            headers={"connection": "Keep-Alive"},
        )

        assert request.is_keep_alive is True

    def test_keep_alive_http11_close(self):
        request = HTTPRequest(method="GET", path="/", headers={"connection": "close"})

        assert request.is_keep_alive is False
