"""
Unit tests for URL router.
"""

import json
from http import HTTPStatus

import pytest

from gamestate_api.http.router import Router, RouteType, parse_template
from gamestate_api.http.request import HTTPRequest
from gamestate_api.http.response import HTTPResponse, ResponseBuilder


def make_request(method: str, path: str) -> HTTPRequest:
    """Helper to create a request for testing."""
    return HTTPRequest(method=method, path=path)


def dummy_handler(request: HTTPRequest) -> HTTPResponse:
    """Dummy handler for testing."""
    return ResponseBuilder().json({"path": request.path, "params": request.path_params}).build()


class TestParseTemplate:
    """Tests for template parsing."""

    def test_segment_kinds(self):
        segments = parse_template("/api/player/:name/stats")

        assert [s.kind for s in segments] == [
            RouteType.STATIC, RouteType.STATIC, RouteType.STATIC,
            RouteType.PARAM, RouteType.STATIC,
        ]
        assert segments[3].value == "name"

    def test_bare_wildcard(self):
        segments = parse_template("*")

        assert len(segments) == 1
        assert segments[0].kind is RouteType.WILDCARD

    def test_unnamed_param_rejected(self):
        with pytest.raises(ValueError):
            parse_template("/api/player/:")

    def test_wildcard_must_be_last(self):
        with pytest.raises(ValueError):
            parse_template("/static/*path/more")


class TestRouter:
    """Tests for Router class."""

    def test_add_route(self):
        """Test adding routes."""
        router = Router()
        router.add_route("/api/health", dummy_handler, method="get")

        assert len(router) == 1
        assert router.routes()[0].template == "/api/health"
        assert router.routes()[0].method == "GET"

    def test_match_static_path(self):
        """Test matching static paths."""
        router = Router()
        router.add_route("/api/health", dummy_handler, method="GET")
        router.add_route("/api/server", dummy_handler, method="GET")

        match = router.match("GET", "/api/server")
        assert match is not None
        assert match.binding.template == "/api/server"
        assert match.params == {}

    def test_match_with_method(self):
        """Test method-based routing."""
        router = Router()
        router.add_route("/api/health", dummy_handler, method="GET")

        assert router.match("GET", "/api/health") is not None
        assert router.match("POST", "/api/health") is None

    def test_match_any_method(self):
        router = Router()
        router.add_route("/api/health", dummy_handler)

        assert router.match("DELETE", "/api/health") is not None

    def test_match_dynamic_params(self):
        """Test dynamic path parameters."""
        router = Router()
        router.add_route("/api/player/:name/stats", dummy_handler, method="GET")

        match = router.match("GET", "/api/player/Thrall/stats")
        assert match is not None
        assert match.params == {"name": "Thrall"}

    def test_empty_capture_matches(self):
        """A trailing slash yields an empty capture, not a miss."""
        router = Router()
        router.add_route("/api/player/:name", dummy_handler, method="GET")

        match = router.match("GET", "/api/player/")
        assert match is not None
        assert match.params == {"name": ""}

    def test_capture_never_spans_segments(self):
        router = Router()
        router.add_route("/api/player/:name", dummy_handler, method="GET")

        assert router.match("GET", "/api/player/Thrall/stats") is None
        assert router.match("GET", "/api/player") is None

    def test_trailing_slash_is_significant(self):
        router = Router()
        router.add_route("/api/health", dummy_handler, method="GET")

        assert router.match("GET", "/api/health/") is None

    def test_match_wildcard(self):
        """Test wildcard path matching."""
        router = Router()
        router.add_route("/static/*path", dummy_handler, method="GET")

        match = router.match("GET", "/static/css/site.css")
        assert match is not None
        assert match.params == {"path": "css/site.css"}

    def test_star_matches_every_path(self):
        router = Router()
        router.add_route("*", dummy_handler, method="OPTIONS")

        assert router.match("OPTIONS", "/") is not None
        assert router.match("OPTIONS", "/api/player/Thrall/quests") is not None
        assert router.match("GET", "/") is None

    def test_first_match_wins(self):
        """Earlier bindings shadow later ones."""
        router = Router()
        router.add_route("/api/player/:name", dummy_handler, method="GET", name="first")
        router.add_route("/api/player/admin", dummy_handler, method="GET", name="second")

        match = router.match("GET", "/api/player/admin")
        assert match.binding.name == "first"

    def test_handle_sets_path_params(self):
        router = Router()
        router.add_route("/api/player/:name", dummy_handler, method="GET")

        response = router.handle(make_request("GET", "/api/player/Jaina"))

        assert response.status == HTTPStatus.OK
        assert json.loads(response.body)["params"] == {"name": "Jaina"}

    def test_handle_not_found(self):
        """Unmatched requests go to the default 404 handler."""
        router = Router()

        response = router.handle(make_request("GET", "/nowhere"))

        assert response.status == HTTPStatus.NOT_FOUND

    def test_custom_not_found(self):
        router = Router(not_found=lambda request: ResponseBuilder().status(410).build())

        response = router.handle(make_request("GET", "/gone"))

        assert response.status == HTTPStatus.GONE

    def test_freeze_rejects_registration(self):
        router = Router()
        router.add_route("/api/health", dummy_handler, method="GET")
        router.freeze()

        assert router.frozen is True
        with pytest.raises(RuntimeError):
            router.add_route("/api/server", dummy_handler, method="GET")
        assert len(router) == 1
