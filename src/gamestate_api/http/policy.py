"""
=============================================================================
RESPONSE POLICY
=============================================================================

Uniform CORS headers and JSON envelope formatting for every response the
API produces.

=============================================================================
CORS HEADERS
=============================================================================

Every response, whether success, handler error, unmatched route,
preflight or transport error, carries:

    Access-Control-Allow-Origin:  <configured origin>
    Access-Control-Allow-Methods: GET, POST, PUT, DELETE, OPTIONS
    Access-Control-Allow-Headers: Content-Type, Authorization, X-Requested-With
    Access-Control-Max-Age:       86400

There is one policy per server instance. The origin comes from
ServerConfig.allowed_origin and is never echoed from the request.

=============================================================================
ERROR ENVELOPE
=============================================================================

    {"error": "Player not found or not online", "timestamp": 1767225600}

timestamp is integer Unix seconds taken when the error was produced.

=============================================================================
"""

import json
import time
from http import HTTPStatus
from typing import Any, Callable, Dict

from .response import HTTPResponse, ResponseBuilder


CORS_ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
CORS_ALLOW_HEADERS = "Content-Type, Authorization, X-Requested-With"
CORS_MAX_AGE = 86400

JSON_CONTENT_TYPE = "application/json"


class ResponsePolicy:
    """
    Applies CORS and JSON formatting rules to responses.

    Args:
        allowed_origin: Value for Access-Control-Allow-Origin.
        clock: Returns the current Unix time; replaced in tests.
    """

    def __init__(
        self,
        allowed_origin: str = "*",
        clock: Callable[[], float] = time.time,
    ):
        self.allowed_origin = allowed_origin
        self._clock = clock

    @property
    def cors_headers(self) -> Dict[str, str]:
        return {
            "Access-Control-Allow-Origin": self.allowed_origin,
            "Access-Control-Allow-Methods": CORS_ALLOW_METHODS,
            "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
            "Access-Control-Max-Age": str(CORS_MAX_AGE),
        }

    def now(self) -> int:
        """Current Unix time in whole seconds."""
        return int(self._clock())

    def set_cors_headers(self, response: HTTPResponse) -> HTTPResponse:
        """Overwrite the four CORS headers on response."""
        response.headers.update(self.cors_headers)
        return response

    @staticmethod
    def dumps(data: Any, pretty: bool = False) -> str:
        """
        Serialize a payload.

        Roster, server, host and health payloads go out pretty-printed
        with two-space indent; player payloads go out compact.
        """
        if pretty:
            return json.dumps(data, indent=2, ensure_ascii=False)
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False)

    def json_response(
        self,
        body: str,
        status: HTTPStatus = HTTPStatus.OK,
    ) -> HTTPResponse:
        """
        Wrap an already serialized JSON body.

        The body is written verbatim; no re-encoding or validation.
        """
        return (ResponseBuilder()
            .status(status)
            .content_type(JSON_CONTENT_TYPE)
            .body(body)
            .build())

    def error_response(
        self,
        message: str,
        status: HTTPStatus = HTTPStatus.BAD_REQUEST,
    ) -> HTTPResponse:
        """Build the {"error", "timestamp"} envelope with the given status."""
        envelope = {"error": message, "timestamp": self.now()}
        return self.json_response(self.dumps(envelope), status)

    def preflight(self) -> HTTPResponse:
        """Empty 200 answer for OPTIONS on any path."""
        return ResponseBuilder().status(HTTPStatus.OK).build()
