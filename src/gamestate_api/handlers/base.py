"""
=============================================================================
HANDLER FAULT BOUNDARY
=============================================================================

Every route handler is wrapped by @fault_boundary so that nothing a
handler raises can reach the connection loop:

    handler raises                       client receives
    ──────────────                       ───────────────
    ClientInputError("...")         ──►  400 {"error": "...", "timestamp": ...}
    NotFoundError("...")            ──►  404 {"error": "...", "timestamp": ...}
    InternalFault("...")            ──►  500 {"error": "...", "timestamp": ...}
    anything else                   ──►  500 {"error": "Internal server error", ...}

Unexpected exceptions are logged with their traceback; the client only
ever sees the generic message.

=============================================================================
"""

import functools
import logging
from http import HTTPStatus
from typing import Callable

from ..errors import GameStateAPIError
from ..http.policy import ResponsePolicy
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


class HandlerGroup:
    """Base for classes whose methods are route handlers."""

    def __init__(self, policy: ResponsePolicy):
        self.policy = policy

    def ok(self, payload, pretty: bool = False) -> HTTPResponse:
        """Serialize payload and wrap it in a 200 JSON response."""
        return self.policy.json_response(self.policy.dumps(payload, pretty=pretty))


def fault_boundary(
    method: Callable[[HandlerGroup, HTTPRequest], HTTPResponse]
) -> Callable[[HandlerGroup, HTTPRequest], HTTPResponse]:
    """Convert anything a handler raises into an error envelope."""

    @functools.wraps(method)
    def wrapper(self: HandlerGroup, request: HTTPRequest) -> HTTPResponse:
        try:
            return method(self, request)

        except GameStateAPIError as e:
            if e.status >= HTTPStatus.INTERNAL_SERVER_ERROR:
                logger.error(f"{method.__name__} failed for {request.path}: {e.message}")
            return self.policy.error_response(e.message, e.status)

        except Exception:
            logger.exception(f"Unhandled error in {method.__name__} for {request.path}")
            return self.policy.error_response(
                INTERNAL_ERROR_MESSAGE,
                HTTPStatus.INTERNAL_SERVER_ERROR,
            )

    return wrapper
