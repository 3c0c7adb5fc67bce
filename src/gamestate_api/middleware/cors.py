"""
=============================================================================
CORS PRE-ROUTING HOOK
=============================================================================

Sits directly in front of the router and stamps the ResponsePolicy's CORS
headers on whatever comes back:

    - handler successes and handler errors (400/404/500),
    - the router's 404 for unmatched paths,
    - the OPTIONS preflight (the router answers it with an empty 200),
    - a 500 built here if something below raised past the fault boundary.

Preflight is NOT short-circuited here. OPTIONS requests go through the
router like everything else and match its "*" binding.

Transport-level errors that never reach the pipeline (parse errors,
read timeouts, overload) get the same headers from the server's
connection loop.

=============================================================================
"""

import logging
from http import HTTPStatus

from ..http.policy import ResponsePolicy
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from .base import Middleware, NextHandler


logger = logging.getLogger(__name__)


class CORSMiddleware(Middleware):
    """
    Args:
        policy: Provides the header values (one configured origin).
    """

    def __init__(self, policy: ResponsePolicy):
        self.policy = policy

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        try:
            response = next(request)
        except Exception:
            logger.exception(f"Unhandled error routing {request.method} {request.path}")
            response = self.policy.error_response(
                "Internal server error",
                HTTPStatus.INTERNAL_SERVER_ERROR,
            )

        return self.policy.set_cors_headers(response)
