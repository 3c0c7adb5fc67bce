"""
=============================================================================
ERROR TAXONOMY
=============================================================================

Exceptions raised inside request handlers and the transport layer.

Every handler runs inside a fault boundary (see handlers/base.py) that
converts these into the uniform error envelope:

    {"error": "<message>", "timestamp": <unix seconds>}

    ┌──────────────────────────┬────────┬──────────────────────────────────┐
    │ Exception                │ Status │ Typical cause                    │
    ├──────────────────────────┼────────┼──────────────────────────────────┤
    │ ClientInputError         │  400   │ empty player name                │
    │ NotFoundError            │  404   │ unknown / offline player         │
    │ InternalFault            │  500   │ accessor broke mid-request       │
    │ (anything else)          │  500   │ bug - logged with traceback      │
    └──────────────────────────┴────────┴──────────────────────────────────┘

BindFailure never reaches a client: the listener raises it when the
socket cannot be bound, and GameStateServer.start() turns it into a
False return value.

=============================================================================
"""

from http import HTTPStatus
from typing import Optional


class GameStateAPIError(Exception):
    """
    Base class for errors that map onto an HTTP status.

    The message is sent to the client verbatim, so keep it free of
    internal details.
    """

    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status: Optional[HTTPStatus] = None):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status


class ClientInputError(GameStateAPIError):
    """The request itself is unusable (400)."""

    status = HTTPStatus.BAD_REQUEST


class NotFoundError(GameStateAPIError):
    """The addressed resource does not exist right now (404)."""

    status = HTTPStatus.NOT_FOUND


class InternalFault(GameStateAPIError):
    """A collaborator failed while building a response (500)."""

    status = HTTPStatus.INTERNAL_SERVER_ERROR


class BindFailure(OSError):
    """The listener could not bind its address."""

    def __init__(self, host: str, port: int, reason: str):
        super().__init__(f"Failed to bind {host}:{port}: {reason}")
        self.host = host
        self.port = port
        self.reason = reason
