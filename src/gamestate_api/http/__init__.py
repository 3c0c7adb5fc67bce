"""
=============================================================================
HTTP LAYER
=============================================================================

Structured HTTP messages on top of the raw TCP bytes handled in core/.

    ┌──────────────┐   ┌──────────────┐   ┌──────────────┐
    │RequestParser │──►│    Router    │──►│   Handler    │
    │ bytes→request│   │ path→handler │   │  → response  │
    └──────────────┘   └──────────────┘   └──────┬───────┘
                                                 │
                       ┌──────────────┐   ┌──────▼───────┐
                       │HTTPResponse  │◄──│ResponsePolicy│
                       │  .to_bytes() │   │ CORS + JSON  │
                       └──────────────┘   └──────────────┘

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError
from .response import HTTPResponse, ResponseBuilder
from .router import Router, RouteBinding, RouteMatch, RouteType
from .policy import ResponsePolicy

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "HTTPResponse",
    "ResponseBuilder",
    "Router",
    "RouteBinding",
    "RouteMatch",
    "RouteType",
    "ResponsePolicy",
]
