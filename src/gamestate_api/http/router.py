"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, path) to a handler function.

=============================================================================
ROUTE TEMPLATES
=============================================================================

Templates are split on "/" once, at registration, into typed segments:

    "/api/player/:name/stats"

        ""        → STATIC   (leading slash)
        "api"     → STATIC
        "player"  → STATIC
        ":name"   → PARAM    captures exactly one segment, may be empty
        "stats"   → STATIC

    "*"           → WILDCARD matches any remainder, including nothing

Matching compares a request path segment by segment against each binding
in registration order; the first binding that fits wins. No regular
expressions are involved, so a capture can never swallow a "/".

    ┌───────────────────────────┬──────────────────────────────────────┐
    │ Request path              │ Result for "/api/player/:name"       │
    ├───────────────────────────┼──────────────────────────────────────┤
    │ /api/player/Thrall        │ match, name="Thrall"                 │
    │ /api/player/              │ match, name=""  (handler says 400)   │
    │ /api/player/Thrall/stats  │ no match (segment count differs)     │
    │ /api/player               │ no match                             │
    └───────────────────────────┴──────────────────────────────────────┘

Trailing slashes are significant: "/api/health/" is not "/api/health".

=============================================================================
FREEZING
=============================================================================

The server registers every route in its constructor and then calls
freeze(). After that the table is read-only and is shared by all worker
threads without locking; add_route() raises RuntimeError.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from http import HTTPStatus
from typing import Callable, Dict, List, Optional, Tuple

from .request import HTTPRequest
from .response import HTTPResponse, ResponseBuilder


Handler = Callable[[HTTPRequest], HTTPResponse]


class RouteType(Enum):
    """How a template segment is matched."""

    STATIC = "static"       # exact text
    PARAM = "param"         # :name - one segment
    WILDCARD = "wildcard"   # * - everything remaining


@dataclass(frozen=True)
class Segment:
    kind: RouteType
    value: str


@dataclass(frozen=True)
class RouteBinding:
    """
    A registered route.

    Attributes:
        method:   HTTP method, or None for any method.
        template: The template as registered ("/api/player/:name").
        handler:  Called with the request when the binding matches.
        name:     Optional label used in logs.
        segments: Parsed template.
    """

    method: Optional[str]
    template: str
    handler: Handler
    name: Optional[str] = None
    segments: Tuple[Segment, ...] = field(default=(), repr=False)

    def match(self, path: str) -> Optional[Dict[str, str]]:
        """
        Match a request path against this binding's segments.

        Returns:
            The captured parameters (possibly empty) or None.
        """
        parts = path.split("/")
        segments = self.segments
        has_wildcard = bool(segments) and segments[-1].kind is RouteType.WILDCARD

        if has_wildcard:
            fixed = segments[:-1]
            if len(parts) < len(fixed):
                return None
        else:
            fixed = segments
            if len(parts) != len(fixed):
                return None

        params: Dict[str, str] = {}
        for segment, part in zip(fixed, parts):
            if segment.kind is RouteType.STATIC:
                if segment.value != part:
                    return None
            else:
                params[segment.value] = part

        if has_wildcard:
            params[segments[-1].value] = "/".join(parts[len(fixed):])

        return params


@dataclass
class RouteMatch:
    """A binding together with the parameters it captured."""

    binding: RouteBinding
    params: Dict[str, str]


def parse_template(template: str) -> Tuple[Segment, ...]:
    """
    Split a route template into typed segments.

    Raises:
        ValueError: If a wildcard is not the last segment or a parameter
                    has no name.
    """
    raw = template.split("/")
    segments: List[Segment] = []

    for index, part in enumerate(raw):
        if part.startswith(":"):
            if len(part) == 1:
                raise ValueError(f"Unnamed parameter in route {template!r}")
            segments.append(Segment(RouteType.PARAM, part[1:]))
        elif part.startswith("*"):
            if index != len(raw) - 1:
                raise ValueError(f"Wildcard must be the last segment in {template!r}")
            segments.append(Segment(RouteType.WILDCARD, part[1:] or "wildcard"))
        else:
            segments.append(Segment(RouteType.STATIC, part))

    return tuple(segments)


def _default_not_found(request: HTTPRequest) -> HTTPResponse:
    return (ResponseBuilder()
        .status(HTTPStatus.NOT_FOUND)
        .json({"error": f"No route matches {request.path}"})
        .build())


class Router:
    """
    Ordered, freezable route table.

    Usage:
        router = Router()

        router.add_route("/api/player/:name", player_info, method="GET")

        router.freeze()
        response = router.handle(request)

    Args:
        not_found: Handler for requests no binding matches.
    """

    def __init__(self, not_found: Optional[Handler] = None):
        self._bindings: List[RouteBinding] = []
        self._frozen = False
        self._not_found = not_found or _default_not_found

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Reject any further registration."""
        self._frozen = True

    def add_route(
        self,
        template: str,
        handler: Handler,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> RouteBinding:
        """
        Register a binding at the end of the table.

        Raises:
            RuntimeError: If the router is frozen.
        """
        if self._frozen:
            raise RuntimeError(f"Route table is frozen; cannot add {template!r}")

        binding = RouteBinding(
            method=method.upper() if method else None,
            template=template,
            handler=handler,
            name=name or getattr(handler, "__name__", None),
            segments=parse_template(template),
        )
        self._bindings.append(binding)
        return binding

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """First binding, in registration order, that accepts method and path."""
        method = method.upper()

        for binding in self._bindings:
            if binding.method and binding.method != method:
                continue
            params = binding.match(path)
            if params is not None:
                return RouteMatch(binding=binding, params=params)

        return None

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Dispatch request to its handler, or to the not-found handler."""
        match = self.match(request.method, request.path)

        if match:
            request.path_params = match.params
            return match.binding.handler(request)

        return self._not_found(request)

    def routes(self) -> List[RouteBinding]:
        """Registered bindings in match order."""
        return list(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)
