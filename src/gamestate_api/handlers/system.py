"""
=============================================================================
SYSTEM ENDPOINTS
=============================================================================

    GET /api/health   liveness, never touches the player roster
    GET /api/server   aggregate server metadata from the accessor
    GET /api/host     host CPU / memory / uptime with peaks

plus the OPTIONS preflight answer for any path.

All three GET payloads are pretty-printed (two-space indent).

=============================================================================
"""

from typing import Callable, Optional

from ..http.policy import ResponsePolicy
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..metrics import HostMetrics
from ..world import GameStateAccessor
from .base import HandlerGroup, fault_boundary


class SystemHandlers(HandlerGroup):
    """
    Args:
        policy: Response formatting rules.
        world: Source of /api/server data.
        metrics: Shared sampler; owns the CPU/memory peaks.
        uptime: Game uptime in seconds for /api/health. Defaults to the
                accessor's uptime_seconds.
    """

    def __init__(
        self,
        policy: ResponsePolicy,
        world: GameStateAccessor,
        metrics: HostMetrics,
        uptime: Optional[Callable[[], int]] = None,
    ):
        super().__init__(policy)
        self.world = world
        self.metrics = metrics
        self.uptime = uptime or world.uptime_seconds

    def preflight(self, request: HTTPRequest) -> HTTPResponse:
        """CORS preflight. Headers are added by the CORS hook like everywhere else."""
        return self.policy.preflight()

    @fault_boundary
    def health(self, request: HTTPRequest) -> HTTPResponse:
        payload = {
            "status": "ok",
            "timestamp": self.policy.now(),
            "uptime_seconds": max(int(self.uptime()), 0),
        }
        return self.ok(payload, pretty=True)

    @fault_boundary
    def server(self, request: HTTPRequest) -> HTTPResponse:
        return self.ok(self.world.server_data(), pretty=True)

    @fault_boundary
    def host(self, request: HTTPRequest) -> HTTPResponse:
        return self.ok(self.metrics.sample().to_dict(), pretty=True)
