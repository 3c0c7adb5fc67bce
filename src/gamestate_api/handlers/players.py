"""
=============================================================================
PLAYER ENDPOINTS
=============================================================================

    GET /api/players                      roster, ?equipment=true
    GET /api/player/:name                 summary, ?include=equipment
    GET /api/player/:name/stats
    GET /api/player/:name/equipment
    GET /api/player/:name/skills
    GET /api/player/:name/skills-full
    GET /api/player/:name/quests

=============================================================================
PLAYER RESOLUTION
=============================================================================

Every /api/player/:name endpoint resolves the name the same way before
asking the accessor for its section:

    name == ""                        → 400 "Player name is required"
    unknown name / not in the world   → 404 "Player not found or not online"
    otherwise                         → 200 with the accessor's payload

The name arrives percent-decoded and is passed to the accessor as is.

The roster is pretty-printed; single-player payloads are compact.

=============================================================================
"""

from typing import Any, Callable

from ..errors import ClientInputError, NotFoundError
from ..http.policy import ResponsePolicy
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..world import GameStateAccessor
from .base import HandlerGroup, fault_boundary


NAME_REQUIRED = "Player name is required"
PLAYER_NOT_FOUND = "Player not found or not online"


class PlayerHandlers(HandlerGroup):
    """Route handlers backed by a GameStateAccessor."""

    def __init__(self, policy: ResponsePolicy, world: GameStateAccessor):
        super().__init__(policy)
        self.world = world

    def _resolve_player(self, request: HTTPRequest) -> Any:
        name = request.path_params.get("name", "")
        if not name:
            raise ClientInputError(NAME_REQUIRED)

        player = self.world.find_player(name)
        if player is None or not self.world.is_in_world(player):
            raise NotFoundError(PLAYER_NOT_FOUND)

        return player

    def _section(
        self,
        request: HTTPRequest,
        reader: Callable[[Any], Any],
    ) -> HTTPResponse:
        player = self._resolve_player(request)
        return self.ok(reader(player))

    @fault_boundary
    def roster(self, request: HTTPRequest) -> HTTPResponse:
        include_equipment = request.get_query("equipment") == "true"
        players = self.world.all_players(include_equipment=include_equipment)
        return self.ok({"count": len(players), "players": players}, pretty=True)

    @fault_boundary
    def info(self, request: HTTPRequest) -> HTTPResponse:
        player = self._resolve_player(request)
        include_equipment = "equipment" in (request.get_query("include") or "")
        return self.ok(self.world.player_data(player, include_equipment=include_equipment))

    @fault_boundary
    def stats(self, request: HTTPRequest) -> HTTPResponse:
        return self._section(request, self.world.player_stats)

    @fault_boundary
    def equipment(self, request: HTTPRequest) -> HTTPResponse:
        return self._section(request, self.world.player_equipment)

    @fault_boundary
    def skills(self, request: HTTPRequest) -> HTTPResponse:
        return self._section(request, self.world.player_skills)

    @fault_boundary
    def skills_full(self, request: HTTPRequest) -> HTTPResponse:
        return self._section(request, self.world.player_skills_full)

    @fault_boundary
    def quests(self, request: HTTPRequest) -> HTTPResponse:
        return self._section(request, self.world.player_quests)
