"""
=============================================================================
ROUTE TABLE
=============================================================================

    Method   Template                          Handler
    ───────  ────────────────────────────────  ─────────────────────────
    OPTIONS  *                                 SystemHandlers.preflight
    GET      /api/health                       SystemHandlers.health
    GET      /api/server                       SystemHandlers.server
    GET      /api/host                         SystemHandlers.host
    GET      /api/players                      PlayerHandlers.roster
    GET      /api/player/:name                 PlayerHandlers.info
    GET      /api/player/:name/stats           PlayerHandlers.stats
    GET      /api/player/:name/equipment       PlayerHandlers.equipment
    GET      /api/player/:name/skills          PlayerHandlers.skills
    GET      /api/player/:name/skills-full     PlayerHandlers.skills_full
    GET      /api/player/:name/quests          PlayerHandlers.quests

Bindings are matched in this order. The returned router is frozen.

=============================================================================
"""

from typing import Optional

from .handlers import PlayerHandlers, SystemHandlers
from .http.router import Handler, Router


PLAYER_PREFIX = "/api/player/:name"


def build_router(
    system: SystemHandlers,
    players: PlayerHandlers,
    not_found: Optional[Handler] = None,
) -> Router:
    """Register every API route and freeze the table."""
    router = Router(not_found=not_found)

    router.add_route("*", system.preflight, method="OPTIONS")

    router.add_route("/api/health", system.health, method="GET")
    router.add_route("/api/server", system.server, method="GET")
    router.add_route("/api/host", system.host, method="GET")

    router.add_route("/api/players", players.roster, method="GET")
    router.add_route(PLAYER_PREFIX, players.info, method="GET")
    router.add_route(f"{PLAYER_PREFIX}/stats", players.stats, method="GET")
    router.add_route(f"{PLAYER_PREFIX}/equipment", players.equipment, method="GET")
    router.add_route(f"{PLAYER_PREFIX}/skills", players.skills, method="GET")
    router.add_route(f"{PLAYER_PREFIX}/skills-full", players.skills_full, method="GET")
    router.add_route(f"{PLAYER_PREFIX}/quests", players.quests, method="GET")

    router.freeze()
    return router
