"""
=============================================================================
GAME WORLD ACCESS
=============================================================================

The API never owns game state. It reads it through a GameStateAccessor
supplied by whoever embeds the server: the game process itself, or
SnapshotWorld below when running standalone.

    ┌───────────────┐  find_player / player_* / all_players / server_data
    │   handlers    │ ─────────────────────────────────────────────────────►
    └───────────────┘                                    GameStateAccessor
                                                         (thread-safe)

=============================================================================
THREADING CONTRACT
=============================================================================

Handlers call the accessor from worker threads while the game mutates
its world on its own threads. Implementations must therefore:

  1. be safe to call concurrently from several workers, and
  2. return plain JSON-serializable data that the handler may serialize
     after the call returns, i.e. a copy, never live game objects.

A player handle returned by find_player() may go stale between calls
(the player logs out). Accessors should then raise NotFoundError, which
surfaces as a 404 exactly like an unknown name.

=============================================================================
"""

import copy
import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .errors import NotFoundError


logger = logging.getLogger(__name__)


class GameStateAccessor(ABC):
    """Read-only view of the game world used by the request handlers."""

    @abstractmethod
    def find_player(self, name: str) -> Optional[Any]:
        """Opaque handle for the named player, or None if unknown."""

    @abstractmethod
    def is_in_world(self, player: Any) -> bool:
        """Whether the player is currently in the world (online)."""

    @abstractmethod
    def player_data(self, player: Any, include_equipment: bool = False) -> dict:
        """Summary payload for /api/player/{name}."""

    @abstractmethod
    def player_stats(self, player: Any) -> Any: ...

    @abstractmethod
    def player_equipment(self, player: Any) -> Any: ...

    @abstractmethod
    def player_skills(self, player: Any) -> Any: ...

    @abstractmethod
    def player_skills_full(self, player: Any) -> Any: ...

    @abstractmethod
    def player_quests(self, player: Any) -> Any: ...

    @abstractmethod
    def all_players(self, include_equipment: bool = False) -> List[dict]:
        """player_data() for every player in the world."""

    @abstractmethod
    def server_data(self) -> dict:
        """Aggregate server metadata for /api/server."""

    @abstractmethod
    def uptime_seconds(self) -> int:
        """Game server uptime, reported by /api/health."""


@dataclass
class PlayerSnapshot:
    """
    Everything SnapshotWorld knows about one character.

    profile holds free-form summary fields (level, race, class, zone...)
    that are merged into the player_data() payload.
    """

    name: str
    in_world: bool = True
    profile: Dict[str, Any] = field(default_factory=dict)
    stats: Dict[str, Any] = field(default_factory=dict)
    equipment: List[Any] = field(default_factory=list)
    skills: List[Any] = field(default_factory=list)
    skills_full: List[Any] = field(default_factory=list)
    quests: List[Any] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlayerSnapshot":
        if not data.get("name"):
            raise ValueError("player entry without a name")
        return cls(
            name=data["name"],
            in_world=bool(data.get("in_world", True)),
            profile=dict(data.get("profile", {})),
            stats=dict(data.get("stats", {})),
            equipment=list(data.get("equipment", [])),
            skills=list(data.get("skills", [])),
            skills_full=list(data.get("skills_full", [])),
            quests=list(data.get("quests", [])),
        )


class SnapshotWorld(GameStateAccessor):
    """
    In-memory, thread-safe GameStateAccessor.

    Used when the API runs without a live game process (the CLI's
    --snapshot file) and as the world in tests. Names are matched
    case-insensitively. Every read returns a deep copy made under the
    lock, so a concurrent upsert_player() never shows up half-applied.

    Usage:
        world = SnapshotWorld(server_info={"realm": "Azeroth"})
        world.upsert_player(PlayerSnapshot(name="Thrall", stats={"level": 60}))
        world.player_stats(world.find_player("thrall"))   # {"level": 60}
    """

    def __init__(
        self,
        server_info: Optional[Dict[str, Any]] = None,
        started_at: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._lock = threading.RLock()
        self._players: Dict[str, PlayerSnapshot] = {}
        self._server_info = dict(server_info or {})
        self._clock = clock
        self._started_at = clock() if started_at is None else started_at

    # =========================================================================
    # MUTATION (called by whoever feeds the snapshot)
    # =========================================================================

    @staticmethod
    def _key(name: str) -> str:
        return name.casefold()

    def upsert_player(self, player: PlayerSnapshot) -> None:
        with self._lock:
            self._players[self._key(player.name)] = copy.deepcopy(player)

    def remove_player(self, name: str) -> bool:
        with self._lock:
            return self._players.pop(self._key(name), None) is not None

    def set_server_info(self, info: Dict[str, Any]) -> None:
        with self._lock:
            self._server_info = dict(info)

    # =========================================================================
    # LOADING
    # =========================================================================

    @classmethod
    def from_dict(cls, data: Dict[str, Any], **kwargs) -> "SnapshotWorld":
        """
        Build a world from a decoded snapshot document:

            {
              "server":  {"name": "...", ...},
              "players": [{"name": "Thrall", "in_world": true, "stats": {...}}, ...]
            }
        """
        world = cls(server_info=data.get("server", {}), **kwargs)
        for entry in data.get("players", []):
            world.upsert_player(PlayerSnapshot.from_dict(entry))
        return world

    @classmethod
    def from_file(cls, path: str, **kwargs) -> "SnapshotWorld":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        world = cls.from_dict(data, **kwargs)
        logger.info(f"Loaded {len(world)} players from {path}")
        return world

    def __len__(self) -> int:
        with self._lock:
            return len(self._players)

    # =========================================================================
    # GameStateAccessor
    # =========================================================================

    def find_player(self, name: str) -> Optional[str]:
        """The handle is the lookup key; it is resolved again on every read."""
        key = self._key(name)
        with self._lock:
            return key if key in self._players else None

    def _get(self, handle: str) -> PlayerSnapshot:
        player = self._players.get(handle)
        if player is None:
            raise NotFoundError("Player not found or not online")
        return player

    def is_in_world(self, player: str) -> bool:
        with self._lock:
            snapshot = self._players.get(player)
            return snapshot is not None and snapshot.in_world

    def _player_payload(self, player: PlayerSnapshot, include_equipment: bool) -> dict:
        payload = {"name": player.name}
        payload.update(player.profile)
        payload["stats"] = player.stats
        if include_equipment:
            payload["equipment"] = player.equipment
        return copy.deepcopy(payload)

    def player_data(self, player: str, include_equipment: bool = False) -> dict:
        with self._lock:
            return self._player_payload(self._get(player), include_equipment)

    def _section(self, player: str, attribute: str) -> Any:
        with self._lock:
            return copy.deepcopy(getattr(self._get(player), attribute))

    def player_stats(self, player: str) -> Any:
        return self._section(player, "stats")

    def player_equipment(self, player: str) -> Any:
        return self._section(player, "equipment")

    def player_skills(self, player: str) -> Any:
        return self._section(player, "skills")

    def player_skills_full(self, player: str) -> Any:
        return self._section(player, "skills_full")

    def player_quests(self, player: str) -> Any:
        return self._section(player, "quests")

    def all_players(self, include_equipment: bool = False) -> List[dict]:
        with self._lock:
            online = sorted(
                (p for p in self._players.values() if p.in_world),
                key=lambda p: p.name.casefold(),
            )
            return [self._player_payload(p, include_equipment) for p in online]

    def server_data(self) -> dict:
        with self._lock:
            data = copy.deepcopy(self._server_info)
            data["players_online"] = sum(1 for p in self._players.values() if p.in_world)
        data["uptime_seconds"] = self.uptime_seconds()
        return data

    def uptime_seconds(self) -> int:
        return max(int(self._clock() - self._started_at), 0)
