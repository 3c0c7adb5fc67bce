"""Route handlers: system endpoints, player endpoints and the fault boundary."""

from .base import HandlerGroup, fault_boundary, INTERNAL_ERROR_MESSAGE
from .system import SystemHandlers
from .players import PlayerHandlers, NAME_REQUIRED, PLAYER_NOT_FOUND

__all__ = [
    "HandlerGroup",
    "fault_boundary",
    "INTERNAL_ERROR_MESSAGE",
    "SystemHandlers",
    "PlayerHandlers",
    "NAME_REQUIRED",
    "PLAYER_NOT_FOUND",
]
