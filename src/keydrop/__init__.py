"""Deterministic tile-puzzle movement engine with droppable direction keys."""

from .exceptions import ConfigError, KeydropError, TileMarkerError, TileStateError
from .inventory import Inventory
from .levels import LevelCompletionChecker, LevelDefinition, LevelGoal, LevelPack, load_level_pack
from .map import Direction, Position, TileGrid, TileKind
from .movement import ArrowMarkers, MoveResolver, ResolveOutcome
from .session import GameSession, PlayerState, SessionState, StepResult

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ArrowMarkers",
    "ConfigError",
    "Direction",
    "GameSession",
    "Inventory",
    "KeydropError",
    "LevelCompletionChecker",
    "LevelDefinition",
    "LevelGoal",
    "LevelPack",
    "MoveResolver",
    "PlayerState",
    "Position",
    "ResolveOutcome",
    "SessionState",
    "StepResult",
    "TileGrid",
    "TileKind",
    "TileMarkerError",
    "TileStateError",
    "load_level_pack",
]
