from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Iterable, Optional

from .events import bus as events
from .events.bus import EventBus
from .exceptions import TileMarkerError
from .inventory import Inventory
from .levels.loader import LevelDefinition, LevelPack
from .map.grid import Position, TileGrid
from .map.tiles import PRIORITY, Direction
from .movement.engine import MoveResolver, ResolveOutcome
from .movement.markers import ArrowMarkers
from .settings import Settings

logger = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = auto()
    MOVING = auto()
    FINISHED = auto()


@dataclass
class PlayerState:
    position: Position
    inventory: Inventory = field(default_factory=Inventory.full)
    is_moving: bool = False


@dataclass(frozen=True)
class StepResult:
    """What one tick (or one direct move) did.

    ``direction`` is None when no usable input arrived or the session was
    settling. ``error`` carries a TileMarkerError that made the step refuse.
    """

    direction: Optional[Direction] = None
    outcome: Optional[ResolveOutcome] = None
    advanced_to: Optional[int] = None
    finished: bool = False
    error: Optional[TileMarkerError] = None

    @property
    def moved(self) -> bool:
        return self.outcome is not None and self.outcome.moved


_NOTHING = StepResult()


class GameSession:
    """Plays a LevelPack one level at a time.

    The session owns the mutable state of the level being played: its grid,
    the arrow markers and the player. Each ``update`` call is one tick and
    resolves at most one move. After a move the session is MOVING until
    ``settings.move_cooldown`` seconds of ``dt`` have elapsed; input is
    ignored meanwhile. Stepping onto the End tile with exactly the goal keys
    loads the next level, and finishing the last one ends the session.

    Raises ConfigError (from ``start`` or a level advance) when level data is
    broken.
    """

    def __init__(
        self,
        pack: LevelPack,
        *,
        bus: Optional[EventBus] = None,
        settings: Optional[Settings] = None,
        resolver: Optional[MoveResolver] = None,
    ) -> None:
        self.pack = pack
        self.bus = bus or EventBus()
        self.settings = settings or Settings()
        self.resolver = resolver or MoveResolver()
        self.current_level_id: Optional[int] = None
        self.state = SessionState.IDLE
        self.cooldown_remaining: float = 0.0
        self._level: Optional[LevelDefinition] = None
        self._grid: Optional[TileGrid] = None
        self._player: Optional[PlayerState] = None
        self.markers = ArrowMarkers()

    # ------------------------ Accessors ------------------------
    @property
    def started(self) -> bool:
        return self._player is not None

    @property
    def level(self) -> LevelDefinition:
        self._require_started()
        return self._level  # type: ignore[return-value]

    @property
    def grid(self) -> TileGrid:
        self._require_started()
        return self._grid  # type: ignore[return-value]

    @property
    def player(self) -> PlayerState:
        self._require_started()
        return self._player  # type: ignore[return-value]

    @property
    def finished(self) -> bool:
        return self.state is SessionState.FINISHED

    def _require_started(self) -> None:
        if self._player is None:
            raise RuntimeError("GameSession.start() has not been called")

    # ------------------------ Lifecycle ------------------------
    def start(self, level_id: Optional[int] = None) -> None:
        """Enter ``level_id`` (default: the pack's first level)."""
        self._load_level(self.pack.first_id if level_id is None else level_id)

    def _load_level(self, level_id: int) -> None:
        level = self.pack.get(level_id)
        grid = level.build_grid()
        start = grid.start_position()
        markers = ArrowMarkers()
        for pos, key in level.pickups.items():
            markers.place(pos, key)

        self._level = level
        self._grid = grid
        self.markers = markers
        self._player = PlayerState(position=start, inventory=Inventory(level.starting_keys))
        self.current_level_id = level_id
        self.state = SessionState.IDLE
        self.cooldown_remaining = 0.0
        logger.info("Entered %s (id=%s) at %s", level.label, level_id, start.as_tuple())

        self.bus.emit(events.LEVEL_LOADED, level_id=level_id, start=start, keys=self._player.inventory.as_set())
        for pos, key in markers:
            self.bus.emit(events.ARROW_PLACED, pos=pos, direction=key)

    # ------------------------ Ticking ------------------------
    def select_direction(self, pressed: Iterable[Direction]) -> Optional[Direction]:
        """First pressed key in priority order that the player holds."""
        pressed = set(pressed)
        inventory = self.player.inventory
        for direction in PRIORITY:
            if direction in pressed and direction in inventory:
                return direction
        return None

    def update(self, dt: float, pressed: Iterable[Direction] = ()) -> StepResult:
        """Advance one tick of ``dt`` seconds with the keys pressed this tick."""
        self._require_started()
        if self.state is SessionState.FINISHED:
            return _NOTHING
        if self.state is SessionState.MOVING:
            self.cooldown_remaining -= dt
            if self.cooldown_remaining > 0:
                return _NOTHING
            self._settle()
        direction = self.select_direction(pressed)
        if direction is None:
            return _NOTHING
        return self._step(direction)

    def move(self, direction: Direction) -> StepResult:
        """Attempt a single move right now, outside of tick timing.

        Still ignored while the previous move settles or when ``direction``
        is not held.
        """
        self._require_started()
        if self.state is not SessionState.IDLE or direction not in self.player.inventory:
            logger.debug("Ignoring %s (state=%s)", direction.name, self.state.name)
            return _NOTHING
        return self._step(direction)

    def _settle(self) -> None:
        self.state = SessionState.IDLE
        self.cooldown_remaining = 0.0
        self.player.is_moving = False

    def _step(self, direction: Direction) -> StepResult:
        player = self.player
        origin = player.position
        try:
            outcome = self.resolver.resolve(
                origin, direction, self.grid, player.inventory, self.markers, self.current_level_id  # type: ignore[arg-type]
            )
        except TileMarkerError as exc:
            logger.error("Refusing move %s from %s: %s", direction.name, origin.as_tuple(), exc)
            return StepResult(direction=direction, error=exc)

        if outcome.dropped is not None:
            if outcome.key_lost:
                self.bus.emit(events.KEY_DISABLED, direction=outcome.dropped)
            self.bus.emit(events.ARROW_PLACED, pos=origin, direction=outcome.dropped)
        if outcome.picked_up is not None:
            if outcome.key_gained:
                self.bus.emit(events.KEY_ENABLED, direction=outcome.picked_up)
            self.bus.emit(events.ARROW_REMOVED, pos=origin)

        if not outcome.moved:
            return StepResult(direction=direction, outcome=outcome)

        player.position = outcome.new_position
        self.bus.emit(events.POSITION_CHANGED, pos=outcome.new_position)

        if outcome.level_complete:
            return self._advance(direction, outcome)

        if self.settings.move_cooldown > 0:
            self.state = SessionState.MOVING
            self.cooldown_remaining = self.settings.move_cooldown
            player.is_moving = True
        return StepResult(direction=direction, outcome=outcome)

    def _advance(self, direction: Direction, outcome: ResolveOutcome) -> StepResult:
        next_id = self.pack.next_id(self.current_level_id)  # type: ignore[arg-type]
        if next_id is None:
            logger.info("Completed final level %s", self.current_level_id)
            self.state = SessionState.FINISHED
            self.cooldown_remaining = 0.0
            self.player.is_moving = False
            self.bus.emit(events.GAME_COMPLETE)
            return StepResult(direction=direction, outcome=outcome, finished=True)

        logger.info("Level %s complete; advancing to %s", self.current_level_id, next_id)
        self.bus.emit(events.LEVEL_ADVANCE, level_id=next_id)
        self._load_level(next_id)
        return StepResult(direction=direction, outcome=outcome, advanced_to=next_id)

    # ------------------------ Debugging ------------------------
    def snapshot(self) -> Dict[str, Any]:
        player = self.player
        return {
            "level_id": self.current_level_id,
            "state": self.state.name,
            "cooldown_remaining": self.cooldown_remaining,
            "position": player.position.as_tuple(),
            "keys": [d.name for d in player.inventory],
            "arrows": {pos.as_tuple(): d.name for pos, d in self.markers},
            "map": self.grid.to_lines(),
        }


__all__ = ["GameSession", "PlayerState", "SessionState", "StepResult"]
