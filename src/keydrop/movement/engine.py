from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from ..exceptions import TileMarkerError
from ..inventory import Inventory
from ..levels.goal import LevelCompletionChecker, LevelGoal
from ..map.grid import Position, TileGrid
from ..map.tiles import Direction, TileKind
from .markers import ArrowMarkers

logger = logging.getLogger(__name__)

# A slide tile carries the player at most this many cells.
SLIDE_REACH = 2


@dataclass(frozen=True)
class ResolveOutcome:
    """Result of resolving one directional move.

    Attributes:
        new_position: Where the player ends up.
        delta: Offset applied; (0, 0) means the move was absorbed.
        level_complete: The player stepped onto the End tile holding exactly
            the required keys.
        reached_end: The player stepped onto the End tile at all.
        dropped: Key stored in the Drop tile that was left, if any.
        picked_up: Key taken back from the PickUp tile that was left, if any.
        key_lost: The drop took a key the player was holding.
        key_gained: The pickup handed back a key the player did not hold.
    """

    new_position: Position
    delta: Tuple[int, int] = (0, 0)
    level_complete: bool = False
    reached_end: bool = False
    dropped: Optional[Direction] = None
    picked_up: Optional[Direction] = None
    key_lost: bool = False
    key_gained: bool = False

    @property
    def moved(self) -> bool:
        return self.delta != (0, 0)


class MoveResolver:
    """Resolves a single directional move on a tile grid.

    Two phases run in order:

    1. The tile being left may exchange a key: leaving a Drop tile stores the
       attempted direction in it (and takes that key from the player); leaving
       a PickUp tile returns its key to the player.
    2. The tile in front decides the step: walls absorb the move, slides carry
       the player two cells unless a wall sits right behind them, the End tile
       is entered and checked against the level goal.

    Everything that can fail is checked before anything is mutated, so an
    error leaves grid, inventory and markers untouched.
    """

    def __init__(self, checker: Optional[LevelCompletionChecker] = None) -> None:
        self.checker = checker or LevelCompletionChecker()

    def resolve(
        self,
        position: Position,
        direction: Direction,
        grid: TileGrid,
        inventory: Inventory,
        markers: ArrowMarkers,
        level_id: int,
    ) -> ResolveOutcome:
        """Resolve ``direction`` from ``position``, mutating state in place.

        Raises:
            TileMarkerError: leaving a PickUp tile that has no arrow marker or
                no bound key.
            ConfigError: stepping onto an End tile whose level has no goal.
        """
        leaving = grid.kind_at(position)
        ahead = position.offset(direction)
        ahead_kind = grid.kind_at(ahead)

        pickup_key: Optional[Direction] = None
        if leaving is TileKind.PICKUP:
            pickup_key = grid.bound_key_at(position)
            if pickup_key is None:
                raise TileMarkerError(f"Pickup tile at {position.as_tuple()} holds no key")
            if position not in markers:
                raise TileMarkerError(f"Pickup tile at {position.as_tuple()} has no arrow marker")

        goal: Optional[LevelGoal] = None
        if ahead_kind is TileKind.END:
            goal = grid.end_requirement(level_id)

        dropped: Optional[Direction] = None
        key_lost = key_gained = False
        if leaving is TileKind.DROP:
            # The attempted direction is dropped whether or not it was held.
            key_lost = inventory.remove(direction)
            grid.set_drop(position, direction)
            markers.place(position, direction)
            dropped = direction
            logger.debug("Dropped %s at %s", direction.name, position.as_tuple())
        elif pickup_key is not None:
            key_gained = inventory.add(pickup_key)
            grid.clear_pickup(position)
            markers.remove(position)
            logger.debug("Picked up %s at %s", pickup_key.name, position.as_tuple())

        delta = self._step_delta(position, direction, grid)
        new_position = position + delta

        level_complete = False
        if goal is not None:
            level_complete = self.checker.is_satisfied(goal, inventory)
            logger.info(
                "Reached end tile at %s on level %s (complete=%s)", ahead.as_tuple(), level_id, level_complete
            )

        if delta == (0, 0):
            logger.debug("Move %s from %s blocked by %s", direction.name, position.as_tuple(), ahead_kind.name)
        else:
            logger.debug("Move %s: %s -> %s", direction.name, position.as_tuple(), new_position.as_tuple())

        return ResolveOutcome(
            new_position=new_position,
            delta=delta,
            level_complete=level_complete,
            reached_end=goal is not None,
            dropped=dropped,
            picked_up=pickup_key,
            key_lost=key_lost,
            key_gained=key_gained,
        )

    @staticmethod
    def _step_delta(position: Position, direction: Direction, grid: TileGrid) -> Tuple[int, int]:
        dx, dy = direction.vector
        ahead_kind = grid.kind_at(position.offset(direction))
        if ahead_kind is TileKind.WALL:
            return 0, 0
        if ahead_kind is TileKind.SLIDE:
            # Only the cell right behind the slide is inspected; slides never chain.
            if grid.kind_at(position.offset(direction, SLIDE_REACH)) is TileKind.WALL:
                return dx, dy
            return dx * SLIDE_REACH, dy * SLIDE_REACH
        return dx, dy


__all__ = ["MoveResolver", "ResolveOutcome", "SLIDE_REACH"]
