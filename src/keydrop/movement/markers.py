from __future__ import annotations

import logging
from typing import Dict, Iterator, Optional, Tuple

from ..exceptions import TileMarkerError
from ..map.grid import Position
from ..map.tiles import Direction

logger = logging.getLogger(__name__)


class ArrowMarkers:
    """Arrow markers left on tiles where a key was dropped.

    This is the logical side of the arrow sprites a presentation layer draws;
    it only tracks which direction sits on which tile.
    """

    def __init__(self) -> None:
        self._arrows: Dict[Position, Direction] = {}

    def place(self, pos: Position, direction: Direction) -> None:
        if pos in self._arrows:
            logger.warning("Replacing arrow %s at %s with %s", self._arrows[pos].name, pos.as_tuple(), direction.name)
        self._arrows[pos] = direction

    def remove(self, pos: Position) -> Direction:
        try:
            return self._arrows.pop(pos)
        except KeyError:
            raise TileMarkerError(f"No arrow to remove at {pos.as_tuple()}") from None

    def get(self, pos: Position) -> Optional[Direction]:
        return self._arrows.get(pos)

    def __contains__(self, pos: object) -> bool:
        return pos in self._arrows

    def __iter__(self) -> Iterator[Tuple[Position, Direction]]:
        return iter(sorted(self._arrows.items(), key=lambda item: (item[0].y, item[0].x)))

    def __len__(self) -> int:
        return len(self._arrows)
