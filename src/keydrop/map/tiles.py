from __future__ import annotations

from enum import Enum
from typing import Dict, Tuple, Union

from ..exceptions import ConfigError


class Direction(Enum):
    """A direction key the player can hold, drop and pick up.

    Integer values follow the level data encoding (UP=1 .. RIGHT=4). There is
    deliberately no "none" member: absence of a move is ``None``.
    """

    UP = 1
    DOWN = 2
    LEFT = 3
    RIGHT = 4

    @property
    def vector(self) -> Tuple[int, int]:
        return _VECTORS[self]

    @classmethod
    def parse(cls, value: Union["Direction", int, str]) -> "Direction":
        """Coerce an enum member, integer code or name into a Direction.

        Raises:
            ConfigError: if the value is outside the Direction domain.
        """
        if isinstance(value, Direction):
            return value
        # bool is an int subclass; True would silently map to UP
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                raise ConfigError(f"Invalid direction code: {value!r}") from None
        if isinstance(value, str):
            member = cls.__members__.get(value.strip().upper())
            if member is not None:
                return member
        raise ConfigError(f"Invalid direction: {value!r}")


_VECTORS: Dict[Direction, Tuple[int, int]] = {
    Direction.UP: (0, -1),
    Direction.DOWN: (0, 1),
    Direction.LEFT: (-1, 0),
    Direction.RIGHT: (1, 0),
}

# Input polling order; the first pressed and held key wins a tick.
PRIORITY: Tuple[Direction, ...] = (Direction.UP, Direction.DOWN, Direction.LEFT, Direction.RIGHT)


class TileKind(Enum):
    """Tile identity, numbered like the map's id layer."""

    EMPTY = 0
    WALL = 1
    SLIDE = 2
    DROP = 3
    PICKUP = 4
    PORTAL = 5
    START = 6
    END = 7


# Tiles that can carry a bound direction key.
KEYED_TILES = frozenset({TileKind.DROP, TileKind.PICKUP})

DEFAULT_LEGEND: Dict[str, TileKind] = {
    ".": TileKind.EMPTY,
    "#": TileKind.WALL,
    "~": TileKind.SLIDE,
    "D": TileKind.DROP,
    "P": TileKind.PICKUP,
    "O": TileKind.PORTAL,
    "S": TileKind.START,
    "E": TileKind.END,
}

REVERSE_LEGEND: Dict[TileKind, str] = {kind: ch for ch, kind in DEFAULT_LEGEND.items()}


__all__ = [
    "Direction",
    "PRIORITY",
    "TileKind",
    "KEYED_TILES",
    "DEFAULT_LEGEND",
    "REVERSE_LEGEND",
]
