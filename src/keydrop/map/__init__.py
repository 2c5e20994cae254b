from .grid import Cell, Position, TileGrid
from .tiles import DEFAULT_LEGEND, PRIORITY, Direction, TileKind

__all__ = [
    "Cell",
    "Position",
    "TileGrid",
    "Direction",
    "PRIORITY",
    "TileKind",
    "DEFAULT_LEGEND",
]
