from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from ..exceptions import ConfigError, TileStateError
from .tiles import DEFAULT_LEGEND, KEYED_TILES, REVERSE_LEGEND, Direction, TileKind

logger = logging.getLogger(__name__)

if TYPE_CHECKING:  # pragma: no cover
    from ..levels.goal import LevelGoal


@dataclass(frozen=True)
class Position:
    x: int
    y: int

    def offset(self, direction: Direction, steps: int = 1) -> "Position":
        dx, dy = direction.vector
        return Position(self.x + dx * steps, self.y + dy * steps)

    def __add__(self, other: Tuple[int, int]) -> "Position":
        dx, dy = other
        return Position(self.x + dx, self.y + dy)

    def as_tuple(self) -> Tuple[int, int]:
        return self.x, self.y


@dataclass(frozen=True)
class Cell:
    kind: TileKind = TileKind.EMPTY
    bound_key: Optional[Direction] = None


_OUTSIDE = Cell()


class TileGrid:
    """A bounds-safe 2D grid of typed puzzle tiles.

    Reads never fail: any coordinate outside the grid is an EMPTY tile with no
    bound key. Writes are restricted to the two drop/pickup mutations the
    movement rules need, and raise TileStateError when aimed at the wrong kind
    of tile so level-data bugs surface immediately.
    """

    __slots__ = ("_w", "_h", "_cells", "_goals")

    def __init__(self, width: int, height: int, default_kind: TileKind = TileKind.EMPTY) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("TileGrid dimensions must be positive")
        self._w = int(width)
        self._h = int(height)
        # cells[y][x]
        self._cells: List[List[Cell]] = [[Cell(default_kind) for _ in range(self._w)] for _ in range(self._h)]
        self._goals: Dict[int, "LevelGoal"] = {}
        logger.debug("Initialized TileGrid %dx%d with default tile %s", self._w, self._h, default_kind.name)

    @property
    def width(self) -> int:
        return self._w

    @property
    def height(self) -> int:
        return self._h

    def is_within(self, pos: Position) -> bool:
        return 0 <= pos.x < self._w and 0 <= pos.y < self._h

    def cell_at(self, pos: Position) -> Cell:
        if not self.is_within(pos):
            return _OUTSIDE
        return self._cells[pos.y][pos.x]

    def kind_at(self, pos: Position) -> TileKind:
        """Return the tile kind at ``pos``; EMPTY when out of bounds."""
        return self.cell_at(pos).kind

    def bound_key_at(self, pos: Position) -> Optional[Direction]:
        """Return the key bound to a Drop/PickUp tile, else None."""
        cell = self.cell_at(pos)
        if cell.kind not in KEYED_TILES:
            return None
        return cell.bound_key

    def place(self, pos: Position, kind: TileKind, bound_key: Optional[Direction] = None) -> None:
        """Author a tile. Used while building levels, not during play.

        Raises IndexError if out of bounds to signal incorrect map authoring.
        """
        if not isinstance(kind, TileKind):
            raise TypeError("kind must be a TileKind enum member")
        if not self.is_within(pos):
            raise IndexError(f"Coordinates out of bounds: ({pos.x}, {pos.y}) for grid {self._w}x{self._h}")
        if bound_key is not None and kind not in KEYED_TILES:
            raise ValueError(f"Only drop/pickup tiles can carry a key, got {kind.name}")
        self._cells[pos.y][pos.x] = Cell(kind, bound_key)

    def set_drop(self, pos: Position, key: Direction) -> None:
        """Store ``key`` in the Drop tile at ``pos``.

        The tile turns into a PickUp tile holding the key, so leaving it again
        later hands the key back.
        """
        kind = self.kind_at(pos)
        if kind is not TileKind.DROP:
            raise TileStateError(f"set_drop at {pos.as_tuple()} expects a DROP tile, found {kind.name}")
        self._cells[pos.y][pos.x] = Cell(TileKind.PICKUP, key)
        logger.debug("Tile %s now holds %s", pos.as_tuple(), key.name)

    def clear_pickup(self, pos: Position) -> None:
        """Empty the PickUp tile at ``pos``; it becomes a plain Drop tile again."""
        kind = self.kind_at(pos)
        if kind is not TileKind.PICKUP:
            raise TileStateError(f"clear_pickup at {pos.as_tuple()} expects a PICKUP tile, found {kind.name}")
        self._cells[pos.y][pos.x] = Cell(TileKind.DROP)
        logger.debug("Tile %s emptied", pos.as_tuple())

    def start_position(self) -> Position:
        """Return the unique START cell.

        Raises:
            ConfigError: if the grid has no START tile or more than one.
        """
        starts = [pos for pos, cell in self.cells() if cell.kind is TileKind.START]
        if not starts:
            raise ConfigError("Level has no start tile")
        if len(starts) > 1:
            coords = ", ".join(str(p.as_tuple()) for p in starts)
            raise ConfigError(f"Level has {len(starts)} start tiles: {coords}")
        return starts[0]

    def set_end_requirement(self, level_id: int, goal: "LevelGoal") -> None:
        self._goals[level_id] = goal

    def end_requirement(self, level_id: int) -> "LevelGoal":
        """Return the key set the End tile of ``level_id`` requires."""
        try:
            return self._goals[level_id]
        except KeyError:
            raise ConfigError(f"No end goal registered for level {level_id}") from None

    def cells(self) -> Iterator[Tuple[Position, Cell]]:
        """Yield every (position, cell) pair in row-major order."""
        for y, row in enumerate(self._cells):
            for x, cell in enumerate(row):
                yield Position(x, y), cell

    def copy(self) -> "TileGrid":
        clone = TileGrid(self._w, self._h)
        clone._cells = [list(row) for row in self._cells]
        clone._goals = dict(self._goals)
        return clone

    def describe(self, pos: Position) -> str:
        """One-line debug description of a cell."""
        cell = self.cell_at(pos)
        key = cell.bound_key.name if cell.bound_key is not None else "-"
        return f"Cell{pos.as_tuple()}: {cell.kind.name} key={key}"

    @classmethod
    def from_lines(
        cls,
        lines: Sequence[str],
        legend: Optional[Mapping[str, TileKind]] = None,
        bindings: Optional[Mapping[Position, Direction]] = None,
    ) -> "TileGrid":
        """Create a TileGrid from an ASCII representation.

        Args:
            lines: Each string is a row. All rows must have the same length.
            legend: Optional mapping of characters to TileKind members.
                Defaults to ``DEFAULT_LEGEND``.
            bindings: Keys bound to authored PickUp tiles.

        Raises:
            ConfigError: on ragged rows, unknown characters or bindings that
                do not sit on a PickUp tile.
        """
        if not lines:
            raise ConfigError("Map must have at least one row")
        width = len(lines[0])
        if width == 0:
            raise ConfigError("Map rows must not be empty")
        for i, row in enumerate(lines):
            if len(row) != width:
                raise ConfigError(f"All rows must have equal width; row 0 has {width}, row {i} has {len(row)}")

        legend = legend or DEFAULT_LEGEND
        bindings = dict(bindings or {})

        grid = cls(width, len(lines))
        for y, row in enumerate(lines):
            for x, ch in enumerate(row):
                kind = legend.get(ch)
                if kind is None:
                    raise ConfigError(f"Unknown tile character {ch!r} at ({x}, {y})")
                pos = Position(x, y)
                key = bindings.pop(pos, None)
                if kind is TileKind.PICKUP and key is None:
                    raise ConfigError(f"Pickup tile at ({x}, {y}) has no key binding")
                if key is not None and kind is not TileKind.PICKUP:
                    raise ConfigError(f"Key binding at ({x}, {y}) is on a {kind.name} tile, expected PICKUP")
                grid.place(pos, kind, key)
        if bindings:
            stray = ", ".join(str(p.as_tuple()) for p in bindings)
            raise ConfigError(f"Key bindings outside the map: {stray}")
        return grid

    def to_lines(self, reverse_legend: Optional[Mapping[TileKind, str]] = None) -> List[str]:
        """Convert the grid to an ASCII representation (for debugging/testing)."""
        reverse_legend = reverse_legend or REVERSE_LEGEND
        return ["".join(reverse_legend.get(cell.kind, "?") for cell in row) for row in self._cells]

    def __repr__(self) -> str:
        return f"TileGrid(width={self._w}, height={self._h})"


__all__ = ["Cell", "Position", "TileGrid"]
