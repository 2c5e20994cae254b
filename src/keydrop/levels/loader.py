from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from importlib import resources
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterator, List, Mapping, Optional, Sequence, Tuple

import yaml
from jsonschema import Draft202012Validator

from ..exceptions import ConfigError
from ..map.grid import Position, TileGrid
from ..map.tiles import PRIORITY, Direction, TileKind
from .goal import LevelGoal

logger = logging.getLogger(__name__)

_PKG = "keydrop.levels"
SCHEMA_RESOURCE = "levels.schema.json"
DEFAULT_PACK_RESOURCE = "default.yaml"


@lru_cache(maxsize=1)
def _load_schema() -> Dict[str, Any]:
    """Load the bundled level-pack JSON schema (cached, the schema is static)."""
    text = resources.files(_PKG).joinpath(SCHEMA_RESOURCE).read_text(encoding="utf-8")
    logger.debug("Loaded level schema resource %s", SCHEMA_RESOURCE)
    return json.loads(text)


def validate_pack_dict(doc: Any) -> None:
    """Validate a parsed level pack against the JSON schema.

    Raises:
        ConfigError: listing every schema violation found.
    """
    validator = Draft202012Validator(_load_schema())
    errors = sorted(validator.iter_errors(doc), key=lambda e: [str(p) for p in e.path])
    if not errors:
        return
    lines = []
    for err in errors:
        path = "/".join(str(p) for p in err.path) or "<root>"
        logger.error("Level schema validation error at %s: %s", path, err.message)
        lines.append(f" - at {path}: {err.message}")
    raise ConfigError("Level pack validation failed:\n" + "\n".join(lines))


@dataclass(frozen=True)
class LevelDefinition:
    """Static description of one level, as supplied by the level data.

    ``build_grid`` produces a fresh mutable grid every time, so a level that is
    re-entered starts from its authored state.
    """

    level_id: int
    lines: Tuple[str, ...]
    goal: LevelGoal
    name: str = ""
    starting_keys: FrozenSet[Direction] = frozenset(PRIORITY)
    # Read-only mapping; excluded from the hash
    pickups: Mapping[Position, Direction] = field(default_factory=dict, hash=False)
    start: Optional[Position] = None

    def build_grid(self) -> TileGrid:
        """Build the level's grid and register its end goal.

        Raises:
            ConfigError: on malformed maps, start tile problems or bad
                pickup bindings.
        """
        grid = TileGrid.from_lines(self.lines, bindings=self.pickups)
        found = grid.start_position()
        if self.start is not None and self.start != found:
            raise ConfigError(
                f"Level {self.level_id}: declared start {self.start.as_tuple()} is "
                f"{grid.kind_at(self.start).name}, the start tile is at {found.as_tuple()}"
            )
        grid.set_end_requirement(self.level_id, self.goal)
        return grid

    @property
    def label(self) -> str:
        return self.name or f"level {self.level_id}"


class LevelPack:
    """Ordered collection of levels played one after another."""

    def __init__(self, levels: Sequence[LevelDefinition]) -> None:
        if not levels:
            raise ConfigError("Level pack contains no levels")
        self._levels: List[LevelDefinition] = list(levels)
        self._index: Dict[int, int] = {}
        for i, level in enumerate(self._levels):
            if level.level_id in self._index:
                raise ConfigError(f"Duplicate level id {level.level_id}")
            self._index[level.level_id] = i

    @property
    def first_id(self) -> int:
        return self._levels[0].level_id

    def get(self, level_id: int) -> LevelDefinition:
        try:
            return self._levels[self._index[level_id]]
        except KeyError:
            raise ConfigError(f"Unknown level id {level_id}") from None

    def next_id(self, level_id: int) -> Optional[int]:
        """Id of the level after ``level_id``, or None after the last one."""
        i = self._index.get(level_id)
        if i is None:
            raise ConfigError(f"Unknown level id {level_id}")
        if i + 1 >= len(self._levels):
            return None
        return self._levels[i + 1].level_id

    def __iter__(self) -> Iterator[LevelDefinition]:
        return iter(self._levels)

    def __len__(self) -> int:
        return len(self._levels)

    def __repr__(self) -> str:
        return f"LevelPack(levels={[lvl.level_id for lvl in self._levels]})"


def _position(raw: Sequence[int]) -> Position:
    x, y = raw
    return Position(int(x), int(y))


def _parse_level(raw: Mapping[str, Any], index: int) -> LevelDefinition:
    level_id = int(raw.get("id", index))
    pickups: Dict[Position, Direction] = {}
    for entry in raw.get("pickups", []):
        pos = _position(entry["at"])
        if pos in pickups:
            raise ConfigError(f"Level {level_id}: duplicate pickup binding at {pos.as_tuple()}")
        pickups[pos] = Direction.parse(entry["key"])
    starting = raw.get("starting_keys")
    level = LevelDefinition(
        level_id=level_id,
        lines=tuple(raw["map"]),
        goal=LevelGoal.from_values(raw["goal"]),
        name=str(raw.get("name", "")),
        starting_keys=frozenset(PRIORITY) if starting is None else frozenset(Direction.parse(v) for v in starting),
        pickups=MappingProxyType(pickups),
        start=_position(raw["start"]) if "start" in raw else None,
    )
    # Surface map problems at load time rather than on level entry
    grid = level.build_grid()
    if not any(cell.kind is TileKind.END for _, cell in grid.cells()):
        logger.warning("Level %s has no end tile", level_id)
    return level


def parse_level_pack(doc: Any) -> LevelPack:
    """Build a LevelPack from already-parsed level data.

    Raises:
        ConfigError: if the data fails schema or semantic validation.
    """
    validate_pack_dict(doc)
    levels = []
    for i, raw in enumerate(doc["levels"]):
        try:
            levels.append(_parse_level(raw, i))
        except ConfigError as exc:
            raise ConfigError(f"Level #{i}: {exc}") from exc
    pack = LevelPack(levels)
    logger.info("Loaded %d levels", len(pack))
    return pack


def load_level_pack(path: Optional[str | os.PathLike] = None) -> LevelPack:
    """Load a level pack from YAML.

    If path is None, loads the embedded default pack at
    keydrop/levels/default.yaml.
    """
    if path is None:
        data = resources.files(_PKG).joinpath(DEFAULT_PACK_RESOURCE).read_text(encoding="utf-8")
        logger.debug("Loaded embedded level pack resource")
    else:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = f.read()
        except OSError as exc:
            raise ConfigError(f"Cannot read level pack {path}: {exc}") from exc
        logger.debug("Loaded level pack from path: %s", path)

    try:
        doc = yaml.safe_load(data)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Level pack is not valid YAML: {exc}") from exc
    return parse_level_pack(doc)


__all__ = [
    "LevelDefinition",
    "LevelPack",
    "load_level_pack",
    "parse_level_pack",
    "validate_pack_dict",
]
