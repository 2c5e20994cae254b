from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Union

from ..inventory import Inventory
from ..map.tiles import PRIORITY, Direction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LevelGoal:
    """Exact set of keys that must be held on the End tile to finish a level."""

    keys: FrozenSet[Direction] = frozenset()

    @classmethod
    def from_values(cls, values: Iterable[Union[Direction, int, str]]) -> "LevelGoal":
        """Build a goal from level metadata.

        Raises:
            ConfigError: if any entry is not a valid direction. Invalid
                entries are never silently dropped.
        """
        return cls(frozenset(Direction.parse(v) for v in values))

    def names(self) -> list[str]:
        return [d.name for d in PRIORITY if d in self.keys]


class LevelCompletionChecker:
    """Decides whether the held keys complete a level."""

    @staticmethod
    def is_satisfied(required: LevelGoal, held: Inventory) -> bool:
        """True iff ``held`` equals ``required`` exactly; extra keys fail."""
        satisfied = held.as_set() == required.keys
        logger.debug(
            "End check: required=%s held=%s -> %s",
            required.names(),
            [d.name for d in held],
            satisfied,
        )
        return satisfied


__all__ = ["LevelGoal", "LevelCompletionChecker"]
