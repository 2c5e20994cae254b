from __future__ import annotations

import logging
from typing import FrozenSet, Iterable, Iterator, Optional, Set

from .map.tiles import PRIORITY, Direction

logger = logging.getLogger(__name__)


class Inventory:
    """The set of direction keys the player currently holds.

    A key is either held or not; ``add`` and ``remove`` are idempotent and
    report whether they changed anything so callers can decide whether to
    notify listeners.
    """

    __slots__ = ("_keys",)

    def __init__(self, keys: Optional[Iterable[Direction]] = None) -> None:
        self._keys: Set[Direction] = set(keys or ())

    @classmethod
    def full(cls) -> "Inventory":
        return cls(PRIORITY)

    def contains(self, key: Direction) -> bool:
        return key in self._keys

    def add(self, key: Direction) -> bool:
        if key in self._keys:
            return False
        self._keys.add(key)
        logger.debug("Key %s enabled", key.name)
        return True

    def remove(self, key: Direction) -> bool:
        if key not in self._keys:
            return False
        self._keys.discard(key)
        logger.debug("Key %s disabled", key.name)
        return True

    def as_set(self) -> FrozenSet[Direction]:
        return frozenset(self._keys)

    def copy(self) -> "Inventory":
        return Inventory(self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __iter__(self) -> Iterator[Direction]:
        return (d for d in PRIORITY if d in self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Inventory):
            return self._keys == other._keys
        return NotImplemented

    def __repr__(self) -> str:
        return f"Inventory({[d.name for d in self]})"


__all__ = ["Inventory"]
