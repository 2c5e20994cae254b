import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from keydrop.events.bus import EventBus  # noqa: E402
from keydrop.levels.goal import LevelGoal  # noqa: E402
from keydrop.map.grid import TileGrid  # noqa: E402
from keydrop.movement.markers import ArrowMarkers  # noqa: E402


class EventRecorder:
    """Collects (event, payload) pairs from every engine channel."""

    def __init__(self, bus: EventBus) -> None:
        self.events = []
        bus.subscribe_all(self)

    def __call__(self, event, **payload):
        self.events.append((event, payload))

    def names(self):
        return [name for name, _ in self.events]

    def of(self, event):
        return [payload for name, payload in self.events if name == event]


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def recorder(bus):
    return EventRecorder(bus)


@pytest.fixture
def markers():
    return ArrowMarkers()


@pytest.fixture
def make_grid():
    """Build a grid from ASCII rows with the goal for level 0 registered."""

    def _make(lines, goal=(), bindings=None, level_id=0):
        grid = TileGrid.from_lines(lines, bindings=bindings)
        grid.set_end_requirement(level_id, LevelGoal.from_values(goal))
        return grid

    return _make
