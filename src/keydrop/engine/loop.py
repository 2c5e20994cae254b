from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Protocol, Sequence

from ..map.tiles import Direction
from ..session import GameSession, StepResult
from ..settings import Settings

logger = logging.getLogger(__name__)


class InputSource(Protocol):
    """Supplies the direction keys pressed since the previous tick."""

    def poll(self) -> FrozenSet[Direction]: ...


class ScriptedInput:
    """Replays a fixed input script, one entry per tick.

    Each entry is a single direction, an iterable of directions pressed on the
    same tick, or None for a tick with no input. Once exhausted it reports
    nothing pressed.
    """

    def __init__(self, script: Sequence[Optional[Direction | Iterable[Direction]]]) -> None:
        self._script = list(script)
        self._cursor = 0

    @classmethod
    def spaced(cls, moves: Iterable[Direction], gap: int) -> "ScriptedInput":
        """One move per entry, each followed by ``gap`` idle ticks."""
        script: List[Optional[Direction]] = []
        for move in moves:
            script.append(move)
            script.extend([None] * max(0, gap))
        return cls(script)

    @property
    def exhausted(self) -> bool:
        return self._cursor >= len(self._script)

    def poll(self) -> FrozenSet[Direction]:
        if self.exhausted:
            return frozenset()
        entry = self._script[self._cursor]
        self._cursor += 1
        if entry is None:
            return frozenset()
        if isinstance(entry, Direction):
            return frozenset({entry})
        return frozenset(entry)


@dataclass
class LoopConfig:
    """Configuration for the headless loop.

    Attributes:
        tick_rate: Target updates per second. If 0, updates as fast as possible
            and advances the session clock by ``fixed_dt`` per tick.
        max_steps: If provided and > 0, the loop stops after this many updates.
        fixed_dt: Simulated seconds per tick when running unthrottled.
    """

    tick_rate: float = 60.0
    max_steps: Optional[int] = None
    fixed_dt: float = 1.0 / 60.0

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        throttled: bool = True,
        max_steps: Optional[int] = None,
        fixed_dt: Optional[float] = None,
    ) -> "LoopConfig":
        """Loop config for ``settings``; ``throttled=False`` ignores tick_rate.

        ``fixed_dt`` defaults to one tick at the configured rate.
        """
        if fixed_dt is None:
            fixed_dt = 1.0 / settings.tick_rate if settings.tick_rate > 0 else cls.fixed_dt
        return cls(
            tick_rate=settings.tick_rate if throttled else 0.0,
            max_steps=max_steps,
            fixed_dt=fixed_dt,
        )


class GameLoop:
    """Drives a GameSession from an InputSource, one poll per tick.

    Kept free of any rendering backend so it can run headless (CLI replays,
    tests) or be stepped by a GUI framework calling ``update`` each frame.
    """

    def __init__(self, session: GameSession, source: InputSource, config: Optional[LoopConfig] = None) -> None:
        self.session = session
        self.source = source
        self.config = config or LoopConfig()
        self.results: List[StepResult] = []
        self._running: bool = False
        self._step: int = 0
        self._last_time: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def step(self) -> int:
        return self._step

    def start(self) -> None:
        """Start the loop; starts the session too if needed.

        Safe to call multiple times; subsequent calls are no-ops.
        """
        if self._running:
            logger.debug("GameLoop.start() called while already running")
            return
        if not self.session.started:
            self.session.start()
        self._running = True
        self._step = 0
        self._last_time = time.perf_counter()
        logger.info("GameLoop started (tick_rate=%s, max_steps=%s)", self.config.tick_rate, self.config.max_steps)

    def stop(self) -> None:
        """Stop the loop gracefully."""
        if not self._running:
            return
        self._running = False
        logger.info("GameLoop stopped at step=%s", self._step)

    def update(self, dt: float) -> Optional[StepResult]:
        """Perform a single tick: poll input once and feed the session."""
        if not self._running:
            logger.debug("update() called while not running; ignored")
            return None
        self._step += 1
        result = self.session.update(dt, self.source.poll())
        if result.direction is not None:
            self.results.append(result)
        logger.debug("Tick #%d (dt=%.4f)", self._step, dt)

        if self.session.finished:
            self.stop()
        elif self.config.max_steps is not None and self._step >= self.config.max_steps:
            self.stop()
        return result

    def run(self) -> None:
        """Run a blocking loop until stopped, finished or max_steps reached.

        Throttles to tick_rate if configured.
        """
        self.start()
        target_dt = 0.0
        if self.config.tick_rate and self.config.tick_rate > 0:
            target_dt = 1.0 / float(self.config.tick_rate)

        while self._running:
            if target_dt > 0:
                now = time.perf_counter()
                dt = 0.0 if self._last_time is None else now - self._last_time
                self._last_time = now
            else:
                now = 0.0
                dt = self.config.fixed_dt

            self.update(dt)

            if target_dt > 0:
                remaining = target_dt - (time.perf_counter() - now)
                if remaining > 0:
                    time.sleep(remaining)

        logger.info("Loop complete (steps=%d)", self._step)


__all__ = ["GameLoop", "InputSource", "LoopConfig", "ScriptedInput"]
