from __future__ import annotations

import argparse
import json
import logging
import math
import sys
from typing import Any, List, Optional

from . import __version__
from .engine.loop import GameLoop, LoopConfig, ScriptedInput
from .events.bus import EventBus
from .exceptions import ConfigError
from .levels.loader import LevelPack, load_level_pack
from .logging_config import configure_logging
from .map.grid import Position
from .map.tiles import Direction
from .session import GameSession
from .settings import Settings

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG = 2


def _parse_moves(text: str) -> List[Direction]:
    return [Direction.parse(token) for token in text.split(",") if token.strip()]


def _plain(value: Any) -> Any:
    if isinstance(value, Position):
        return value.as_tuple()
    if isinstance(value, Direction):
        return value.name
    if isinstance(value, (set, frozenset)):
        return sorted(_plain(v) for v in value)
    return value


def _load(settings: Settings, path: Optional[str]) -> LevelPack:
    return load_level_pack(path or settings.levels_file)


def _cmd_check(args: argparse.Namespace, settings: Settings) -> int:
    pack = _load(settings, args.levels)
    for level in pack:
        grid = level.build_grid()
        print(
            f"{level.level_id:>3}  {level.label:<24} {grid.width}x{grid.height}  "
            f"goal={level.goal.names()}  start={grid.start_position().as_tuple()}"
        )
    print(f"{len(pack)} level(s) OK")
    return EXIT_OK


def _cmd_replay(args: argparse.Namespace, settings: Settings) -> int:
    pack = _load(settings, args.levels)
    moves = _parse_moves(args.moves)

    bus = EventBus()

    def _echo(event: str, **payload: Any) -> None:
        if args.events:
            print(event, {k: _plain(v) for k, v in payload.items()})

    bus.subscribe_all(_echo)

    session = GameSession(pack, bus=bus, settings=settings)
    session.start(args.level)
    config = LoopConfig.from_settings(settings, throttled=args.realtime, fixed_dt=args.dt)
    tick = 1.0 / config.tick_rate if config.tick_rate > 0 else config.fixed_dt
    gap = math.ceil(settings.move_cooldown / tick) if tick > 0 else 0
    config.max_steps = len(moves) * (gap + 1) + 1
    loop = GameLoop(session, ScriptedInput.spaced(moves, gap), config)
    loop.run()

    snapshot = session.snapshot()
    snapshot["finished"] = session.finished
    snapshot["arrows"] = {f"{x},{y}": d for (x, y), d in snapshot["arrows"].items()}
    print(json.dumps(snapshot, indent=2, sort_keys=True))
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="keydrop",
        description="Headless runner for the keydrop tile puzzle engine",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--settings", default=None, help="Path to a settings TOML file")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity (-v, -vv)")
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Validate a level pack and print a summary")
    check.add_argument("levels", nargs="?", default=None, help="Level pack YAML (default: bundled pack)")
    check.set_defaults(func=_cmd_check)

    replay = sub.add_parser("replay", help="Replay a comma-separated move list, e.g. right,right,up")
    replay.add_argument("moves", help="Moves to replay")
    replay.add_argument("--levels", default=None, help="Level pack YAML (default: bundled pack)")
    replay.add_argument("--level", type=int, default=None, help="Level id to start on")
    replay.add_argument("--dt", type=float, default=None, help="Simulated seconds per tick (default: 1/tick_rate)")
    replay.add_argument("--realtime", action="store_true", help="Throttle ticks to the tick_rate setting")
    replay.add_argument("--events", action="store_true", help="Print engine events as they happen")
    replay.set_defaults(func=_cmd_replay)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_sources(file_path=args.settings)
    level_name = {0: settings.log_level, 1: "INFO"}.get(args.verbose, "DEBUG")
    configure_logging(level_name=level_name)

    try:
        return args.func(args, settings)
    except ConfigError as exc:
        logger.error("Level data error: %s", exc)
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_CONFIG


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
