from __future__ import annotations

from keydrop.engine.loop import GameLoop, LoopConfig, ScriptedInput
from keydrop.levels.loader import parse_level_pack
from keydrop.map.grid import Position
from keydrop.map.tiles import Direction
from keydrop.session import GameSession
from keydrop.settings import Settings

PACK = {
    "levels": [
        {"map": ["#####", "#S.E#", "#####"], "goal": ["up", "down", "left", "right"]},
        {"map": ["#####", "#S.E#", "#####"], "goal": ["up", "down", "left", "right"]},
    ]
}


def make_session(cooldown: float = 0.0) -> GameSession:
    return GameSession(parse_level_pack(PACK), settings=Settings(move_cooldown=cooldown))


def test_scripted_input_polls_one_entry_per_tick():
    source = ScriptedInput([Direction.UP, None, [Direction.LEFT, Direction.DOWN]])
    assert source.poll() == frozenset({Direction.UP})
    assert source.poll() == frozenset()
    assert source.poll() == frozenset({Direction.LEFT, Direction.DOWN})
    assert source.exhausted
    assert source.poll() == frozenset()


def test_spaced_script_inserts_idle_ticks():
    source = ScriptedInput.spaced([Direction.UP, Direction.DOWN], gap=2)
    polled = [source.poll() for _ in range(6)]
    assert polled == [
        frozenset({Direction.UP}),
        frozenset(),
        frozenset(),
        frozenset({Direction.DOWN}),
        frozenset(),
        frozenset(),
    ]


def test_loop_runs_exact_steps():
    loop = GameLoop(make_session(), ScriptedInput([]), LoopConfig(tick_rate=0, max_steps=5))
    loop.run()
    assert loop.step == 5
    assert loop.running is False
    assert loop.session.started


def test_update_ignored_until_started():
    loop = GameLoop(make_session(), ScriptedInput([Direction.RIGHT]))
    assert loop.update(0.016) is None
    assert loop.step == 0


def test_loop_stops_when_session_finishes():
    script = [Direction.RIGHT, Direction.RIGHT, Direction.RIGHT, Direction.RIGHT, Direction.LEFT]
    loop = GameLoop(make_session(), ScriptedInput(script), LoopConfig(tick_rate=0, max_steps=100))
    loop.run()
    assert loop.session.finished
    assert loop.step == 4
    assert [r.advanced_to for r in loop.results] == [None, 1, None, None]


def test_cooldown_swallows_input_between_moves():
    # 0.05s cooldown at 1/60s per tick: the second RIGHT lands inside it
    session = make_session(cooldown=0.05)
    script = [Direction.RIGHT, Direction.RIGHT, None, None, None, None]
    loop = GameLoop(session, ScriptedInput(script), LoopConfig(tick_rate=0, max_steps=len(script)))
    loop.run()
    assert session.player.position == Position(2, 1)
    assert len(loop.results) == 1


def test_loop_config_takes_tick_rate_from_settings():
    config = LoopConfig.from_settings(Settings(tick_rate=30.0), max_steps=7)
    assert config.tick_rate == 30.0
    assert config.fixed_dt == 1.0 / 30.0
    assert config.max_steps == 7


def test_unthrottled_config_keeps_settings_tick_as_dt():
    config = LoopConfig.from_settings(Settings(tick_rate=20.0), throttled=False)
    assert config.tick_rate == 0.0
    assert config.fixed_dt == 1.0 / 20.0

    config = LoopConfig.from_settings(Settings(tick_rate=0.0), fixed_dt=0.5)
    assert config.tick_rate == 0.0
    assert config.fixed_dt == 0.5


def test_session_clock_follows_settings_tick():
    settings = Settings(move_cooldown=0.5, tick_rate=4.0)
    session = GameSession(parse_level_pack(PACK), settings=settings)
    config = LoopConfig.from_settings(settings, throttled=False, max_steps=2)
    loop = GameLoop(session, ScriptedInput([Direction.RIGHT, Direction.RIGHT]), config)
    loop.run()
    # The second press lands 0.25s into the 0.5s cooldown
    assert session.player.position == Position(2, 1)
    assert session.cooldown_remaining == 0.25
