from .goal import LevelCompletionChecker, LevelGoal
from .loader import LevelDefinition, LevelPack, load_level_pack, parse_level_pack

__all__ = [
    "LevelGoal",
    "LevelCompletionChecker",
    "LevelDefinition",
    "LevelPack",
    "load_level_pack",
    "parse_level_pack",
]
