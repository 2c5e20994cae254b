from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import tomllib

logger = logging.getLogger(__name__)

ENV_PREFIX = "KD_"
SETTINGS_FILE_ENV = "KD_SETTINGS_FILE"


def _optional_path(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass
class Settings:
    """Runtime settings for the puzzle engine and its headless runner.

    Constructed from, in increasing precedence:
    - dataclass defaults
    - a TOML file (env KD_SETTINGS_FILE or configs/settings.toml if present)
    - environment variables (prefix: KD_)
    """

    # Seconds a move "settles" before the next input is accepted.
    move_cooldown: float = 0.2
    # Updates per second for the headless loop; 0 runs unthrottled.
    tick_rate: float = 60.0
    # Level pack to load; None uses the bundled default pack.
    levels_file: Optional[str] = None
    log_level: str = "WARNING"

    def validate(self) -> None:
        """Validate and normalize settings to safe values."""
        self.move_cooldown = float(self.move_cooldown)
        if self.move_cooldown < 0:
            logger.warning("Negative move_cooldown %s; clamping to 0", self.move_cooldown)
            self.move_cooldown = 0.0
        self.tick_rate = float(self.tick_rate)
        if self.tick_rate < 0:
            logger.warning("Negative tick_rate %s; running unthrottled", self.tick_rate)
            self.tick_rate = 0.0
        self.levels_file = _optional_path(self.levels_file)
        level = str(self.log_level).strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            logger.warning("Unknown log level %r; using WARNING", self.log_level)
            level = "WARNING"
        self.log_level = level

    def as_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Settings":
        allowed = {f.name for f in dataclasses.fields(cls)}
        filtered = {k: v for k, v in data.items() if k in allowed}
        ignored = set(data) - allowed
        if ignored:
            logger.warning("Ignoring unknown settings: %s", ", ".join(sorted(ignored)))
        obj = cls(**filtered)
        obj.validate()
        return obj

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        env = os.environ if env is None else env
        mapping = {
            "KD_MOVE_COOLDOWN": ("move_cooldown", float),
            "KD_TICK_RATE": ("tick_rate", float),
            "KD_LEVELS_FILE": ("levels_file", str),
            "KD_LOG_LEVEL": ("log_level", str),
        }
        out: Dict[str, Any] = {}
        for env_key, (field_name, caster) in mapping.items():
            if env_key in env and env[env_key] != "":
                try:
                    out[field_name] = caster(env[env_key])
                except ValueError as exc:
                    logger.error("Invalid env for %s=%r: %s", env_key, env[env_key], exc)
        return out

    @classmethod
    def from_toml_file(cls, path: Path) -> Dict[str, Any]:
        if not path.exists():
            logger.debug("Settings file not found: %s", path)
            return {}
        try:
            with path.open("rb") as f:
                doc = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            logger.error("Failed to read settings TOML %s: %s", path, exc)
            return {}
        # Accept top-level keys or an [engine] section
        flat: Dict[str, Any] = {}
        if isinstance(doc.get("engine"), dict):
            flat.update(doc["engine"])
        for k, v in doc.items():
            if not isinstance(v, dict):
                flat[k] = v
        return flat

    @classmethod
    def discover_config_path(cls, env: Optional[Mapping[str, str]] = None) -> Optional[Path]:
        env = os.environ if env is None else env
        env_path = env.get(SETTINGS_FILE_ENV)
        if env_path:
            return Path(env_path).expanduser().resolve()
        default_path = Path.cwd() / "configs" / "settings.toml"
        if default_path.exists():
            return default_path
        return None

    @classmethod
    def from_sources(
        cls,
        *,
        env: Optional[Mapping[str, str]] = None,
        file_path: Optional[Path | str] = None,
    ) -> "Settings":
        # Order of precedence (lowest to highest): defaults < file < env
        data: Dict[str, Any] = {}
        if file_path is not None:
            chosen_path: Optional[Path] = Path(file_path).expanduser().resolve()
        else:
            chosen_path = cls.discover_config_path(env)
        if chosen_path is not None:
            data.update(cls.from_toml_file(chosen_path))
        data.update(cls.from_env(env))
        return cls.from_dict(data)


__all__ = ["Settings", "ENV_PREFIX", "SETTINGS_FILE_ENV"]
