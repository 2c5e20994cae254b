class KeydropError(Exception):
    """Base exception for the keydrop puzzle engine."""


class ConfigError(KeydropError):
    """Raised when level data is malformed (start tile, goal, bindings)."""


class TileMarkerError(KeydropError):
    """Raised when a pickup tile has no arrow marker or bound key to return."""


class TileStateError(KeydropError):
    """Raised when a tile mutation is requested on a tile of the wrong kind."""
