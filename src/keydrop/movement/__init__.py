from .engine import MoveResolver, ResolveOutcome
from .markers import ArrowMarkers

__all__ = ["ArrowMarkers", "MoveResolver", "ResolveOutcome"]
