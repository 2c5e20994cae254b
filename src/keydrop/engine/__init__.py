from .loop import GameLoop, InputSource, LoopConfig, ScriptedInput

__all__ = ["GameLoop", "InputSource", "LoopConfig", "ScriptedInput"]
