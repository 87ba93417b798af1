"""Two-player grid skirmish: battle rules engine plus a thin reference host."""

__version__ = "0.1.0"
