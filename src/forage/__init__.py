"""Robot forage simulation: explorers find resources, miners haul them home."""

__version__ = "0.1.0"
