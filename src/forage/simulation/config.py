"""SimulationConfig: construction parameters for a forage run.

Defaults reproduce the classic setup: a 150x50 map, seed 42, one explorer
and two miners that each carry at most five units.  ``validate()`` collects
every problem instead of stopping at the first, so a CLI user sees the full
list in one ``ConfigError``.
"""

from __future__ import annotations

from dataclasses import dataclass

from forage.errors import ConfigError


@dataclass(frozen=True)
class SimulationConfig:
    width: int = 150
    height: int = 50
    seed: int = 42
    obstacle_density: float = 0.2     # share of the noise range above which cells are obstacles
    resource_density: float = 0.04    # share of the noise range below which cells hold resources
    roster: tuple[str, ...] = ("explorer", "miner", "miner")
    miner_capacity: int = 5
    collect_amount: int = 1           # units taken per collect action
    resource_min_quantity: int = 1
    resource_max_quantity: int = 5
    noise_scale: int = 10             # coarse lattice spacing in cells
    noise_octaves: int = 3
    explorer_move_retries: int = 4
    miner_blocked_limit: int = 8      # blocked ticks before a miner gives up a claim
    miner_retry_cooldown: int = 20    # idle ticks before a miner may reclaim a cell it gave up
    tick_interval: float = 0.1        # seconds between ticks when threaded

    def validate(self) -> list[str]:
        """Return a list of error strings (empty = valid)."""
        # Imported lazily: the role registry imports the simulation package
        from forage.units import get_type

        errors = []
        if self.width <= 0 or self.height <= 0:
            errors.append(f"grid dimensions must be positive, got {self.width}x{self.height}")
        for name in ("obstacle_density", "resource_density"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                errors.append(f"{name} must be within [0, 1], got {value}")
        if self.obstacle_density + self.resource_density > 1.0:
            errors.append(
                "obstacle and resource bands overlap: "
                f"{self.obstacle_density} + {self.resource_density} > 1"
            )
        if not self.roster:
            errors.append("roster must contain at least one robot")
        for role in self.roster:
            if get_type(role) is None:
                errors.append(f"unknown robot role: {role!r}")
        if self.miner_capacity <= 0:
            errors.append(f"miner_capacity must be positive, got {self.miner_capacity}")
        if self.collect_amount <= 0:
            errors.append(f"collect_amount must be positive, got {self.collect_amount}")
        if self.resource_min_quantity <= 0:
            errors.append(
                f"resource_min_quantity must be positive, got {self.resource_min_quantity}"
            )
        if self.resource_max_quantity < self.resource_min_quantity:
            errors.append(
                f"resource_max_quantity ({self.resource_max_quantity}) is below "
                f"resource_min_quantity ({self.resource_min_quantity})"
            )
        if self.noise_scale <= 0 or self.noise_octaves <= 0:
            errors.append("noise_scale and noise_octaves must be positive")
        if min(self.explorer_move_retries, self.miner_blocked_limit, self.miner_retry_cooldown) < 0:
            errors.append("retry limits and cooldowns must not be negative")
        if self.tick_interval < 0:
            errors.append(f"tick_interval must not be negative, got {self.tick_interval}")
        return errors


def roster_from_counts(explorers: int, miners: int) -> tuple[str, ...]:
    """Build a roster with explorers first, e.g. (1, 2) -> explorer, miner, miner.

    Raises:
        ConfigError: either count is negative.
    """
    errors = [
        f"{name} count must not be negative, got {count}"
        for name, count in (("explorer", explorers), ("miner", miners))
        if count < 0
    ]
    if errors:
        raise ConfigError(errors)
    return ("explorer",) * explorers + ("miner",) * miners
