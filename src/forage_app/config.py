"""Configuration management using Pydantic settings."""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from forage.simulation.config import SimulationConfig, roster_from_counts


class Settings(BaseSettings):
    """Application settings loaded from FORAGE_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Map
    width: int = 150
    height: int = 50
    seed: int = 42
    obstacle_density: float = 0.2
    resource_density: float = 0.04

    # Roster
    explorers: int = 1
    miners: int = 2
    miner_capacity: int = 5

    # Timing
    tick_interval: float = 0.1

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    max_logs: int = 10  # lines in the on-screen event panel

    def to_simulation_config(self) -> SimulationConfig:
        return SimulationConfig(
            width=self.width,
            height=self.height,
            seed=self.seed,
            obstacle_density=self.obstacle_density,
            resource_density=self.resource_density,
            roster=roster_from_counts(self.explorers, self.miners),
            miner_capacity=self.miner_capacity,
            tick_interval=self.tick_interval,
        )


settings = Settings()
