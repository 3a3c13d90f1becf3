"""Procedural terrain: turns a seeded noise field into a World.

The noise field is fractal value noise: a seeded lattice of random values
every ``scale`` cells, bilinearly interpolated, summed over a few octaves
and normalised to [0, 1].  Same seed, same field.

Classification uses two disjoint bands of the normalised range:

    value >= 1 - obstacle_density   -> OBSTACLE
    value <  resource_density       -> RESOURCE (kind from a coordinate hash,
                                       quantity from a seeded generator)
    otherwise                       -> EMPTY

The base sits at the grid centre and its eight neighbours are cleared of
obstacles so robots can always leave home.
"""

from __future__ import annotations

import numpy as np
from loguru import logger

from forage.errors import ConfigError

from .config import SimulationConfig
from .world import EMPTY, OBSTACLE, Cell, CellType, ResourceKind, World, resource

_KINDS = tuple(ResourceKind)


def _value_noise(width: int, height: int, tile: int, rng: np.random.Generator) -> np.ndarray:
    """One octave: bilinear interpolation over a coarse random lattice."""
    tile = max(1, tile)
    lattice = rng.random((height // tile + 2, width // tile + 2))

    gy = np.arange(height) / tile
    gx = np.arange(width) / tile
    y0 = np.floor(gy).astype(int)
    x0 = np.floor(gx).astype(int)
    ty = (gy - y0)[:, None]
    tx = (gx - x0)[None, :]

    v00 = lattice[np.ix_(y0, x0)]
    v10 = lattice[np.ix_(y0, x0 + 1)]
    v01 = lattice[np.ix_(y0 + 1, x0)]
    v11 = lattice[np.ix_(y0 + 1, x0 + 1)]

    top = (1 - tx) * v00 + tx * v10
    bottom = (1 - tx) * v01 + tx * v11
    return (1 - ty) * top + ty * bottom


def generate_noise_field(
    width: int,
    height: int,
    seed: int,
    scale: int = 10,
    octaves: int = 3,
    persistence: float = 0.5,
) -> np.ndarray:
    """Deterministic 2D scalar field in [0, 1], indexed ``field[y, x]``."""
    rng = np.random.default_rng(seed)
    total = np.zeros((height, width), dtype=float)
    amplitude = 1.0
    for octave in range(octaves):
        tile = int(scale / (2 ** octave))
        total += _value_noise(width, height, tile, rng) * amplitude
        amplitude *= persistence

    lo = float(total.min())
    hi = float(total.max())
    if hi - lo < 1e-12:
        return np.full_like(total, 0.5)
    return (total - lo) / (hi - lo)


def resource_kind_at(x: int, y: int, seed: int) -> ResourceKind:
    """Stable per-coordinate choice of resource kind."""
    h = (x * 73856093) ^ (y * 19349663) ^ (seed * 83492791)
    return _KINDS[h % len(_KINDS)]


def classify(value: float, obstacle_density: float, resource_density: float) -> CellType:
    if value >= 1.0 - obstacle_density and obstacle_density > 0:
        return CellType.OBSTACLE
    if value < resource_density:
        return CellType.RESOURCE
    return CellType.EMPTY


def generate_world(config: SimulationConfig) -> World:
    """Build the World for *config*.

    Raises:
        ConfigError: dimensions, densities or quantity bounds are invalid.
    """
    errors = config.validate()
    if errors:
        raise ConfigError(errors)

    w, h = config.width, config.height
    field = generate_noise_field(
        w, h, config.seed, scale=config.noise_scale, octaves=config.noise_octaves,
    )
    quantities = np.random.default_rng(config.seed + 1).integers(
        config.resource_min_quantity, config.resource_max_quantity + 1, size=(h, w),
    )

    cells: list[Cell] = []
    for y in range(h):
        for x in range(w):
            ctype = classify(float(field[y, x]), config.obstacle_density, config.resource_density)
            if ctype is CellType.OBSTACLE:
                cells.append(OBSTACLE)
            elif ctype is CellType.RESOURCE:
                cells.append(resource(resource_kind_at(x, y, config.seed), int(quantities[y, x])))
            else:
                cells.append(EMPTY)

    base = (w // 2, h // 2)
    for dy in (-1, 0, 1):
        for dx in (-1, 0, 1):
            x, y = base[0] + dx, base[1] + dy
            if 0 <= x < w and 0 <= y < h and cells[y * w + x].type is CellType.OBSTACLE:
                cells[y * w + x] = EMPTY

    world = World(w, h, cells, base)
    totals = ", ".join(f"{k.value}={n}" for k, n in world.initial_totals.items())
    logger.info(f"Terrain: {w}x{h} seed={config.seed}, base at {base}, resources {totals}")
    return world
