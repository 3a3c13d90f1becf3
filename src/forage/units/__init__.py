"""Robot role registry.

Importing this package registers every role under ``forage.units.robots``.
"""

from __future__ import annotations

from .base import _REGISTRY, RoleType
from .robots.explorer import Explorer
from .robots.miner import Miner


def get_type(type_id: str) -> type[RoleType] | None:
    return _REGISTRY.get(type_id)


def all_types() -> list[type[RoleType]]:
    return list(_REGISTRY.values())


__all__ = ["Explorer", "Miner", "RoleType", "all_types", "get_type"]
