"""ResourceBoard: the claim table between explorers and miners.

Explorers ``report`` what they stumble on; idle miners ``claim_nearest``
and later ``release`` or ``remove`` the entry.  Roles never address each
other directly: this table is the only channel between them, so a new
role can plug in without touching the existing ones.

One lock guards the whole table.  Every public method does its full
read-modify-write under that lock, which is what makes a claim exclusive:
selecting the nearest free entry and stamping the caller's id on it is a
single step, so two miners can never walk away with the same coordinate.

Entries are keyed by coordinate.  Reporting a coordinate that is already
on the board refreshes its quantity and never creates a second entry.

Selection order for ``claim_nearest`` is Manhattan distance from the
caller, ties broken by the lowest ``(x, y)``; the result does not depend
on insertion order or thread timing.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from typing import Container

from forage.errors import InvariantError

from .world import Coord, ResourceKind, manhattan


@dataclass(frozen=True)
class ResourceReport:
    position: Coord
    kind: ResourceKind
    quantity: int
    claimed_by: int | None = None

    def to_dict(self) -> dict:
        return {
            "position": {"x": self.position[0], "y": self.position[1]},
            "kind": self.kind.value,
            "quantity": self.quantity,
            "claimed_by": self.claimed_by,
        }


class ResourceBoard:
    """Thread-safe coordinate -> ResourceReport table with exclusive claims."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[Coord, ResourceReport] = {}

    def report(self, position: Coord, kind: ResourceKind, quantity: int) -> bool:
        """Record a discovery.  Returns True if the entry is new."""
        with self._lock:
            existing = self._entries.get(position)
            if existing is not None:
                self._entries[position] = replace(existing, kind=kind, quantity=quantity)
                return False
            self._entries[position] = ResourceReport(position, kind, quantity)
            return True

    def claim_nearest(
        self,
        from_pos: Coord,
        robot_id: int,
        capacity_hint: int | None = None,
        exclude: Container[Coord] = (),
    ) -> ResourceReport | None:
        """Claim the closest unclaimed entry for *robot_id*.

        A robot that already holds a claim gets that entry back, so each
        miner works at most one claim at a time.  *capacity_hint* is
        advisory and does not change the selection.  Coordinates in *exclude*
        are skipped when picking a new claim.  Returns None when nothing is
        available.
        """
        with self._lock:
            for entry in self._entries.values():
                if entry.claimed_by == robot_id:
                    return entry
            free = [
                e for e in self._entries.values()
                if e.claimed_by is None and e.position not in exclude
            ]
            if not free:
                return None
            best = min(free, key=lambda e: (manhattan(from_pos, e.position), e.position))
            claimed = replace(best, claimed_by=robot_id)
            self._entries[best.position] = claimed
            return claimed

    def release(self, position: Coord, robot_id: int | None = None) -> bool:
        """Clear the claim on *position*.

        With *robot_id* given, only that robot's claim is cleared.  Returns
        True if a claim was cleared.
        """
        with self._lock:
            entry = self._entries.get(position)
            if entry is None or entry.claimed_by is None:
                return False
            if robot_id is not None and entry.claimed_by != robot_id:
                return False
            self._entries[position] = replace(entry, claimed_by=None)
            return True

    def remove(self, position: Coord) -> bool:
        """Drop the entry for *position*.  Returns True if one was present."""
        with self._lock:
            return self._entries.pop(position, None) is not None

    def get(self, position: Coord) -> ResourceReport | None:
        with self._lock:
            return self._entries.get(position)

    def entries(self) -> list[ResourceReport]:
        """All entries ordered by coordinate."""
        with self._lock:
            return sorted(self._entries.values(), key=lambda e: e.position)

    def claims_of(self, robot_id: int) -> list[ResourceReport]:
        with self._lock:
            return [e for e in self._entries.values() if e.claimed_by == robot_id]

    def audit(self) -> None:
        """Raise InvariantError if any robot holds more than one claim."""
        with self._lock:
            owners = [e.claimed_by for e in self._entries.values() if e.claimed_by is not None]
        if len(owners) != len(set(owners)):
            raise InvariantError(f"robot holds multiple claims: {sorted(owners)}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, position: object) -> bool:
        with self._lock:
            return position in self._entries
