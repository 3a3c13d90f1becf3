"""World: the shared grid every robot reads and writes.

Architecture
------------
The grid is an arena of immutable ``Cell`` values addressed by coordinate
index ``y * width + x``.  Every index has its own ``threading.Lock``; the
base inventory has one more.  A mutation takes exactly one lock for
exactly one operation, so two miners digging at different cells never
wait on each other, and no robot ever holds a lock across a whole tick.

Reads are lock-free.  A cell is never modified in place - collecting
swaps in a new ``Cell`` (or ``EMPTY`` at zero) - and a list slot
assignment is atomic, so a reader always sees either the old or the new
value, never a half-updated one.  That is what makes ``rows()`` cheap
enough for the renderer to call every frame.

Lock order is cell -> board.  ``collect(on_exhausted=...)`` and
``locked_cell()`` run board updates while the cell lock is held, which
keeps "cell hits zero" and "report removed" (or "cell still has stock"
and "report inserted") in one atomic step.

Coordinates are ``(x, y)`` with x the column and y the row.  Movement is
4-connected and never wraps at the edges.  Robots do not block each
other: any number of them may share a cell.
"""

from __future__ import annotations

import threading
from collections import Counter, deque
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterable, Iterator

from forage.errors import InvariantError

if TYPE_CHECKING:
    from .robot import Robot

Coord = tuple[int, int]

# 4-connected neighbourhood: up, down, left, right
DIRECTIONS: tuple[Coord, ...] = ((0, -1), (0, 1), (-1, 0), (1, 0))


class CellType(Enum):
    EMPTY = "empty"
    OBSTACLE = "obstacle"
    RESOURCE = "resource"
    BASE = "base"


class ResourceKind(Enum):
    MINERAL = "mineral"
    ENERGY = "energy"


class MoveResult(Enum):
    MOVED = "moved"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class Cell:
    type: CellType
    kind: ResourceKind | None = None
    quantity: int = 0

    @property
    def is_resource(self) -> bool:
        return self.type is CellType.RESOURCE and self.quantity > 0

    @property
    def is_walkable(self) -> bool:
        return self.type is not CellType.OBSTACLE

    @property
    def glyph(self) -> str:
        if self.type is CellType.OBSTACLE:
            return "#"
        if self.type is CellType.BASE:
            return "S"
        if self.type is CellType.RESOURCE:
            return "M" if self.kind is ResourceKind.MINERAL else "E"
        return "."


EMPTY = Cell(CellType.EMPTY)
OBSTACLE = Cell(CellType.OBSTACLE)
BASE = Cell(CellType.BASE)


def resource(kind: ResourceKind, quantity: int) -> Cell:
    if quantity <= 0:
        return EMPTY
    return Cell(CellType.RESOURCE, kind, quantity)


@dataclass(frozen=True)
class CollectResult:
    """Outcome of one collect action.  ``amount == 0`` means nothing was there."""
    kind: ResourceKind | None
    amount: int
    remaining: int

    @property
    def exhausted(self) -> bool:
        return self.remaining == 0


def manhattan(a: Coord, b: Coord) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


class World:
    """Fixed-size grid, resource ledger and base inventory."""

    def __init__(self, width: int, height: int, cells: list[Cell], base: Coord) -> None:
        if len(cells) != width * height:
            raise ValueError(f"expected {width * height} cells, got {len(cells)}")
        if not (0 <= base[0] < width and 0 <= base[1] < height):
            raise ValueError(f"base {base} lies outside the {width}x{height} grid")
        self.width = width
        self.height = height
        self.base = base
        self._cells = list(cells)
        self._cells[self._index(base)] = BASE
        self._locks = [threading.Lock() for _ in range(width * height)]
        self._base_lock = threading.Lock()
        self._base_inventory: Counter[ResourceKind] = Counter()
        self.initial_totals: dict[ResourceKind, int] = self._count_remaining()

    @classmethod
    def from_layout(
        cls,
        width: int,
        height: int,
        base: Coord,
        resources: dict[Coord, tuple[ResourceKind, int]] | None = None,
        obstacles: Iterable[Coord] = (),
    ) -> World:
        """Build a world from explicit placements (scripted scenarios, tests)."""
        cells = [EMPTY] * (width * height)
        for x, y in obstacles:
            cells[y * width + x] = OBSTACLE
        for (x, y), (kind, quantity) in (resources or {}).items():
            cells[y * width + x] = resource(kind, quantity)
        return cls(width, height, cells, base)

    # -- Geometry -----------------------------------------------------------

    def _index(self, coord: Coord) -> int:
        return coord[1] * self.width + coord[0]

    def in_bounds(self, coord: Coord) -> bool:
        return 0 <= coord[0] < self.width and 0 <= coord[1] < self.height

    def is_walkable(self, coord: Coord) -> bool:
        return self.in_bounds(coord) and self._cells[self._index(coord)].is_walkable

    def neighbors(self, coord: Coord) -> list[Coord]:
        """In-bounds 4-neighbours of *coord* (walkable or not)."""
        out = []
        for dx, dy in DIRECTIONS:
            n = (coord[0] + dx, coord[1] + dy)
            if self.in_bounds(n):
                out.append(n)
        return out

    def route(self, src: Coord, goal: Coord, max_nodes: int | None = None) -> list[Coord] | None:
        """Shortest 4-connected walkable path from *src* to *goal*.

        Breadth-first over the static obstacle layout, visiting at most
        *max_nodes* cells (default: the whole grid).  Returns the steps after
        *src* (empty when already there) or None if *goal* is unreachable.
        """
        if src == goal:
            return []
        if not self.is_walkable(goal):
            return None
        limit = self.width * self.height if max_nodes is None else max_nodes
        came_from: dict[Coord, Coord] = {src: src}
        frontier: deque[Coord] = deque([src])
        while frontier and len(came_from) <= limit:
            current = frontier.popleft()
            for n in self.neighbors(current):
                if n in came_from or not self.is_walkable(n):
                    continue
                came_from[n] = current
                if n == goal:
                    path = [n]
                    while came_from[path[-1]] != src:
                        path.append(came_from[path[-1]])
                    path.reverse()
                    return path
                frontier.append(n)
        return None

    # -- Reads --------------------------------------------------------------

    def cell(self, coord: Coord) -> Cell:
        if not self.in_bounds(coord):
            return OBSTACLE
        return self._cells[self._index(coord)]

    def rows(self) -> list[list[Cell]]:
        """Copy of the grid, row by row.  Not a point-in-time snapshot."""
        w = self.width
        cells = list(self._cells)
        return [cells[y * w:(y + 1) * w] for y in range(self.height)]

    @contextmanager
    def locked_cell(self, coord: Coord) -> Iterator[Cell]:
        """Hold *coord*'s lock for the duration of the block.

        The yielded cell cannot change until the block exits, so a caller
        can publish a report that agrees with the grid.
        """
        with self._locks[self._index(coord)]:
            yield self._cells[self._index(coord)]

    def base_inventory(self) -> dict[ResourceKind, int]:
        with self._base_lock:
            return dict(self._base_inventory)

    def remaining(self) -> dict[ResourceKind, int]:
        return self._count_remaining()

    def _count_remaining(self) -> dict[ResourceKind, int]:
        totals = {kind: 0 for kind in ResourceKind}
        for c in list(self._cells):
            if c.type is CellType.RESOURCE:
                totals[c.kind] += c.quantity
        return totals

    # -- Mutations ----------------------------------------------------------

    def move(self, src: Coord, dst: Coord) -> MoveResult:
        """Check a single step from *src* to *dst*.

        Robots do not occupy cells, so a move only needs the destination
        to be adjacent, in bounds and not an obstacle.
        """
        if abs(src[0] - dst[0]) + abs(src[1] - dst[1]) != 1:
            return MoveResult.BLOCKED
        if not self.is_walkable(dst):
            return MoveResult.BLOCKED
        return MoveResult.MOVED

    def collect(
        self,
        robot: Robot,
        amount: int,
        on_exhausted: Callable[[Coord], None] | None = None,
    ) -> CollectResult:
        """Move up to *amount* units from the cell under *robot* into its cargo.

        The take is clamped to the remaining quantity.  When the cell
        reaches zero it becomes EMPTY and *on_exhausted* runs before the
        cell lock is released.
        """
        assert amount > 0, f"collect amount must be positive, got {amount}"
        coord = robot.position
        idx = self._index(coord)
        with self._locks[idx]:
            current = self._cells[idx]
            if not current.is_resource:
                return CollectResult(current.kind, 0, 0)
            taken = min(amount, current.quantity)
            left = current.quantity - taken
            self._cells[idx] = resource(current.kind, left)
            robot.cargo[current.kind] += taken
            assert robot.carried <= robot.capacity, (
                f"robot {robot.robot_id} over capacity: {robot.carried} > {robot.capacity}"
            )
            if left == 0 and on_exhausted is not None:
                on_exhausted(coord)
        return CollectResult(current.kind, taken, left)

    def deposit(self, robot: Robot) -> dict[ResourceKind, int]:
        """Unload *robot*'s entire cargo into the base inventory.

        Returns what was deposited; empty when the robot is not at base.
        """
        if robot.position != self.base:
            return {}
        with self._base_lock:
            deposited = {k: n for k, n in robot.cargo.items() if n > 0}
            self._base_inventory.update(deposited)
            robot.cargo.clear()
        return deposited

    # -- Audit --------------------------------------------------------------

    def audit(self, robots: Iterable[Robot] = ()) -> None:
        """Raise InvariantError if any world invariant does not hold.

        Only exact when robots are not mid-step (between ticks, or after
        the engine has stopped).
        """
        bases = [c for c in self._cells if c.type is CellType.BASE]
        if len(bases) != 1 or self.cell(self.base).type is not CellType.BASE:
            raise InvariantError(f"expected exactly one base cell at {self.base}")
        for i, c in enumerate(self._cells):
            if c.type is CellType.RESOURCE and c.quantity <= 0:
                raise InvariantError(
                    f"resource cell {(i % self.width, i // self.width)} holds {c.quantity}"
                )
        carried: Counter[ResourceKind] = Counter()
        for robot in robots:
            if robot.carried > robot.capacity:
                raise InvariantError(
                    f"robot {robot.robot_id} carries {robot.carried} > capacity {robot.capacity}"
                )
            if any(n < 0 for n in robot.cargo.values()):
                raise InvariantError(f"robot {robot.robot_id} has negative cargo")
            carried.update(robot.cargo)
        remaining = self.remaining()
        stored = self.base_inventory()
        for kind, total in self.initial_totals.items():
            accounted = remaining[kind] + carried.get(kind, 0) + stored.get(kind, 0)
            if accounted != total:
                raise InvariantError(
                    f"{kind.value}: grid {remaining[kind]} + carried {carried.get(kind, 0)}"
                    f" + base {stored.get(kind, 0)} != initial {total}"
                )
