"""Robot: one agent on the forage map.

Robot is a flat dataclass shared by every role.  Role-specific behaviour
lives in the FSM built by the role type (``forage.units``); the fields a
role does not use simply stay at their defaults (an explorer never
carries cargo, so its capacity is 0).

Each robot is mutated only by its own execution unit.  Observers read its
fields without locking, which is good enough for rendering.  Cargo is the
one exception: ``World.collect`` and ``World.deposit`` update it under the
cell/base lock so the resource ledger stays exact.
"""

from __future__ import annotations

import random
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from loguru import logger

from .state_machine import StateMachine
from .world import DIRECTIONS, Coord, MoveResult, ResourceKind, World

if TYPE_CHECKING:
    from forage.comms.event_bus import EventBus

    from .config import SimulationConfig
    from .resource_board import ResourceBoard


@dataclass
class Robot:
    robot_id: int
    role: str  # "explorer", "miner"
    position: Coord
    capacity: int = 0
    cargo: Counter[ResourceKind] = field(default_factory=Counter)
    target: Coord | None = None
    blocked_ticks: int = 0
    route: list[Coord] = field(default_factory=list, repr=False)
    cooldowns: dict[Coord, int] = field(default_factory=dict, repr=False)
    ticks: int = 0
    rng: random.Random = field(default_factory=random.Random, repr=False)
    fsm: StateMachine | None = field(default=None, repr=False)

    @property
    def carried(self) -> int:
        return sum(self.cargo.values())

    @property
    def state(self) -> str:
        return self.fsm.current_state if self.fsm is not None else "idle"

    # -- Movement -----------------------------------------------------------

    def try_move(self, world: World, dst: Coord) -> MoveResult:
        result = world.move(self.position, dst)
        if result is MoveResult.MOVED:
            self.position = dst
        return result

    def random_step(self, world: World, retries: int = 0) -> MoveResult:
        """Step to a uniformly chosen neighbour, retrying up to *retries* times."""
        for _ in range(retries + 1):
            dx, dy = self.rng.choice(DIRECTIONS)
            if self.try_move(world, (self.position[0] + dx, self.position[1] + dy)) is MoveResult.MOVED:
                return MoveResult.MOVED
        return MoveResult.BLOCKED

    def step_toward(self, world: World, goal: Coord, retries: int = 3) -> MoveResult:
        """Single step toward *goal*.

        Reduces the larger of the column/row offsets first and falls back to
        the other axis.  When both are blocked the robot plans a detour with
        ``World.route`` and follows it on later ticks, so a concave wall
        does not pin it in place.  With no route at all it sidesteps at
        random and BLOCKED is returned so the caller can count the detour.
        """
        if self.position == goal:
            self.route.clear()
            return MoveResult.MOVED
        if self.route and self.route[-1] != goal:
            self.route.clear()
        if self.route:
            if self.try_move(world, self.route[0]) is MoveResult.MOVED:
                self.route.pop(0)
                return MoveResult.MOVED
            self.route.clear()

        dx = goal[0] - self.position[0]
        dy = goal[1] - self.position[1]
        sx = (dx > 0) - (dx < 0)
        sy = (dy > 0) - (dy < 0)
        x_step = (self.position[0] + sx, self.position[1])
        y_step = (self.position[0], self.position[1] + sy)
        candidates = [x_step, y_step] if abs(dx) >= abs(dy) else [y_step, x_step]
        for dst in candidates:
            if dst == self.position:
                continue
            if self.try_move(world, dst) is MoveResult.MOVED:
                return MoveResult.MOVED

        path = world.route(self.position, goal)
        if path:
            self.route = path
            if self.try_move(world, self.route[0]) is MoveResult.MOVED:
                self.route.pop(0)
                return MoveResult.MOVED
        self.route.clear()
        self.random_step(world, retries)
        return MoveResult.BLOCKED

    # -- Tick ---------------------------------------------------------------

    def tick(
        self,
        world: World,
        board: ResourceBoard,
        config: SimulationConfig,
        event_bus: EventBus | None = None,
        tick: int = 0,
    ) -> str:
        """Run one behaviour step.  Returns the state after the step."""
        if self.fsm is None:
            raise RuntimeError(f"robot {self.robot_id} has no behaviour attached")
        before = self.fsm.current_state
        ctx = {
            "robot": self,
            "world": world,
            "board": board,
            "config": config,
            "event_bus": event_bus,
            "tick": tick,
        }
        after = self.fsm.tick(1.0, ctx)
        self.ticks += 1
        if after != before:
            logger.debug(f"robot {self.robot_id} ({self.role}) {before} -> {after} at {self.position}")
        return after

    def to_dict(self) -> dict:
        """Serialize for snapshots / EventBus consumers."""
        cargo = dict(self.cargo)
        target = self.target
        return {
            "robot_id": self.robot_id,
            "role": self.role,
            "position": {"x": self.position[0], "y": self.position[1]},
            "state": self.state,
            "carried": sum(cargo.values()),
            "cargo": {k.value: n for k, n in cargo.items() if n},
            "capacity": self.capacity,
            "target": {"x": target[0], "y": target[1]} if target else None,
        }
