"""SimulationEngine: owns the world, the board and one thread per robot.

Architecture
------------
The engine is the authoritative owner of the World, the ResourceBoard and
the fixed robot roster.  ``start()`` runs:

  1. robot-<id> (one per robot) - waits on the TickClock, runs exactly
     one behaviour step for the new tick, reports done, waits again.
     Robots touch shared state only through World and ResourceBoard
     methods, each of which locks a single cell / the base / the board
     for a single operation.

  2. sim-tick - the driver.  Advances the clock, waits until every robot
     has finished that tick, then sleeps ``tick_interval``.

Shutdown:
  ``stop()`` sets the stop flag and stops the clock.  A robot in the
  middle of a step finishes it (no unit is interrupted mid-mutation),
  then sees the stopped clock at its next ``wait_next()`` and exits.
  Robots already waiting wake immediately.  All threads are joined before
  ``stop()`` returns, so at most one further step per robot happens after
  the signal.

Synchronous mode:
  ``step()`` runs one tick on the calling thread, robots in id order.
  Tests and scripted scenarios use it to exercise the engine without
  starting threads; it refuses to run while the threads are live.

Snapshots:
  ``snapshot()`` never blocks robots.  Cells are immutable and robot
  fields are read without locks, so a snapshot taken while running is
  consistent per cell, not across the whole grid.
"""

from __future__ import annotations

import random
import threading
import time
from dataclasses import dataclass
from typing import Callable

from loguru import logger

from forage.comms.event_bus import EventBus
from forage.errors import ConfigError
from forage.units import get_type

from .clock import TickClock
from .config import SimulationConfig
from .resource_board import ResourceBoard, ResourceReport
from .robot import Robot
from .terrain import generate_world
from .world import Cell, Coord, ResourceKind, World


@dataclass
class SimulationSnapshot:
    tick: int
    width: int
    height: int
    base: Coord
    grid: list[list[Cell]]
    robots: list[dict]
    base_inventory: dict[ResourceKind, int]
    remaining: dict[ResourceKind, int]
    reports: list[ResourceReport]

    @property
    def total_stored(self) -> int:
        return sum(self.base_inventory.values())

    def to_dict(self) -> dict:
        return {
            "tick": self.tick,
            "width": self.width,
            "height": self.height,
            "base": {"x": self.base[0], "y": self.base[1]},
            "grid": ["".join(c.glyph for c in row) for row in self.grid],
            "robots": self.robots,
            "base_inventory": {k.value: n for k, n in self.base_inventory.items()},
            "remaining": {k.value: n for k, n in self.remaining.items()},
            "reports": [r.to_dict() for r in self.reports],
        }


class SimulationEngine:
    """Drives the robot roster over a shared world."""

    JOIN_TIMEOUT = 2.0

    def __init__(
        self,
        config: SimulationConfig | None = None,
        world: World | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.config = config or SimulationConfig()
        errors = self.config.validate()
        if errors:
            raise ConfigError(errors)

        self.world = world if world is not None else generate_world(self.config)
        self.board = ResourceBoard()
        self._event_bus = event_bus or EventBus()
        self.robots: list[Robot] = [
            self._make_robot(i, role) for i, role in enumerate(self.config.roster)
        ]

        self._clock = TickClock(len(self.robots))
        self._lock = threading.Lock()
        self._running = False
        self._stop_requested = threading.Event()
        self._threads: list[threading.Thread] = []
        self._driver: threading.Thread | None = None
        self._sync_ticks = 0
        self._failed: set[int] = set()

    def _make_robot(self, robot_id: int, role: str) -> Robot:
        role_type = get_type(role)
        if role_type is None:
            raise ConfigError(f"unknown robot role: {role!r}")
        return Robot(
            robot_id=robot_id,
            role=role,
            position=self.world.base,
            capacity=self.config.miner_capacity if role_type.carries_cargo else 0,
            rng=random.Random(self.config.seed * 1000 + robot_id),
            fsm=role_type.create_fsm(),
        )

    @property
    def event_bus(self) -> EventBus:
        """Public read access to the engine's EventBus."""
        return self._event_bus

    @property
    def tick(self) -> int:
        return self._clock.tick + self._sync_ticks

    @property
    def running(self) -> bool:
        return self._running

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested.is_set()

    def get_robot(self, robot_id: int) -> Robot | None:
        for robot in self.robots:
            if robot.robot_id == robot_id:
                return robot
        return None

    # -- Synchronous stepping -------------------------------------------------

    def step(self) -> int:
        """Run one tick on the calling thread.  Returns the new tick number."""
        with self._lock:
            if self._running:
                raise RuntimeError("step() is not available while robot threads run")
            self._sync_ticks += 1
            tick = self.tick
            for robot in self.robots:
                robot.tick(self.world, self.board, self.config, self._event_bus, tick)
            return tick

    def run_until(self, predicate: Callable[[SimulationEngine], bool], max_ticks: int) -> int:
        """Step until *predicate(engine)* holds or *max_ticks* pass.

        Returns the number of ticks executed.
        """
        for n in range(max_ticks):
            if predicate(self):
                return n
            self.step()
        return max_ticks

    # -- Lifecycle ------------------------------------------------------------

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            if self._stop_requested.is_set() or self._clock.stopped:
                raise RuntimeError("a stopped engine cannot be restarted")
            self._running = True

        logger.info(
            f"Simulation started: {len(self.robots)} robots on "
            f"{self.world.width}x{self.world.height}, base at {self.world.base}"
        )
        self._event_bus.publish("sim_started", {
            "robots": len(self.robots),
            "width": self.world.width,
            "height": self.world.height,
        })

        for robot in self.robots:
            t = threading.Thread(
                target=self._robot_loop, args=(robot,), name=f"robot-{robot.robot_id}", daemon=True,
            )
            self._threads.append(t)
            t.start()
        self._driver = threading.Thread(target=self._tick_loop, name="sim-tick", daemon=True)
        self._driver.start()

    def request_stop(self) -> None:
        """Ask the threads to stop at the next tick boundary without joining.

        Safe to call from a signal handler.
        """
        self._stop_requested.set()
        self._clock.stop()

    def stop(self, timeout: float | None = None) -> None:
        """Stop accepting ticks, let in-flight steps finish, join every thread."""
        self.request_stop()
        with self._lock:
            if not self._running:
                return
        timeout = self.JOIN_TIMEOUT if timeout is None else timeout
        if self._driver is not None:
            self._driver.join(timeout=timeout)
        for t in self._threads:
            t.join(timeout=timeout)
        alive = [t.name for t in self._threads if t.is_alive()]
        if alive:
            logger.warning(f"Threads still alive after stop: {alive}")
        with self._lock:
            self._running = False
        logger.info(f"Simulation stopped at tick {self.tick}")
        self._event_bus.publish("sim_stopped", {"tick": self.tick})

    def _tick_loop(self) -> None:
        while not self._stop_requested.is_set():
            if not self._clock.advance(timeout=self.JOIN_TIMEOUT):
                if self._clock.stopped:
                    break
                logger.warning(f"Tick {self._clock.tick} overran {self.JOIN_TIMEOUT}s")
            if self.config.tick_interval > 0:
                self._stop_requested.wait(self.config.tick_interval)

    def _robot_loop(self, robot: Robot) -> None:
        last = 0
        while True:
            tick = self._clock.wait_next(last)
            if tick is None:
                return
            last = tick
            try:
                robot.tick(self.world, self.board, self.config, self._event_bus, tick)
            except AssertionError:
                # Broken invariant: the shared state can no longer be trusted
                logger.exception(f"robot {robot.robot_id} broke an invariant at tick {tick}")
                self._failed.add(robot.robot_id)
                self.request_stop()
                return
            except Exception:
                logger.exception(f"robot {robot.robot_id} ({robot.role}) failed at tick {tick}")
                self._failed.add(robot.robot_id)
                self._clock.retire()
                return
            self._clock.mark_done()

    # -- Observation ----------------------------------------------------------

    @property
    def failed_robots(self) -> set[int]:
        return set(self._failed)

    def snapshot(self) -> SimulationSnapshot:
        """Current grid, robots, inventory and reports.  Never blocks robots."""
        return SimulationSnapshot(
            tick=self.tick,
            width=self.world.width,
            height=self.world.height,
            base=self.world.base,
            grid=self.world.rows(),
            robots=[r.to_dict() for r in self.robots],
            base_inventory=self.world.base_inventory(),
            remaining=self.world.remaining(),
            reports=self.board.entries(),
        )

    def is_quiescent(self) -> bool:
        """True when the grid is mined out and every miner is home and empty."""
        if any(self.world.remaining().values()):
            return False
        for robot in self.robots:
            if robot.capacity and (robot.state != "idle" or robot.carried):
                return False
        return True

    def audit(self) -> None:
        """Check world and board invariants (raises InvariantError)."""
        self.world.audit(self.robots)
        self.board.audit()


def launch(
    config: SimulationConfig | None = None,
    world: World | None = None,
    event_bus: EventBus | None = None,
) -> SimulationEngine:
    """Build an engine and start its threads.

    Raises:
        ConfigError: before any thread starts, if *config* is invalid.
    """
    engine = SimulationEngine(config, world=world, event_bus=event_bus)
    engine.start()
    return engine


def wait_for(engine: SimulationEngine, predicate: Callable[[SimulationEngine], bool],
             timeout: float, poll: float = 0.01) -> bool:
    """Poll a running engine until *predicate* holds or *timeout* expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate(engine):
            return True
        time.sleep(poll)
    return predicate(engine)
