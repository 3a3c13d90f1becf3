"""End-to-end forage runs: explorer finds, miners haul, everything balances."""

from __future__ import annotations

import pytest

from forage.comms.event_bus import EventBus
from forage.simulation.config import SimulationConfig
from forage.simulation.engine import SimulationEngine, launch, wait_for
from forage.simulation.world import CellType, ResourceKind, World


pytestmark = pytest.mark.integration

M = ResourceKind.MINERAL


def _drain(q) -> list[dict]:
    out = []
    while not q.empty():
        out.append(q.get_nowait())
    return out


def _nonzero(totals: dict) -> dict:
    return {k: v for k, v in totals.items() if v}


class TestSingleDeposit:
    def test_explorer_then_miner_clears_the_map(self):
        world = World.from_layout(10, 10, base=(5, 5), resources={(2, 2): (M, 5)})
        config = SimulationConfig(width=10, height=10, seed=11, roster=("explorer", "miner"),
                                  miner_capacity=3, tick_interval=0.0)
        bus = EventBus()
        q = bus.subscribe()
        engine = SimulationEngine(config, world=world, event_bus=bus)

        events: list[dict] = []
        for _ in range(20000):
            if engine.is_quiescent():
                break
            engine.step()
            engine.audit()
            events.extend(_drain(q))
        assert engine.is_quiescent()

        reported = [e for e in events if e["type"] == "resource_reported"]
        assert reported and reported[0]["data"]["position"] == (2, 2)
        deposits = [e["data"]["deposited"]["mineral"] for e in events if e["type"] == "cargo_deposited"]
        assert deposits == [3, 2]
        assert world.base_inventory() == {M: 5}
        assert world.cell((2, 2)).type is CellType.EMPTY
        assert len(engine.board) == 0

    def test_second_miner_never_leaves_idle(self):
        world = World.from_layout(10, 10, base=(5, 5), resources={(2, 2): (M, 5)})
        config = SimulationConfig(width=10, height=10, seed=5, roster=("miner", "miner"),
                                  miner_capacity=3, tick_interval=0.0)
        engine = SimulationEngine(config, world=world)
        engine.board.report((2, 2), M, 5)

        engine.run_until(lambda e: e.is_quiescent(), max_ticks=500)

        assert engine.is_quiescent()
        assert list(engine.get_robot(1).fsm.history) == []
        assert engine.get_robot(1).position == (5, 5)
        assert world.base_inventory() == {M: 5}


class TestGeneratedWorld:
    def test_all_resources_reach_base(self):
        config = SimulationConfig(width=20, height=12, seed=8, obstacle_density=0.0,
                                  resource_density=0.1, tick_interval=0.0)
        engine = SimulationEngine(config)
        initial = _nonzero(engine.world.initial_totals)
        assert initial

        engine.run_until(lambda e: e.is_quiescent(), max_ticks=50000)

        assert engine.is_quiescent()
        assert engine.world.base_inventory() == initial
        engine.audit()

    def test_same_seed_same_run(self):
        config = SimulationConfig(width=20, height=12, seed=21, tick_interval=0.0)
        a = SimulationEngine(config)
        b = SimulationEngine(config)
        for _ in range(300):
            a.step()
            b.step()
        assert a.snapshot().to_dict() == b.snapshot().to_dict()


class TestThreadedRun:
    def test_shutdown_joins_every_thread(self):
        config = SimulationConfig(width=30, height=15, seed=4, tick_interval=0.0)
        engine = launch(config)
        try:
            assert wait_for(engine, lambda e: e.tick >= 50, timeout=20)
        finally:
            engine.stop()

        assert not any(t.is_alive() for t in engine._threads)
        assert not engine._driver.is_alive()
        engine.audit()
        tick = engine.tick
        assert wait_for(engine, lambda e: e.tick != tick, timeout=0.2) is False

    def test_threaded_run_conserves_resources(self):
        world = World.from_layout(12, 12, base=(6, 6),
                                  resources={(1, 1): (M, 4), (10, 2): (ResourceKind.ENERGY, 3)})
        config = SimulationConfig(width=12, height=12, seed=9, miner_capacity=2, tick_interval=0.0)
        engine = launch(config, world=world)
        try:
            done = wait_for(engine, lambda e: e.is_quiescent(), timeout=60)
        finally:
            engine.stop()
        engine.audit()
        assert done
        assert world.base_inventory() == {M: 4, ResourceKind.ENERGY: 3}
        assert not engine.failed_robots


class TestConcaveWall:
    """Base below a U-shaped wall, the only deposit tucked inside the U."""

    @staticmethod
    def _make_world() -> World:
        obstacles = [(x, 3) for x in range(2, 9)] + [(2, 2), (8, 2)]
        return World.from_layout(11, 11, base=(5, 5), resources={(5, 1): (M, 4)}, obstacles=obstacles)

    @pytest.mark.parametrize("seed", range(5))
    def test_miner_works_round_the_wall(self, seed):
        world = self._make_world()
        config = SimulationConfig(width=11, height=11, seed=seed, roster=("explorer", "miner"),
                                  miner_capacity=3, tick_interval=0.0)
        engine = SimulationEngine(config, world=world)

        engine.run_until(lambda e: e.is_quiescent(), max_ticks=20000)

        assert engine.is_quiescent()
        assert world.base_inventory() == {M: 4}
        assert world.cell((5, 1)).type is CellType.EMPTY
        engine.audit()
