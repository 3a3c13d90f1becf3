"""Simulation subsystem: terrain, shared world, claim board, robots, engine."""
from .clock import TickClock
from .config import SimulationConfig, roster_from_counts
from .engine import SimulationEngine, SimulationSnapshot, launch, wait_for
from .resource_board import ResourceBoard, ResourceReport
from .robot import Robot
from .robot_states import create_explorer_fsm, create_fsm_for_role, create_miner_fsm
from .state_machine import State, StateMachine, Transition
from .terrain import generate_noise_field, generate_world
from .world import Cell, CellType, CollectResult, MoveResult, ResourceKind, World

__all__ = [
    "Cell",
    "CellType",
    "CollectResult",
    "MoveResult",
    "ResourceBoard",
    "ResourceKind",
    "ResourceReport",
    "Robot",
    "SimulationConfig",
    "SimulationEngine",
    "SimulationSnapshot",
    "State",
    "StateMachine",
    "TickClock",
    "Transition",
    "World",
    "create_explorer_fsm",
    "create_fsm_for_role",
    "create_miner_fsm",
    "generate_noise_field",
    "generate_world",
    "launch",
    "roster_from_counts",
    "wait_for",
]
