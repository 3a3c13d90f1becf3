"""Role FSM factories: behaviour state machines for each robot role.

Every state reads what it needs from the tick context the Robot builds:

    robot:      the Robot being ticked (mutated in place)
    world:      shared World
    board:      shared ResourceBoard
    config:     SimulationConfig (retry limits, collect amount)
    event_bus:  EventBus or None
    tick:       current tick number

A state performs at most one world action per tick (one move, one
collect or one deposit); the explorer's report after its move is a board
write, not a world action.

Explorer FSM:
  wandering (only state)
  Random step, then report the cell underfoot if it holds a resource.

Miner FSM:
  idle -> traveling -> collecting -> returning -> idle
  Idle miners claim the nearest report; travelling miners step greedily,
  detour around walls, and give up the claim after too many blocked steps
  (the cell then cools down before that miner may claim it again); collecting
  miners dig until full or the cell is empty; returning miners walk home
  and unload.  A claim on a partly mined cell is kept over the round trip.
"""

from __future__ import annotations

from loguru import logger

from .state_machine import State, StateMachine
from .world import MoveResult


def _emit(ctx: dict, event_type: str, data: dict) -> None:
    bus = ctx.get("event_bus")
    if bus is not None:
        bus.publish(event_type, data)


# ============================================================================
# Explorer FSM
# ============================================================================

class WanderingState(State):
    """Random walk; report any resource stood on."""

    def tick(self, dt: float, ctx: dict) -> str | None:
        robot = ctx["robot"]
        world = ctx["world"]
        board = ctx["board"]
        robot.random_step(world, ctx["config"].explorer_move_retries)

        pos = robot.position
        # Report under the cell lock so a miner cannot empty the cell
        # between our look and our write.
        with world.locked_cell(pos) as cell:
            if not cell.is_resource:
                return None
            is_new = board.report(pos, cell.kind, cell.quantity)
        if is_new:
            logger.debug(f"explorer {robot.robot_id} reported {cell.kind.value} x{cell.quantity} at {pos}")
            _emit(ctx, "resource_reported", {
                "robot_id": robot.robot_id,
                "position": pos,
                "kind": cell.kind.value,
                "quantity": cell.quantity,
            })
        return None


def create_explorer_fsm() -> StateMachine:
    sm = StateMachine("wandering")
    sm.add_state(WanderingState("wandering"))
    return sm


# ============================================================================
# Miner FSM
# ============================================================================

def _drop_target(ctx: dict, remove: bool) -> None:
    """Forget the current target, removing or releasing its board entry.

    A released cell goes on the robot's cooldown list so the next idle
    tick does not hand the same unreachable claim straight back.
    """
    robot = ctx["robot"]
    board = ctx["board"]
    target = robot.target
    robot.target = None
    robot.blocked_ticks = 0
    robot.route.clear()
    if target is None:
        return
    if remove:
        board.remove(target)
    elif board.release(target, robot.robot_id):
        cooldown = ctx["config"].miner_retry_cooldown
        if cooldown > 0:
            robot.cooldowns[target] = cooldown
        _emit(ctx, "resource_released", {"robot_id": robot.robot_id, "position": target})


def _at_target(ctx: dict) -> bool:
    robot = ctx["robot"]
    return robot.target is not None and robot.position == robot.target


def _target_has_stock(ctx: dict) -> bool:
    return ctx["world"].cell(ctx["robot"].target).is_resource


def _is_full(ctx: dict) -> bool:
    robot = ctx["robot"]
    return robot.carried >= robot.capacity


def _home_and_empty(ctx: dict) -> bool:
    robot = ctx["robot"]
    return robot.position == ctx["world"].base and robot.carried == 0


class IdleState(State):
    """No target: ask the board for the nearest unclaimed resource."""

    def tick(self, dt: float, ctx: dict) -> str | None:
        robot = ctx["robot"]
        for coord in list(robot.cooldowns):
            robot.cooldowns[coord] -= 1
            if robot.cooldowns[coord] <= 0:
                del robot.cooldowns[coord]
        report = ctx["board"].claim_nearest(
            robot.position, robot.robot_id, robot.capacity - robot.carried,
            exclude=robot.cooldowns,
        )
        if report is None:
            return None
        if robot.target != report.position:
            robot.target = report.position
            robot.blocked_ticks = 0
            _emit(ctx, "resource_claimed", {"robot_id": robot.robot_id, "position": report.position})
        if robot.position == robot.target:
            return "collecting"
        return "traveling"


class TravelingState(State):
    """One step per tick toward the claimed cell."""

    def tick(self, dt: float, ctx: dict) -> str | None:
        robot = ctx["robot"]
        world = ctx["world"]
        target = robot.target
        if target is None:
            return "idle"
        if not world.cell(target).is_resource:
            # Emptied or otherwise gone: the report is stale
            _drop_target(ctx, remove=True)
            return "returning" if robot.carried else "idle"

        if robot.step_toward(world, target) is MoveResult.BLOCKED:
            robot.blocked_ticks += 1
            if robot.blocked_ticks > ctx["config"].miner_blocked_limit:
                logger.debug(f"miner {robot.robot_id} gave up on {target} after {robot.blocked_ticks} blocked steps")
                _drop_target(ctx, remove=False)
                return "idle"
        return None


class CollectingState(State):
    """Dig at the target until full or the cell runs dry."""

    def tick(self, dt: float, ctx: dict) -> str | None:
        robot = ctx["robot"]
        world = ctx["world"]
        board = ctx["board"]
        config = ctx["config"]
        target = robot.target
        if target is None:
            return "returning" if robot.carried else "idle"
        if robot.position != target:
            return "traveling"

        room = robot.capacity - robot.carried
        if room <= 0:
            return None

        result = world.collect(robot, min(config.collect_amount, room), on_exhausted=board.remove)
        if result.amount == 0:
            _drop_target(ctx, remove=True)
            return "returning" if robot.carried else "idle"

        _emit(ctx, "cargo_collected", {
            "robot_id": robot.robot_id,
            "position": target,
            "kind": result.kind.value,
            "amount": result.amount,
            "carried": robot.carried,
        })
        if result.exhausted:
            # on_exhausted already removed the report under the cell lock
            robot.target = None
            robot.blocked_ticks = 0
            _emit(ctx, "resource_depleted", {"robot_id": robot.robot_id, "position": target})
            return "returning"
        return None


class ReturningState(State):
    """Walk home; unload on the tick after arriving."""

    def tick(self, dt: float, ctx: dict) -> str | None:
        robot = ctx["robot"]
        world = ctx["world"]
        if robot.position != world.base:
            robot.step_toward(world, world.base)
            return None
        deposited = world.deposit(robot)
        if deposited:
            _emit(ctx, "cargo_deposited", {
                "robot_id": robot.robot_id,
                "deposited": {k.value: n for k, n in deposited.items()},
                "base_inventory": {k.value: n for k, n in world.base_inventory().items()},
            })
        return None


def create_miner_fsm() -> StateMachine:
    sm = StateMachine("idle")
    sm.add_state(IdleState("idle"))
    sm.add_state(TravelingState("traveling"))
    sm.add_state(CollectingState("collecting"))
    sm.add_state(ReturningState("returning"))

    # traveling -> collecting on arrival, unless the cell emptied meanwhile
    sm.add_transition("traveling", "collecting", condition=_at_target, guard=_target_has_stock)
    # collecting -> returning once the hold is full
    sm.add_transition("collecting", "returning", condition=_is_full)
    # returning -> idle after unloading at base
    sm.add_transition("returning", "idle", condition=_home_and_empty)
    return sm


def create_fsm_for_role(role: str) -> StateMachine:
    """Build the behaviour FSM for a registered role id."""
    from forage.units import get_type

    role_type = get_type(role)
    if role_type is None:
        raise KeyError(f"unknown robot role: {role!r}")
    return role_type.create_fsm()
