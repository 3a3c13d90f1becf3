"""Unit tests for the finite state machine framework."""

from __future__ import annotations

import pytest

from forage.simulation.state_machine import State, StateMachine, Transition


pytestmark = pytest.mark.unit


# ==========================================================================
# Helpers
# ==========================================================================

class CountingState(State):
    """State that counts ticks for testing."""

    def __init__(self, name: str, transition_after: int | None = None,
                 transition_to: str | None = None):
        super().__init__(name)
        self.enter_count = 0
        self.exit_count = 0
        self.tick_count = 0
        self._transition_after = transition_after
        self._transition_to = transition_to

    def on_enter(self, ctx: dict) -> None:
        self.enter_count += 1

    def on_exit(self, ctx: dict) -> None:
        self.exit_count += 1

    def tick(self, dt: float, ctx: dict) -> str | None:
        self.tick_count += 1
        if (self._transition_after is not None
                and self.tick_count >= self._transition_after
                and self._transition_to is not None):
            return self._transition_to
        return None


# ==========================================================================
# Basics
# ==========================================================================

class TestStateMachineBasics:
    def test_initial_state(self):
        sm = StateMachine("idle")
        sm.add_state(CountingState("idle"))
        assert sm.current_state == "idle"

    def test_state_names(self):
        sm = StateMachine("idle")
        sm.add_state(CountingState("idle"))
        sm.add_state(CountingState("traveling"))
        assert sm.state_names == ["idle", "traveling"]

    def test_tick_stays_in_state(self):
        sm = StateMachine("idle")
        idle = CountingState("idle")
        sm.add_state(idle)
        sm.tick(1.0, {})
        assert sm.current_state == "idle"
        assert idle.tick_count == 1

    def test_unknown_current_state_raises(self):
        sm = StateMachine("ghost")
        with pytest.raises(KeyError):
            sm.tick(1.0, {})

    def test_transition_to_unknown_state_raises(self):
        sm = StateMachine("a")
        sm.add_state(CountingState("a", transition_after=1, transition_to="nowhere"))
        with pytest.raises(KeyError):
            sm.tick(1.0, {})


class TestCallbacks:
    def test_on_enter_called_on_first_tick(self):
        sm = StateMachine("idle")
        idle = CountingState("idle")
        sm.add_state(idle)
        assert idle.enter_count == 0
        sm.tick(1.0, {})
        assert idle.enter_count == 1
        sm.tick(1.0, {})
        assert idle.enter_count == 1

    def test_exit_and_enter_on_transition(self):
        sm = StateMachine("a")
        a = CountingState("a", transition_after=1, transition_to="b")
        b = CountingState("b")
        sm.add_state(a)
        sm.add_state(b)
        sm.tick(1.0, {})
        assert a.exit_count == 1
        assert b.enter_count == 1

    def test_returning_current_name_is_not_a_transition(self):
        sm = StateMachine("a")
        a = CountingState("a", transition_after=1, transition_to="a")
        sm.add_state(a)
        sm.tick(1.0, {})
        assert a.exit_count == 0
        assert list(sm.history) == []


class TestTransitions:
    def test_condition_based_transition(self):
        sm = StateMachine("idle")
        sm.add_state(CountingState("idle"))
        sm.add_state(CountingState("busy"))
        sm.add_transition("idle", "busy", lambda ctx: ctx.get("work", False))
        sm.tick(1.0, {"work": False})
        assert sm.current_state == "idle"
        sm.tick(1.0, {"work": True})
        assert sm.current_state == "busy"

    def test_first_matching_transition_wins(self):
        sm = StateMachine("idle")
        for name in ("idle", "a", "b"):
            sm.add_state(CountingState(name))
        sm.add_transition("idle", "a", lambda ctx: True)
        sm.add_transition("idle", "b", lambda ctx: True)
        sm.tick(1.0, {})
        assert sm.current_state == "a"

    def test_guard_blocks_transition(self):
        sm = StateMachine("idle")
        sm.add_state(CountingState("idle"))
        sm.add_state(CountingState("busy"))
        sm.add_transition("idle", "busy", lambda ctx: True, guard=lambda ctx: ctx.get("ok", False))
        sm.tick(1.0, {})
        assert sm.current_state == "idle"
        sm.tick(1.0, {"ok": True})
        assert sm.current_state == "busy"

    def test_tick_return_beats_condition(self):
        sm = StateMachine("a")
        sm.add_state(CountingState("a", transition_after=1, transition_to="c"))
        sm.add_state(CountingState("b"))
        sm.add_state(CountingState("c"))
        sm.add_transition("a", "b", lambda ctx: True)
        sm.tick(1.0, {})
        assert sm.current_state == "c"

    def test_history_records_changes(self):
        sm = StateMachine("a")
        sm.add_state(CountingState("a", transition_after=1, transition_to="b"))
        sm.add_state(CountingState("b", transition_after=1, transition_to="a"))
        sm.tick(1.0, {})
        sm.tick(1.0, {})
        assert list(sm.history) == [("a", "b"), ("b", "a")]

    def test_transition_fires(self):
        tr = Transition("a", "b", condition=lambda ctx: ctx["x"] > 1, guard=lambda ctx: ctx["x"] < 5)
        assert tr.fires({"x": 3})
        assert not tr.fires({"x": 0})
        assert not tr.fires({"x": 9})
