"""Minimal finite state machine used for robot behaviours.

A ``StateMachine`` owns named ``State`` objects.  Each ``tick(dt, ctx)``:

  1. enters the initial state on the first call (``on_enter``),
  2. runs the current state's ``tick`` - a returned state name is taken
     as the next state,
  3. otherwise evaluates the registered ``Transition`` conditions for the
     current state in insertion order; the first match whose guard passes
     wins,
  4. on a change calls ``on_exit`` then ``on_enter`` and records the
     change in ``history``.

``ctx`` is a plain dict supplied by the caller.  States keep no reference
to the machine; anything they need arrives through ``ctx``.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Callable

Condition = Callable[[dict], bool]


class State:
    """Base state.  Subclasses override ``tick`` and optionally the hooks."""

    def __init__(self, name: str) -> None:
        self.name = name

    def on_enter(self, ctx: dict) -> None:
        pass

    def on_exit(self, ctx: dict) -> None:
        pass

    def tick(self, dt: float, ctx: dict) -> str | None:
        return None

    def __repr__(self) -> str:
        return f"<State {self.name}>"


@dataclass(frozen=True)
class Transition:
    source: str
    target: str
    condition: Condition
    guard: Condition | None = None

    def fires(self, ctx: dict) -> bool:
        if not self.condition(ctx):
            return False
        return self.guard is None or self.guard(ctx)


class StateMachine:
    def __init__(self, initial: str) -> None:
        self._states: dict[str, State] = {}
        self._transitions: list[Transition] = []
        self._current = initial
        self._entered = False
        self.history: deque[tuple[str, str]] = deque(maxlen=50)

    @property
    def current_state(self) -> str:
        return self._current

    @property
    def state_names(self) -> list[str]:
        return list(self._states)

    def add_state(self, state: State) -> None:
        self._states[state.name] = state

    def add_transition(
        self,
        source: str,
        target: str,
        condition: Condition,
        guard: Condition | None = None,
    ) -> None:
        self._transitions.append(Transition(source, target, condition, guard))

    def tick(self, dt: float, ctx: dict) -> str:
        state = self._states.get(self._current)
        if state is None:
            raise KeyError(f"unknown state: {self._current!r}")
        if not self._entered:
            self._entered = True
            state.on_enter(ctx)

        nxt = state.tick(dt, ctx)
        if nxt is None:
            for tr in self._transitions:
                if tr.source == self._current and tr.fires(ctx):
                    nxt = tr.target
                    break
        if nxt is not None and nxt != self._current:
            self._change(nxt, ctx)
        return self._current

    def _change(self, name: str, ctx: dict) -> None:
        if name not in self._states:
            raise KeyError(f"unknown state: {name!r}")
        old = self._states.get(self._current)
        if old is not None and self._entered:
            old.on_exit(ctx)
        self.history.append((self._current, name))
        self._current = name
        self._entered = True
        self._states[name].on_enter(ctx)
