"""EventBus: thread-safe pub/sub for simulation events.

Robot threads publish what they do (a resource found, a claim taken, a
deposit at base) and observers such as the text renderer's log panel
subscribe.  Publishing never blocks a robot: a full subscriber queue drops
its oldest message instead.

Event types published by the engine:

    sim_started        {"robots": int, "width": int, "height": int}
    resource_reported  {"robot_id", "position", "kind", "quantity"}
    resource_claimed   {"robot_id", "position"}
    resource_released  {"robot_id", "position"}
    resource_depleted  {"robot_id", "position"}
    cargo_collected    {"robot_id", "position", "kind", "amount", "carried"}
    cargo_deposited    {"robot_id", "deposited", "base_inventory"}
    sim_stopped        {"tick": int}
"""

from __future__ import annotations

import queue
import threading
from collections import deque


class EventBus:
    """Simple thread-safe pub/sub for pushing events to subscribers."""

    QUEUE_SIZE = 1000

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: list[queue.Queue] = []

    def subscribe(self) -> queue.Queue:
        """Subscribe to events. Returns a Queue that receives all events."""
        q: queue.Queue = queue.Queue(maxsize=self.QUEUE_SIZE)
        with self._lock:
            self._subscribers.append(q)
        return q

    def unsubscribe(self, q: queue.Queue) -> None:
        with self._lock:
            try:
                self._subscribers.remove(q)
            except ValueError:
                pass

    def publish(self, event_type: str, data: dict | None = None) -> None:
        msg = {"type": event_type}
        if data is not None:
            msg["data"] = data
        with self._lock:
            for q in self._subscribers:
                try:
                    q.put_nowait(msg)
                except queue.Full:
                    # Drop oldest so the latest state changes still land
                    try:
                        q.get_nowait()
                    except queue.Empty:
                        pass
                    try:
                        q.put_nowait(msg)
                    except queue.Full:
                        pass


def describe_event(msg: dict) -> str:
    """One-line human readable text for an event (log panel format)."""
    kind = msg.get("type", "")
    data = msg.get("data") or {}
    pos = data.get("position")
    where = f"({pos[0]}, {pos[1]})" if pos else ""
    rid = data.get("robot_id")
    if kind == "resource_reported":
        return f"Explorer {rid} found {data['kind']} x{data['quantity']} at {where}"
    if kind == "resource_claimed":
        return f"Miner {rid} heading to resource at {where}"
    if kind == "resource_released":
        return f"Miner {rid} gave up on resource at {where}"
    if kind == "resource_depleted":
        return f"Resource at {where} depleted by miner {rid}"
    if kind == "cargo_collected":
        return f"Miner {rid} collected {data['amount']} {data['kind']} (carrying {data['carried']})"
    if kind == "cargo_deposited":
        total = sum(data["deposited"].values())
        return f"Miner {rid} unloaded {total} at base"
    if kind == "sim_started":
        return f"Simulation started with {data['robots']} robots"
    if kind == "sim_stopped":
        return f"Simulation stopped at tick {data['tick']}"
    return kind


class EventLog:
    """Keeps the most recent events from a bus as display lines.

    Call ``drain()`` from the consumer thread; it empties the subscription
    queue into a bounded deque so the panel always shows the newest
    ``max_lines`` entries.
    """

    def __init__(self, bus: EventBus, max_lines: int = 10) -> None:
        self._bus = bus
        self._queue = bus.subscribe()
        self._lines: deque[str] = deque(maxlen=max_lines)

    def drain(self) -> list[str]:
        while True:
            try:
                msg = self._queue.get_nowait()
            except queue.Empty:
                break
            self._lines.append(describe_event(msg))
        return list(self._lines)

    @property
    def lines(self) -> list[str]:
        return list(self._lines)

    def close(self) -> None:
        self._bus.unsubscribe(self._queue)
