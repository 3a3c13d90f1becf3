"""Plain-text rendering of a simulation snapshot.

Glyphs: ``#`` obstacle, ``S`` base, ``M``/``E`` mineral/energy, ``.`` empty.
Robots draw over terrain with their role icon (``X`` explorer, ``R`` miner);
the lowest robot id wins when several share a cell.
"""

from __future__ import annotations

from forage.simulation.engine import SimulationSnapshot
from forage.units import get_type

CLEAR_SCREEN = "\x1b[2J\x1b[H"


def render_grid(snapshot: SimulationSnapshot) -> list[str]:
    rows = [[cell.glyph for cell in row] for row in snapshot.grid]
    for robot in sorted(snapshot.robots, key=lambda r: r["robot_id"], reverse=True):
        role_type = get_type(robot["role"])
        icon = role_type.icon if role_type is not None else "?"
        pos = robot["position"]
        rows[pos["y"]][pos["x"]] = icon
    return ["".join(r) for r in rows]


def render_status(snapshot: SimulationSnapshot) -> list[str]:
    stored = ", ".join(f"{k.value} {n}" for k, n in snapshot.base_inventory.items()) or "empty"
    left = ", ".join(f"{k.value} {n}" for k, n in snapshot.remaining.items())
    lines = [f"tick {snapshot.tick} | base: {stored} | on map: {left} | reports: {len(snapshot.reports)}"]
    for r in snapshot.robots:
        cargo = f" carrying {r['carried']}/{r['capacity']}" if r["capacity"] else ""
        lines.append(
            f"  robot {r['robot_id']} {r['role']:<8} {r['state']:<10} "
            f"at ({r['position']['x']}, {r['position']['y']}){cargo}"
        )
    return lines


def render_frame(snapshot: SimulationSnapshot, logs: list[str] | None = None) -> str:
    """Full frame: map, status block, then the event log panel."""
    width = snapshot.width
    parts = ["+" + "-" * width + "+"]
    parts += ["|" + line + "|" for line in render_grid(snapshot)]
    parts.append("+" + "-" * width + "+")
    parts += render_status(snapshot)
    if logs:
        parts.append("-- log --")
        parts += logs
    return "\n".join(parts)
