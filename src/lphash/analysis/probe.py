"""Probe-path tracing utilities for linear-probing tables."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from lphash.core.probing import backward_shift, home_slot, place
from lphash.core.slots import Entry, Slots
from lphash.core.table import LinearProbingTable

ProbeTrace = Dict[str, Any]


def _json_friendly(value: Any) -> Any:
    """Return a JSON-serialisable representation of ``value``."""

    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return repr(value)


def _walk(
    table: LinearProbingTable,
    slots: Slots,
    key: Any,
) -> Tuple[List[Dict[str, Any]], str, Optional[int]]:
    """Replay the probe sequence for ``key`` over ``slots``.

    Returns the recorded steps, the terminal state and the final slot index.
    """

    capacity = len(slots)
    equals = table.key_adapter.equals
    start = home_slot(table.hash_function, key, capacity)
    idx = start
    path: List[Dict[str, Any]] = []
    for step_no in range(capacity):
        entry = slots[idx]
        step: Dict[str, Any] = {"step": step_no, "slot": idx, "start_slot": start}
        if entry is None:
            step["state"] = "empty"
            path.append(step)
            return path, "empty", idx
        matches = bool(equals(entry.key, key))
        step.update(
            {
                "state": "occupied",
                "key_repr": repr(entry.key),
                "value_repr": repr(entry.value),
                "ideal_slot": (idx - entry.probe_distance) % capacity,
                "probe_distance": entry.probe_distance,
                "matches": matches,
            }
        )
        path.append(step)
        if matches:
            return path, "match", idx
        idx = (idx + 1) % capacity
    return path, "overflow", None


def _simulated_resize(table: LinearProbingTable, slots: Slots, capacity: int) -> Slots:
    """Rebuild the (private) ``slots`` copy at ``capacity``."""

    fresh: Slots = [None] * capacity
    for entry in slots:
        if entry is not None:
            place(fresh, entry, table.hash_function)
    return fresh


def trace_probe_get(table: LinearProbingTable, key: Any) -> ProbeTrace:
    slots = _slots_of(table)
    path, terminal, _ = _walk(table, slots, key)
    return {
        "operation": "get",
        "key_repr": repr(key),
        "found": terminal == "match",
        "terminal": terminal,
        "capacity": len(slots),
        "path": path,
    }


def trace_probe_put(table: LinearProbingTable, key: Any, value: Any) -> ProbeTrace:
    slots = _slots_of(table)
    path, terminal, _ = _walk(table, slots, key)
    resized = False
    if terminal == "empty" and table.policy.needs_grow(len(table) + 1, len(slots)):
        target = table.policy.grow_target(len(table) + 1, len(slots))
        slots = _simulated_resize(table, slots, target)
        path, terminal, _ = _walk(table, slots, key)
        resized = True
    if terminal == "match":
        path[-1]["action"] = "update"
        terminal = "update"
    elif terminal == "empty":
        path[-1]["action"] = "insert"
        terminal = "insert"
    return {
        "operation": "put",
        "key_repr": repr(key),
        "value_repr": _json_friendly(value),
        "found": terminal == "update",
        "terminal": terminal,
        "capacity": len(slots),
        "resized": resized,
        "path": path,
    }


def trace_probe_delete(table: LinearProbingTable, key: Any) -> ProbeTrace:
    """Trace a delete, including any shrink and the entries the backward shift moves."""

    slots = _slots_of(table)
    path, terminal, found_idx = _walk(table, slots, key)
    resized = False
    shifts: List[Dict[str, Any]] = []
    if terminal == "match":
        count_after = len(table) - 1
        if table.policy.needs_shrink(count_after, len(slots)):
            target = table.policy.shrink_target(count_after, len(slots))
            if target < len(slots):
                slots = _simulated_resize(table, slots, target)
                path, terminal, found_idx = _walk(table, slots, key)
                resized = True
    if terminal == "match" and found_idx is not None:
        # slots hold private Entry copies, so the shift can be replayed in place
        slots[found_idx] = None
        for entry, from_slot, to_slot in backward_shift(slots, found_idx):
            shifts.append(
                {
                    "key_repr": repr(entry.key),
                    "from_slot": from_slot,
                    "to_slot": to_slot,
                    "probe_distance": entry.probe_distance,
                }
            )
    return {
        "operation": "delete",
        "key_repr": repr(key),
        "found": terminal == "match",
        "terminal": terminal,
        "capacity": len(slots),
        "resized": resized,
        "path": path,
        "shifts": shifts,
    }


def _slots_of(table: LinearProbingTable) -> Slots:
    return [
        Entry(snap.key, snap.value, snap.probe_distance) if snap.occupied else None
        for snap in table.get_all()
    ]


def format_trace_lines(
    trace: Dict[str, Any],
    *,
    seeds: Optional[Sequence[str]] = None,
    export_path: Optional[Union[str, Path]] = None,
) -> List[str]:
    """Return a human-friendly rendering of a probe trace."""

    lines: List[str] = []
    operation = str(trace.get("operation", "?"))
    lines.append(f"Probe visualization {operation.upper()} key={trace.get('key_repr', '?')}")
    lines.append(f"Found: {trace.get('found')} | Terminal: {trace.get('terminal')}")
    if "capacity" in trace:
        capacity_line = f"Capacity: {trace['capacity']}"
        if trace.get("resized"):
            capacity_line += " (after resize)"
        lines.append(capacity_line)
    if seeds:
        lines.append("Seed entries: " + ", ".join(seeds))
    lines.append("Steps:")
    path = trace.get("path")
    if not isinstance(path, list) or not path:
        lines.append("  (no path recorded)")
    else:
        for item in path:
            if not isinstance(item, dict):
                lines.append(f"  {item!r}")
                continue
            attrs: List[str] = []
            for key in (
                "slot",
                "start_slot",
                "state",
                "action",
                "ideal_slot",
                "probe_distance",
                "matches",
                "key_repr",
            ):
                if key in item and item[key] is not None:
                    value = item[key]
                    if isinstance(value, bool):
                        value = str(value).lower()
                    attrs.append(f"{key}={value}")
            lines.append(f"  Step {item.get('step', '?')}: " + ", ".join(attrs))
    shifts = trace.get("shifts")
    if shifts:
        lines.append("Backward shifts:")
        for shift in shifts:
            lines.append(
                f"  {shift['key_repr']}: slot {shift['from_slot']} -> {shift['to_slot']}"
                f" (probe_distance={shift['probe_distance']})"
            )
    if export_path:
        lines.append(f"Trace JSON written to: {export_path}")
    return lines


__all__ = [
    "ProbeTrace",
    "format_trace_lines",
    "trace_probe_delete",
    "trace_probe_get",
    "trace_probe_put",
]
