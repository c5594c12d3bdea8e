"""Linear-probing search shared by insert, lookup, delete and rehash."""

from __future__ import annotations

from typing import Any, Callable, List, NamedTuple, Optional, Tuple

from lphash.contracts.error import InvariantError

from .hashing import HashFunction
from .slots import Entry, Slots


class ProbeResult(NamedTuple):
    index: int
    distance: int
    entry: Optional[Entry]

    @property
    def occupied(self) -> bool:
        return self.entry is not None


def home_slot(hash_function: HashFunction, key: Any, capacity: int) -> int:
    return hash_function(key) % capacity


def find(
    slots: Slots,
    key: Any,
    hash_function: HashFunction,
    equals: Callable[[Any, Any], bool],
) -> ProbeResult:
    """Walk from the key's home slot to its entry or the first empty slot."""

    capacity = len(slots)
    idx = home_slot(hash_function, key, capacity)
    for distance in range(capacity):
        entry = slots[idx]
        if entry is None:
            return ProbeResult(idx, distance, None)
        if equals(entry.key, key):
            return ProbeResult(idx, distance, entry)
        idx = (idx + 1) % capacity
    raise InvariantError(f"probe walked all {capacity} slots without finding the key or an empty slot")


def place(slots: Slots, entry: Entry, hash_function: HashFunction) -> int:
    """Put ``entry`` in the first empty slot of its probe sequence.

    Keys are not compared; the caller guarantees ``entry.key`` is not already
    present. Returns the slot index and records the walked distance.
    """

    capacity = len(slots)
    idx = home_slot(hash_function, entry.key, capacity)
    for distance in range(capacity):
        if slots[idx] is None:
            entry.probe_distance = distance
            slots[idx] = entry
            return idx
        idx = (idx + 1) % capacity
    raise InvariantError(f"no empty slot left among {capacity} while placing an entry")


def backward_shift(slots: Slots, gap: int) -> List[Tuple[Entry, int, int]]:
    """Close the hole at ``gap`` by pulling later chain members back into it.

    An entry may move into the gap when its home slot is not inside the
    cyclic range ``(gap, idx]``, i.e. when its probe distance reaches back to
    the gap. Returns ``(entry, from_slot, to_slot)`` for every move, in order.
    """

    capacity = len(slots)
    moves: List[Tuple[Entry, int, int]] = []
    idx = (gap + 1) % capacity
    for _ in range(capacity - 1):
        entry = slots[idx]
        if entry is None:
            break
        shift = (idx - gap) % capacity
        if entry.probe_distance >= shift:
            entry.probe_distance -= shift
            slots[gap] = entry
            slots[idx] = None
            moves.append((entry, idx, gap))
            gap = idx
        idx = (idx + 1) % capacity
    return moves


__all__ = ["ProbeResult", "backward_shift", "find", "home_slot", "place"]
