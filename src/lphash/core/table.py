from __future__ import annotations

import sys
from collections import defaultdict
from dataclasses import dataclass
from typing import IO, TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Tuple

from lphash.contracts.error import InvalidArgumentError, NotFoundError

from . import probing
from .adapters import TypeAdapter, resolve_adapter, validate_adapter
from .hashing import HashFunction, resolve_hash_function
from .resize import DEFAULT_GROW_AT, DEFAULT_GROWTH, DEFAULT_SHRINK_AT, ResizePolicy, resize
from .slots import Entry, SlotSnapshot, Slots, allocate_slots, snapshot_slots

if TYPE_CHECKING:  # pragma: no cover
    from lphash.config import TablePolicy


@dataclass(frozen=True)
class TableInfo:
    count: int
    capacity: int
    collisions: int
    load_factor: float
    max_probe_distance: int
    avg_probe_distance: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "capacity": self.capacity,
            "collisions": self.collisions,
            "load_factor": self.load_factor,
            "max_probe_distance": self.max_probe_distance,
            "avg_probe_distance": self.avg_probe_distance,
        }


class LinearProbingTable:
    """Open-addressing hash table with linear probing and load-driven resizing.

    Keys and values are handled only through their :class:`TypeAdapter`:
    the table stores adapter copies, compares keys with the key adapter's
    ``equals`` and releases owned objects with ``destroy``. Deletion uses
    backward shifting, so probe chains stay intact without tombstones.
    """

    __slots__ = ("_policy", "_hash", "_key_adapter", "_value_adapter", "_slots", "_count", "_generation")

    def __init__(
        self,
        initial_capacity: int,
        grow_at: float = DEFAULT_GROW_AT,
        shrink_at: float = DEFAULT_SHRINK_AT,
        growth_factor: float = DEFAULT_GROWTH,
        hash_function: Optional[HashFunction] = None,
        key_adapter: Optional[TypeAdapter] = None,
        value_adapter: Optional[TypeAdapter] = None,
    ) -> None:
        policy = ResizePolicy(initial_capacity, grow_at, shrink_at, growth_factor)
        policy.validate()
        if hash_function is None or not callable(hash_function):
            raise InvalidArgumentError("hash_function must be a callable")
        self._key_adapter = validate_adapter(key_adapter, "key")
        self._value_adapter = validate_adapter(value_adapter, "value")
        self._policy = policy
        self._hash = hash_function
        self._slots: Optional[Slots] = allocate_slots(initial_capacity)
        self._count = 0
        self._generation = 0

    @classmethod
    def from_policy(cls, policy: "TablePolicy") -> "LinearProbingTable":
        return cls(
            policy.initial_capacity,
            policy.grow_at,
            policy.shrink_at,
            policy.growth_factor,
            resolve_hash_function(policy.hash_function),
            resolve_adapter(policy.key_type),
            resolve_adapter(policy.value_type),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def _live_slots(self) -> Slots:
        if self._slots is None:
            raise InvalidArgumentError("table has been freed")
        return self._slots

    def free(self) -> None:
        """Drop the slot array, then release every entry through the adapters."""

        detached = [entry for entry in self._live_slots() if entry is not None]
        self._slots = None
        self._count = 0
        self._generation += 1
        # the table is already torn down; keep releasing past a failing destroy
        failures: List[Exception] = []
        for entry in detached:
            try:
                entry.release(self._key_adapter, self._value_adapter)
            except Exception as exc:
                failures.append(exc)
        if failures:
            raise failures[0]

    @property
    def freed(self) -> bool:
        return self._slots is None

    def __enter__(self) -> "LinearProbingTable":
        return self

    def __exit__(self, *_exc: object) -> None:
        if self._slots is not None:
            self.free()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return self._count

    @property
    def capacity(self) -> int:
        return len(self._live_slots())

    def get_capacity(self) -> int:
        return self.capacity

    @property
    def policy(self) -> ResizePolicy:
        return self._policy

    @property
    def initial_capacity(self) -> int:
        return self._policy.initial_capacity

    @property
    def key_adapter(self) -> TypeAdapter:
        return self._key_adapter

    @property
    def value_adapter(self) -> TypeAdapter:
        return self._value_adapter

    @property
    def hash_function(self) -> HashFunction:
        return self._hash

    def load_factor(self) -> float:
        return self._count / self.capacity

    # ------------------------------------------------------------------
    # Probing and resizing
    # ------------------------------------------------------------------
    def _find(self, key: Any) -> probing.ProbeResult:
        return probing.find(self._live_slots(), key, self._hash, self._key_adapter.equals)

    def _resize(self, new_capacity: int, reason: str) -> None:
        slots, placed = resize(self._live_slots(), new_capacity, self._hash, reason)
        self._slots = slots
        self._count = placed

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def put(self, key: Any, value: Any) -> None:
        """Insert ``key`` or replace the value it maps to."""

        if key is None:
            raise InvalidArgumentError("key is required")
        if value is None:
            raise InvalidArgumentError("value is required")
        found = self._find(key)
        if found.entry is not None:
            owned = self._value_adapter.copy(value)
            self._generation += 1
            found.entry.replace_value(owned, self._value_adapter)
            return

        entry = Entry.acquire(key, value, self._key_adapter, self._value_adapter)
        capacity = len(self._live_slots())
        if self._policy.needs_grow(self._count + 1, capacity):
            self._resize(self._policy.grow_target(self._count + 1, capacity), "grow")
            found = self._find(entry.key)
        entry.probe_distance = found.distance
        self._live_slots()[found.index] = entry
        self._count += 1
        self._generation += 1

    def get(self, key: Any) -> Optional[Any]:
        """Return the stored value for ``key`` or ``None``.

        The result is borrowed: it stays valid only until the next mutation
        of the table. Copy it with the value adapter to keep it longer.
        """

        if key is None:
            raise InvalidArgumentError("key is required")
        found = self._find(key)
        return None if found.entry is None else found.entry.value

    def delete(self, key: Any) -> bool:
        """Remove ``key``; returns False when the key is absent."""

        if key is None:
            raise InvalidArgumentError("key is required")
        found = self._find(key)
        if found.entry is None:
            return False
        capacity = len(self._live_slots())
        if self._policy.needs_shrink(self._count - 1, capacity):
            target = self._policy.shrink_target(self._count - 1, capacity)
            if target < capacity:
                self._resize(target, "shrink")
                found = self._find(key)
        slots = self._live_slots()
        entry = found.entry
        assert entry is not None
        slots[found.index] = None
        self._count -= 1
        probing.backward_shift(slots, found.index)
        self._generation += 1
        # structure is consistent before adapter code runs
        entry.release(self._key_adapter, self._value_adapter)
        return True

    def __contains__(self, key: Any) -> bool:
        return key is not None and self._find(key).entry is not None

    def __getitem__(self, key: Any) -> Any:
        value = self.get(key)
        if value is None:
            raise NotFoundError(f"key not found: {key!r}")
        return value

    def __setitem__(self, key: Any, value: Any) -> None:
        self.put(key, value)

    def __delitem__(self, key: Any) -> None:
        if not self.delete(key):
            raise NotFoundError(f"key not found: {key!r}")

    # ------------------------------------------------------------------
    # Iteration and introspection
    # ------------------------------------------------------------------
    def items(self) -> Iterator[Tuple[Any, Any]]:
        slots = self._live_slots()
        generation = self._generation
        for entry in slots:
            if self._generation != generation:
                raise RuntimeError("table changed during iteration")
            if entry is not None:
                yield entry.key, entry.value

    def keys(self) -> Iterator[Any]:
        for key, _ in self.items():
            yield key

    def __iter__(self) -> Iterator[Any]:
        return self.keys()

    def get_all(self) -> Tuple[SlotSnapshot, ...]:
        """Snapshot of every slot, empty ones included, in index order."""

        return snapshot_slots(self._live_slots())

    def collision_count(self) -> int:
        return sum(1 for entry in self._live_slots() if entry is not None and entry.probe_distance)

    def probe_histogram(self) -> List[List[int]]:
        histogram: Dict[int, int] = defaultdict(int)
        for entry in self._live_slots():
            if entry is not None:
                histogram[entry.probe_distance] += 1
        return [[distance, count] for distance, count in sorted(histogram.items())]

    def info(self) -> TableInfo:
        distances = [entry.probe_distance for entry in self._live_slots() if entry is not None]
        capacity = self.capacity
        return TableInfo(
            count=self._count,
            capacity=capacity,
            collisions=sum(1 for d in distances if d),
            load_factor=self._count / capacity,
            max_probe_distance=max(distances, default=0),
            avg_probe_distance=(sum(distances) / len(distances)) if distances else 0.0,
        )

    def print_info(self, stream: Optional[IO[str]] = None) -> None:
        info = self.info()
        out = stream if stream is not None else sys.stdout
        out.write(f"Used: {info.count}\n")
        out.write(f"Capacity: {info.capacity}\n")
        out.write(f"Collisions: {info.collisions}\n")

    def __repr__(self) -> str:
        if self._slots is None:
            return f"{type(self).__name__}(freed)"
        return f"{type(self).__name__}(count={self._count}, capacity={len(self._slots)})"


def create_default(
    initial_capacity: int,
    hash_function: HashFunction,
    key_adapter: TypeAdapter,
    value_adapter: TypeAdapter,
) -> LinearProbingTable:
    """Build a table with the default grow/shrink thresholds and growth."""

    return LinearProbingTable(
        initial_capacity,
        DEFAULT_GROW_AT,
        DEFAULT_SHRINK_AT,
        DEFAULT_GROWTH,
        hash_function,
        key_adapter,
        value_adapter,
    )


__all__ = ["LinearProbingTable", "TableInfo", "create_default"]
