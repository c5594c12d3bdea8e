"""Slot array and entry lifecycle."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, NamedTuple, Optional

from lphash.contracts.error import AllocationFailure

from .adapters import TypeAdapter

logger = logging.getLogger("lphash")


@dataclass(slots=True)
class Entry:
    key: Any
    value: Any
    probe_distance: int = 0

    @classmethod
    def acquire(
        cls,
        key: Any,
        value: Any,
        key_adapter: TypeAdapter,
        value_adapter: TypeAdapter,
    ) -> "Entry":
        """Build an entry owning adapter copies of ``key`` and ``value``."""

        owned_key = key_adapter.copy(key)
        try:
            owned_value = value_adapter.copy(value)
        except Exception:
            key_adapter.destroy(owned_key)
            raise
        return cls(owned_key, owned_value)

    def replace_value(self, owned_value: Any, value_adapter: TypeAdapter) -> None:
        previous = self.value
        self.value = owned_value
        value_adapter.destroy(previous)

    def release(self, key_adapter: TypeAdapter, value_adapter: TypeAdapter) -> None:
        key, value = self.key, self.value
        self.key = None
        self.value = None
        try:
            key_adapter.destroy(key)
        finally:
            value_adapter.destroy(value)


Slots = List[Optional[Entry]]


class SlotSnapshot(NamedTuple):
    """Read-only view of one slot; ``key``/``value`` are borrowed."""

    index: int
    occupied: bool
    key: Any = None
    value: Any = None
    probe_distance: int = 0


def allocate_slots(capacity: int) -> Slots:
    """Return an all-empty slot array, failing hard if it cannot be built."""

    try:
        return [None] * capacity
    except (MemoryError, OverflowError) as exc:
        logger.critical("Slot array allocation failed (capacity=%d)", capacity)
        raise AllocationFailure(f"cannot allocate {capacity} slots") from exc


def snapshot_slots(slots: Slots) -> tuple[SlotSnapshot, ...]:
    return tuple(
        SlotSnapshot(idx, False)
        if entry is None
        else SlotSnapshot(idx, True, entry.key, entry.value, entry.probe_distance)
        for idx, entry in enumerate(slots)
    )


__all__ = ["Entry", "SlotSnapshot", "Slots", "allocate_slots", "snapshot_slots"]
