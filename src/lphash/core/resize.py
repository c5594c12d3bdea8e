"""Grow/shrink decisions and full-rehash rebuilds of the slot array."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Tuple

from lphash.contracts.error import InvalidArgumentError

from .hashing import HashFunction
from .probing import place
from .slots import Slots, allocate_slots

logger = logging.getLogger("lphash")

DEFAULT_GROW_AT: float = 0.7
DEFAULT_SHRINK_AT: float = 0.1
DEFAULT_GROWTH: float = 2.0


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


@dataclass(frozen=True)
class ResizePolicy:
    """Load-factor thresholds that drive resizing.

    Both checks look at the load the table would have *after* the pending
    insert or delete, so a table never fills up between probes.
    """

    initial_capacity: int
    grow_at: float = DEFAULT_GROW_AT
    shrink_at: float = DEFAULT_SHRINK_AT
    growth_factor: float = DEFAULT_GROWTH

    def validate(self) -> None:
        if isinstance(self.initial_capacity, bool) or not isinstance(self.initial_capacity, int):
            raise InvalidArgumentError("initial_capacity must be an integer")
        if self.initial_capacity <= 1:
            raise InvalidArgumentError("initial_capacity must be > 1")
        if not _is_number(self.grow_at) or not 0.0 < self.grow_at <= 1.0:
            raise InvalidArgumentError("grow_at must be in (0, 1]")
        if not _is_number(self.shrink_at) or not 0.0 <= self.shrink_at < self.grow_at:
            raise InvalidArgumentError("shrink_at must be in [0, grow_at)")
        if not _is_number(self.growth_factor) or self.growth_factor <= 0:
            raise InvalidArgumentError("growth_factor must be > 0")

    def needs_grow(self, count_after: int, capacity: int) -> bool:
        return count_after / capacity >= self.grow_at

    def grow_target(self, count_after: int, capacity: int) -> int:
        target = capacity
        while count_after / target >= self.grow_at:
            target = max(target + 1, round(target * self.growth_factor))
        return target

    def needs_shrink(self, count_after: int, capacity: int) -> bool:
        return capacity > self.initial_capacity and count_after / capacity <= self.shrink_at

    def shrink_target(self, count_after: int, capacity: int) -> int:
        target = max(self.initial_capacity, round(capacity / self.growth_factor))
        # the survivors must stay strictly below the grow threshold
        while count_after / target >= self.grow_at:
            target += 1
        return min(target, capacity)


def rehash(slots: Slots, new_capacity: int, hash_function: HashFunction) -> Tuple[Slots, int]:
    """Move every entry into a fresh array of ``new_capacity`` slots.

    Entries are moved, not copied; each gets the probe distance of its new
    position. Returns the new array and the number of entries placed.
    """

    fresh = allocate_slots(new_capacity)
    placed = 0
    for entry in slots:
        if entry is not None:
            place(fresh, entry, hash_function)
            placed += 1
    return fresh, placed


def resize(slots: Slots, new_capacity: int, hash_function: HashFunction, reason: str) -> Tuple[Slots, int]:
    old_capacity = len(slots)
    fresh, placed = rehash(slots, new_capacity, hash_function)
    logger.debug(
        "Resized table (%s): capacity %d -> %d, entries=%d",
        reason,
        old_capacity,
        new_capacity,
        placed,
    )
    return fresh, placed


__all__ = [
    "DEFAULT_GROWTH",
    "DEFAULT_GROW_AT",
    "DEFAULT_SHRINK_AT",
    "ResizePolicy",
    "rehash",
    "resize",
]
