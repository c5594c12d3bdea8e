from __future__ import annotations

import pytest

from lphash.contracts.error import InvalidArgumentError
from lphash.core.resize import ResizePolicy, rehash
from lphash.core.slots import Entry


def test_reference_thresholds() -> None:
    policy = ResizePolicy(4, 0.75, 0.1, 2.0)
    policy.validate()
    assert not policy.needs_grow(2, 4)
    assert policy.needs_grow(3, 4)
    assert policy.grow_target(3, 4) == 8
    assert policy.needs_shrink(0, 8)
    assert policy.shrink_target(0, 8) == 4
    # never below the initial capacity
    assert not policy.needs_shrink(0, 4)


def test_grow_target_loops_until_load_is_below_threshold() -> None:
    policy = ResizePolicy(2, 0.5, 0.0, 1.1)
    target = policy.grow_target(10, 2)
    assert 10 / target < 0.5
    assert target > 2


def test_shrink_target_keeps_survivors_below_grow_threshold() -> None:
    policy = ResizePolicy(2, 0.5, 0.4, 4.0)
    assert policy.needs_shrink(6, 16)
    target = policy.shrink_target(6, 16)
    assert target == 13
    assert 6 / target < policy.grow_at


def test_shrink_target_never_exceeds_current_capacity() -> None:
    policy = ResizePolicy(8, 0.5, 0.45, 1.01)
    assert policy.shrink_target(7, 16) <= 16


@pytest.mark.parametrize(
    ("args", "message"),
    [
        ((1, 0.7, 0.1, 2.0), "initial_capacity"),
        ((8, 0.0, 0.0, 2.0), "grow_at"),
        ((8, 0.5, 0.5, 2.0), "shrink_at"),
        ((8, 0.5, 0.1, 0.0), "growth_factor"),
    ],
)
def test_validate_names_the_bad_field(args: tuple, message: str) -> None:
    with pytest.raises(InvalidArgumentError) as excinfo:
        ResizePolicy(*args).validate()
    assert message in str(excinfo.value)


def test_rehash_moves_entries_and_recomputes_distances() -> None:
    a = Entry("a", 1, 0)
    b = Entry("b", 2, 1)
    slots = [a, b, None, None]
    homes = {"a": 1, "b": 1}
    fresh, placed = rehash(slots, 8, lambda key: homes[key])
    assert placed == 2
    assert len(fresh) == 8
    assert fresh[1] is a and a.probe_distance == 0
    assert fresh[2] is b and b.probe_distance == 1
    assert sum(entry is not None for entry in fresh) == 2
