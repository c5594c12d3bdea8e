from __future__ import annotations

from typing import Any

import pytest
from hypothesis import given, strategies as st

from lphash.contracts.error import InvalidArgumentError
from lphash.core.adapters import (
    INT64_ADAPTER,
    INT64_MAX,
    INT64_MIN,
    OBJECT_ADAPTER,
    TEXT_ADAPTER,
    TypeAdapter,
    resolve_adapter,
    validate_adapter,
)
from lphash.core.hashing import (
    HASH_FUNCTIONS,
    builtin_hash,
    fnv1a_hash,
    golden_hash,
    resolve_hash_function,
)


def test_text_adapter_accepts_only_str() -> None:
    assert TEXT_ADAPTER.copy("abc") == "abc"
    assert TEXT_ADAPTER.equals("abc", "abc")
    assert not TEXT_ADAPTER.equals("abc", "abd")
    assert not TEXT_ADAPTER.equals("1", 1)
    for bad in (b"abc", 1, ["a"]):
        with pytest.raises(InvalidArgumentError):
            TEXT_ADAPTER.copy(bad)
    assert TEXT_ADAPTER.destroy("abc") is None


def test_int64_adapter_range_and_bool_rejection() -> None:
    assert INT64_ADAPTER.copy(INT64_MAX) == INT64_MAX
    assert INT64_ADAPTER.copy(INT64_MIN) == INT64_MIN
    for bad in (INT64_MAX + 1, INT64_MIN - 1, True, 1.0, "1"):
        with pytest.raises(InvalidArgumentError):
            INT64_ADAPTER.copy(bad)
    assert INT64_ADAPTER.equals(7, 7)
    assert not INT64_ADAPTER.equals(1, True)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("42", 42), (" -7 ", -7), (str(INT64_MAX), INT64_MAX)],
)
def test_int64_parse(raw: str, expected: int) -> None:
    assert INT64_ADAPTER.parse(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "1.5", "0x10", str(INT64_MAX + 1)])
def test_int64_parse_rejects(raw: str) -> None:
    with pytest.raises(InvalidArgumentError):
        INT64_ADAPTER.parse(raw)


def test_object_adapter_copies_deeply() -> None:
    original = {"nested": [1, 2]}
    owned = OBJECT_ADAPTER.copy(original)
    original["nested"].append(3)
    assert owned == {"nested": [1, 2]}
    assert OBJECT_ADAPTER.equals(owned, {"nested": [1, 2]})


def test_resolve_adapter_names() -> None:
    assert resolve_adapter("text") is TEXT_ADAPTER
    assert resolve_adapter("int64") is INT64_ADAPTER
    with pytest.raises(InvalidArgumentError) as excinfo:
        resolve_adapter("float")
    assert excinfo.value.hint is not None
    assert "text" in excinfo.value.hint


def test_validate_adapter_checks_capabilities() -> None:
    assert validate_adapter(TEXT_ADAPTER, "key") is TEXT_ADAPTER
    with pytest.raises(InvalidArgumentError):
        validate_adapter(None, "key")
    broken = TypeAdapter("broken", str, lambda a, b: a == b, destroy=None)  # type: ignore[arg-type]
    with pytest.raises(InvalidArgumentError) as excinfo:
        validate_adapter(broken, "value")
    assert "destroy" in str(excinfo.value)


def test_fnv1a_known_vectors() -> None:
    assert fnv1a_hash("") == 0xCBF29CE484222325
    assert fnv1a_hash("a") == 0xAF63DC4C8601EC8C
    assert fnv1a_hash("a") == fnv1a_hash(b"a")


def test_fnv1a_hashes_ints_over_fixed_width_bytes() -> None:
    assert fnv1a_hash(5) == fnv1a_hash((5).to_bytes(8, "little", signed=True))
    assert fnv1a_hash(-1) == fnv1a_hash(b"\xff" * 8)


def test_fnv1a_rejects_unhashable_types() -> None:
    with pytest.raises(InvalidArgumentError):
        fnv1a_hash(1.5)


@given(st.one_of(st.text(), st.integers(INT64_MIN, INT64_MAX), st.binary()))
def test_hash_functions_are_deterministic(key: Any) -> None:
    for fn in HASH_FUNCTIONS.values():
        assert fn(key) == fn(key)
    assert 0 <= fnv1a_hash(key) < 1 << 64


def test_golden_hash_keeps_sequential_ints_distinct() -> None:
    assert golden_hash(0) == 0
    assert len({golden_hash(i) for i in range(1_000)}) == 1_000


def test_resolve_hash_function() -> None:
    assert resolve_hash_function("fnv1a") is fnv1a_hash
    assert resolve_hash_function("builtin") is builtin_hash
    with pytest.raises(InvalidArgumentError):
        resolve_hash_function("md5")
