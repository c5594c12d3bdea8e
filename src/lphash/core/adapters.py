"""Type adapters: the copy/equals/destroy capabilities a table is built with."""

from __future__ import annotations

import copy as _copy
from dataclasses import dataclass
from typing import Any, Callable, Dict

from lphash.contracts.error import InvalidArgumentError

INT64_MIN: int = -(1 << 63)
INT64_MAX: int = (1 << 63) - 1


def _release_nothing(_value: Any) -> None:
    return None


@dataclass(frozen=True, slots=True)
class TypeAdapter:
    """Capabilities bound to a key or value type at table construction.

    ``copy`` returns the object the table will own, ``equals`` compares two
    owned objects by content and ``destroy`` releases an owned object once the
    table lets go of it. ``parse`` turns CLI text into the adapter's type.
    """

    name: str
    copy: Callable[[Any], Any]
    equals: Callable[[Any, Any], bool]
    destroy: Callable[[Any], None] = _release_nothing
    parse: Callable[[str], Any] = str


def _text_copy(value: Any) -> str:
    if not isinstance(value, str):
        raise InvalidArgumentError(f"text adapter expects str, got {type(value).__name__}")
    return value


def _text_equals(left: Any, right: Any) -> bool:
    return isinstance(left, str) and isinstance(right, str) and left == right


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _int64_copy(value: Any) -> int:
    if not _is_int(value):
        raise InvalidArgumentError(f"int64 adapter expects int, got {type(value).__name__}")
    if not INT64_MIN <= value <= INT64_MAX:
        raise InvalidArgumentError(f"{value} does not fit in a signed 64-bit integer")
    return int(value)


def _int64_equals(left: Any, right: Any) -> bool:
    return _is_int(left) and _is_int(right) and left == right


def _int64_parse(raw: str) -> int:
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise InvalidArgumentError(f"not an integer: {raw!r}") from exc
    return _int64_copy(value)


def _object_equals(left: Any, right: Any) -> bool:
    return bool(left == right)


TEXT_ADAPTER = TypeAdapter("text", _text_copy, _text_equals)
INT64_ADAPTER = TypeAdapter("int64", _int64_copy, _int64_equals, parse=_int64_parse)
OBJECT_ADAPTER = TypeAdapter("object", _copy.deepcopy, _object_equals)

ADAPTERS: Dict[str, TypeAdapter] = {
    TEXT_ADAPTER.name: TEXT_ADAPTER,
    INT64_ADAPTER.name: INT64_ADAPTER,
    OBJECT_ADAPTER.name: OBJECT_ADAPTER,
}


def resolve_adapter(name: str) -> TypeAdapter:
    try:
        return ADAPTERS[name]
    except KeyError as exc:
        choices = ", ".join(sorted(ADAPTERS))
        raise InvalidArgumentError(f"unknown adapter {name!r}", hint=f"choose one of: {choices}") from exc


def validate_adapter(adapter: Any, role: str) -> TypeAdapter:
    if not isinstance(adapter, TypeAdapter):
        raise InvalidArgumentError(f"{role} adapter must be a TypeAdapter, got {type(adapter).__name__}")
    for capability in ("copy", "equals", "destroy"):
        if not callable(getattr(adapter, capability)):
            raise InvalidArgumentError(f"{role} adapter {capability!r} must be callable")
    return adapter


__all__ = [
    "ADAPTERS",
    "INT64_ADAPTER",
    "INT64_MAX",
    "INT64_MIN",
    "OBJECT_ADAPTER",
    "TEXT_ADAPTER",
    "TypeAdapter",
    "resolve_adapter",
    "validate_adapter",
]
