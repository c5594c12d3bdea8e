from __future__ import annotations

from typing import Any, Callable, Dict

from lphash.contracts.error import InvalidArgumentError

HashFunction = Callable[[Any], int]

_MASK_64: int = (1 << 64) - 1
_HASH_GOLDEN_64: int = 0x9E3779B97F4A7C15
_FNV_OFFSET_64: int = 0xCBF29CE484222325
_FNV_PRIME_64: int = 0x100000001B3


def _key_bytes(key: Any) -> bytes:
    if isinstance(key, str):
        return key.encode("utf-8")
    if isinstance(key, (bytes, bytearray)):
        return bytes(key)
    if isinstance(key, int) and not isinstance(key, bool):
        length = max(8, (key.bit_length() + 8) // 8)
        return key.to_bytes(length, "little", signed=True)
    raise InvalidArgumentError(f"fnv1a cannot hash {type(key).__name__}", hint="use the 'builtin' hash function")


def fnv1a_hash(key: Any) -> int:
    """64-bit FNV-1a over the key's canonical bytes (UTF-8 for text)."""

    h = _FNV_OFFSET_64
    for byte in _key_bytes(key):
        h ^= byte
        h = (h * _FNV_PRIME_64) & _MASK_64
    return h


def golden_hash(key: Any) -> int:
    """Fibonacci hashing of the key's integer value (or its Python hash)."""

    x = key if isinstance(key, int) and not isinstance(key, bool) else hash(key)
    x = (x * _HASH_GOLDEN_64) & _MASK_64
    return x ^ (x >> 32)


def builtin_hash(key: Any) -> int:
    return hash(key)


HASH_FUNCTIONS: Dict[str, HashFunction] = {
    "fnv1a": fnv1a_hash,
    "golden": golden_hash,
    "builtin": builtin_hash,
}


def resolve_hash_function(name: str) -> HashFunction:
    try:
        return HASH_FUNCTIONS[name]
    except KeyError as exc:
        choices = ", ".join(sorted(HASH_FUNCTIONS))
        raise InvalidArgumentError(f"unknown hash function {name!r}", hint=f"choose one of: {choices}") from exc


__all__ = [
    "HASH_FUNCTIONS",
    "HashFunction",
    "builtin_hash",
    "fnv1a_hash",
    "golden_hash",
    "resolve_hash_function",
]
