from .adapters import (
    ADAPTERS,
    INT64_ADAPTER,
    OBJECT_ADAPTER,
    TEXT_ADAPTER,
    TypeAdapter,
    resolve_adapter,
)
from .hashing import HASH_FUNCTIONS, builtin_hash, fnv1a_hash, golden_hash, resolve_hash_function
from .resize import DEFAULT_GROW_AT, DEFAULT_GROWTH, DEFAULT_SHRINK_AT, ResizePolicy
from .slots import Entry, SlotSnapshot
from .table import LinearProbingTable, TableInfo, create_default

__all__ = [
    "ADAPTERS",
    "DEFAULT_GROWTH",
    "DEFAULT_GROW_AT",
    "DEFAULT_SHRINK_AT",
    "Entry",
    "HASH_FUNCTIONS",
    "INT64_ADAPTER",
    "LinearProbingTable",
    "OBJECT_ADAPTER",
    "ResizePolicy",
    "SlotSnapshot",
    "TEXT_ADAPTER",
    "TableInfo",
    "TypeAdapter",
    "builtin_hash",
    "create_default",
    "fnv1a_hash",
    "golden_hash",
    "resolve_adapter",
    "resolve_hash_function",
]
