"""Linear-probing hash table with pluggable key/value type adapters."""

from . import analysis, contracts, core, metrics
from .core import (
    INT64_ADAPTER,
    OBJECT_ADAPTER,
    TEXT_ADAPTER,
    LinearProbingTable,
    TypeAdapter,
    create_default,
)

__all__ = [
    "INT64_ADAPTER",
    "LinearProbingTable",
    "OBJECT_ADAPTER",
    "TEXT_ADAPTER",
    "TypeAdapter",
    "analysis",
    "contracts",
    "core",
    "create_default",
    "metrics",
]
