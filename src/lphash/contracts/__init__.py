"""Contract helpers for lphash."""

from .error import (
    AllocationFailure,
    EnvelopeError,
    ErrorEnvelope,
    Exit,
    InvalidArgumentError,
    InvariantError,
    IOErrorEnvelope,
    NotFoundError,
    PolicyError,
    classify,
    die,
    guard_cli,
)

__all__ = [
    "Exit",
    "ErrorEnvelope",
    "EnvelopeError",
    "InvalidArgumentError",
    "NotFoundError",
    "InvariantError",
    "PolicyError",
    "IOErrorEnvelope",
    "AllocationFailure",
    "classify",
    "guard_cli",
    "die",
]
