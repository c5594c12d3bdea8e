"""Exception taxonomy for tables and the CLI, with exit codes and JSON envelopes."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from functools import wraps
from typing import Any, NoReturn, TypeVar

logger = logging.getLogger(__name__)
T = TypeVar("T")


class Exit(IntEnum):
    """Process exit codes; scripts may rely on these values."""

    OK = 0
    BAD_INPUT = 2
    INVARIANT = 3
    POLICY = 4
    IO = 5
    NOT_FOUND = 6
    ALLOCATION = 7


@dataclass(slots=True)
class ErrorEnvelope:
    """One-line JSON body written to stderr when a command fails."""

    error: str
    detail: str
    hint: str | None = None

    def to_json(self) -> str:
        body: dict[str, str] = {"error": self.error, "detail": self.detail}
        if self.hint:
            body["hint"] = self.hint
        return json.dumps(body, ensure_ascii=False)


def die(code: Exit, kind: str, detail: str, hint: str | None = None) -> NoReturn:
    """Write the error envelope to stderr and exit with ``code``."""

    sys.stderr.write(ErrorEnvelope(kind, detail, hint).to_json() + "\n")
    try:
        sys.stderr.flush()
    finally:
        sys.exit(int(code))


class EnvelopeError(Exception):
    """Recoverable failure; ``hint`` is surfaced in the CLI envelope."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message for envelopes.
        return str(self.args[0]) if self.args else ""


class InvalidArgumentError(EnvelopeError, ValueError):
    """Malformed parameters, or an absent key, value or table."""


class NotFoundError(EnvelopeError, KeyError):
    """A key that had to be present is not in the table."""


class InvariantError(EnvelopeError):
    """Table structure no longer satisfies its probing invariants."""


class PolicyError(EnvelopeError):
    """Request exceeds a configured limit or is not supported."""


class IOErrorEnvelope(EnvelopeError):  # noqa: N818 - mirrors Exit.IO
    """File could not be read or written."""


class AllocationFailure(MemoryError):  # noqa: N818 - fatal, not an envelope error
    """Backing storage could not be allocated; the table cannot continue."""


# First match wins; keep subclasses ahead of their bases.
_EXIT_TABLE: tuple[tuple[type[BaseException], Exit, str], ...] = (
    (InvalidArgumentError, Exit.BAD_INPUT, "InvalidArgument"),
    (NotFoundError, Exit.NOT_FOUND, "NotFound"),
    (InvariantError, Exit.INVARIANT, "Invariant"),
    (PolicyError, Exit.POLICY, "Policy"),
    (IOErrorEnvelope, Exit.IO, "IO"),
    (AllocationFailure, Exit.ALLOCATION, "AllocationFailure"),
    (FileNotFoundError, Exit.IO, "FileNotFound"),
)


def classify(exc: BaseException) -> tuple[Exit, str] | None:
    """Return the exit code and envelope label for ``exc``, if it has one."""

    for exc_type, code, label in _EXIT_TABLE:
        if isinstance(exc, exc_type):
            return code, label
    return None


def guard_cli(fn: Callable[..., T]) -> Callable[..., T]:
    """Wrap a CLI entry so known failures become envelopes and exit codes."""

    @wraps(fn)
    def _guarded(*args: Any, **kwargs: Any) -> T:
        try:
            return fn(*args, **kwargs)
        except (EnvelopeError, AllocationFailure, FileNotFoundError) as exc:
            mapped = classify(exc)
            if isinstance(exc, AllocationFailure):
                logger.critical("Aborting on allocation failure: %s", exc)
            if mapped is None:
                die(Exit.POLICY, "UnhandledEnvelope", str(exc), hint=getattr(exc, "hint", None))
            code, label = mapped
            die(code, label, str(exc), hint=getattr(exc, "hint", None))
        except Exception as exc:  # pragma: no cover - last resort
            logger.exception("Unhandled CLI exception")
            die(Exit.POLICY, "Unhandled", f"{type(exc).__name__}: {exc}")

    return _guarded


__all__ = [
    "AllocationFailure",
    "EnvelopeError",
    "ErrorEnvelope",
    "Exit",
    "IOErrorEnvelope",
    "InvalidArgumentError",
    "InvariantError",
    "NotFoundError",
    "PolicyError",
    "classify",
    "die",
    "guard_cli",
]
