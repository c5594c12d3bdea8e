import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterator

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
if SRC.exists():
    sys.path.insert(0, str(SRC))

# Register shared Hypothesis profiles for deterministic CI runs and fast local loops.
from tests.util import hypothesis_profiles  # noqa: E402,F401  pylint: disable=unused-import

from lphash.core import INT64_ADAPTER, TEXT_ADAPTER, LinearProbingTable, fnv1a_hash  # noqa: E402


@pytest.fixture
def text_table() -> LinearProbingTable:
    """Small text -> int64 table using the reference thresholds."""

    return LinearProbingTable(4, 0.75, 0.1, 2.0, fnv1a_hash, TEXT_ADAPTER, INT64_ADAPTER)


@pytest.fixture(autouse=True)
def _close_rotating_handlers() -> Iterator[None]:
    yield
    logger = logging.getLogger("lphash")
    for handler in list(logger.handlers):
        if isinstance(handler, RotatingFileHandler):
            handler.close()
            logger.removeHandler(handler)
