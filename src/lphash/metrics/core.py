from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from lphash.config import WatchdogPolicy
from lphash.core.table import LinearProbingTable

logger = logging.getLogger("lphash")

STATS_SCHEMA = "lphash.stats.v1"

# (stats field, WatchdogPolicy threshold attribute, alert text)
GUARDRAILS: Tuple[Tuple[str, str, str], ...] = (
    ("load_factor", "load_factor_warn", "Load factor at or above threshold"),
    ("collision_ratio", "collision_ratio_warn", "Share of displaced entries at or above threshold"),
    ("max_probe_distance", "max_probe_warn", "Longest probe chain at or above threshold"),
)


def collect_stats(table: LinearProbingTable, label: str = "table") -> Dict[str, Any]:
    """Flatten :meth:`LinearProbingTable.info` into a watchdog tick."""

    info = table.info()
    stats: Dict[str, Any] = {"schema": STATS_SCHEMA, "table": label}
    stats.update(info.to_dict())
    stats["collision_ratio"] = (info.collisions / info.count) if info.count else 0.0
    stats["probe_histogram"] = table.probe_histogram()
    return stats


def _as_finite(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None


class TableWatchdog:
    """Compare table stats with the configured guardrails.

    A WARNING is logged when a guardrail first trips and an INFO when it
    clears; while it stays tripped every evaluation still returns the alert.
    """

    def __init__(self, policy: WatchdogPolicy) -> None:
        self.policy = policy
        self._tripped: Dict[str, bool] = {}

    def evaluate(self, stats: Dict[str, Any]) -> Tuple[List[Dict[str, Any]], Dict[str, bool]]:
        if not self.policy.enabled:
            active = sum(1 for tripped in self._tripped.values() if tripped)
            if active:
                logger.info("Watchdog disabled; dropping %d tripped guardrails", active)
            self._tripped.clear()
            return [], {}

        label = str(stats.get("table", "table"))
        alerts: List[Dict[str, Any]] = []
        flags: Dict[str, bool] = {}
        for metric, attr, text in GUARDRAILS:
            threshold = getattr(self.policy, attr)
            if threshold is None:
                if self._tripped.pop(metric, False):
                    logger.info("Watchdog cleared (%s): threshold disabled", metric)
                continue

            value = _as_finite(stats.get(metric))
            tripped = value is not None and value >= threshold
            if tripped:
                assert value is not None
                if not self._tripped.get(metric, False):
                    logger.warning(
                        "Watchdog alert (%s): %.3f >= %.3f [table=%s]", metric, value, threshold, label
                    )
                alerts.append(
                    {
                        "metric": metric,
                        "value": value,
                        "threshold": threshold,
                        "severity": "warning",
                        "table": label,
                        "message": f"{text}: {value:.3f} >= {threshold:.3f}",
                    }
                )
            elif self._tripped.get(metric, False):
                logger.info("Watchdog resolved (%s): below %.3f [table=%s]", metric, threshold, label)
            self._tripped[metric] = tripped
            flags[metric] = tripped
        return alerts, flags


__all__ = ["GUARDRAILS", "STATS_SCHEMA", "TableWatchdog", "collect_stats"]
