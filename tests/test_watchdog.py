from __future__ import annotations

import logging

import pytest

from lphash.config import WatchdogPolicy
from lphash.core import INT64_ADAPTER, TEXT_ADAPTER, LinearProbingTable
from lphash.metrics import STATS_SCHEMA, TableWatchdog, collect_stats


def test_collect_stats_flattens_table_info() -> None:
    table = LinearProbingTable(8, 1.0, 0.0, 2.0, lambda _key: 0, TEXT_ADAPTER, INT64_ADAPTER)
    for key in ("a", "b", "c", "d"):
        table.put(key, 1)
    stats = collect_stats(table, label="demo")
    assert stats["schema"] == STATS_SCHEMA
    assert stats["table"] == "demo"
    assert stats["count"] == 4
    assert stats["capacity"] == 8
    assert stats["collisions"] == 3
    assert stats["collision_ratio"] == pytest.approx(0.75)
    assert stats["max_probe_distance"] == 3
    assert stats["probe_histogram"] == [[0, 1], [1, 1], [2, 1], [3, 1]]


def test_collect_stats_empty_table(text_table: LinearProbingTable) -> None:
    stats = collect_stats(text_table)
    assert stats["collision_ratio"] == 0.0
    assert stats["avg_probe_distance"] == 0.0
    assert stats["probe_histogram"] == []


def test_watchdog_raises_and_resolves_alerts(
    caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
) -> None:
    # attach the capture handler directly so records are seen once whatever
    # handlers or propagation the CLI configured on this logger
    logger = logging.getLogger("lphash")
    monkeypatch.setattr(logger, "propagate", False)
    caplog.set_level(logging.INFO, logger="lphash")
    logger.addHandler(caplog.handler)
    try:
        watchdog = TableWatchdog(WatchdogPolicy(load_factor_warn=0.5, collision_ratio_warn=None, max_probe_warn=2))
        alerts, flags = watchdog.evaluate({"load_factor": 0.6, "max_probe_distance": 3, "table": "t"})
        assert {alert["metric"] for alert in alerts} == {"load_factor", "max_probe_distance"}
        assert flags == {"load_factor": True, "max_probe_distance": True}
        assert all(alert["severity"] == "warning" for alert in alerts)

        # still active: alert repeated, warning logged only once
        alerts, _ = watchdog.evaluate({"load_factor": 0.7, "max_probe_distance": 3})
        assert len(alerts) == 2

        alerts, flags = watchdog.evaluate({"load_factor": 0.1, "max_probe_distance": 1})
        assert alerts == []
        assert flags == {"load_factor": False, "max_probe_distance": False}
    finally:
        logger.removeHandler(caplog.handler)

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 2
    assert sum("resolved" in r.getMessage() for r in caplog.records) == 2


def test_watchdog_ignores_non_numeric_values() -> None:
    watchdog = TableWatchdog(WatchdogPolicy())
    alerts, flags = watchdog.evaluate({"load_factor": "n/a", "collision_ratio": float("nan")})
    assert alerts == []
    assert not any(flags.values())


def test_disabled_watchdog_reports_nothing() -> None:
    watchdog = TableWatchdog(WatchdogPolicy(enabled=False))
    assert watchdog.evaluate({"load_factor": 1.0}) == ([], {})
