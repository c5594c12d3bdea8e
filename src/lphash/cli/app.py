"""
app.py

Command-line front end for the linear-probing hash table:
- run-csv: replay put/get/del workloads against a configured table
- probe-visualize: trace GET/PUT/DEL probe paths over a seeded table
- slots: dump the slot array (occupied/empty, probe distances)

Logging goes to the ``lphash`` logger (text or JSON, optional rotating file);
failures surface as one-line JSON error envelopes with stable exit codes.
"""

from __future__ import annotations

import argparse
import contextlib
import csv
import json
import logging
import os
import sys
import time
from collections.abc import Iterator
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from lphash.cli.commands import CLIContext, register_subcommands
from lphash.config import AppConfig, load_app_config
from lphash.contracts.error import InvalidArgumentError, IOErrorEnvelope, PolicyError, guard_cli
from lphash.core.table import LinearProbingTable
from lphash.metrics import TableWatchdog, collect_stats

# --------------------------------------------------------------------
# Logging
# --------------------------------------------------------------------
logger = logging.getLogger("lphash")
logger.setLevel(logging.INFO)
logger.propagate = False

DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"
DEFAULT_LOG_MAX_BYTES = 5_000_000
DEFAULT_LOG_BACKUP_COUNT = 5
DEFAULT_CSV_MAX_ROWS = 5_000_000
CSV_OPS = ("put", "get", "del")


class JsonFormatter(logging.Formatter):
    """Render log records as JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, DEFAULT_LOG_DATEFMT),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = self.formatStack(record.stack_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(
    use_json: bool = False,
    log_file: str | None = None,
    *,
    level: int = logging.INFO,
    max_bytes: int = DEFAULT_LOG_MAX_BYTES,
    backup_count: int = DEFAULT_LOG_BACKUP_COUNT,
) -> None:
    """Configure console (and optional rotating file) logging."""

    formatter: logging.Formatter
    if use_json:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(DEFAULT_LOG_FORMAT, DEFAULT_LOG_DATEFMT)

    for handler in list(logger.handlers):
        with contextlib.suppress(Exception):
            handler.close()
        logger.removeHandler(handler)

    logger.setLevel(level)
    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    if log_file:
        handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
        handler.setFormatter(formatter)
        logger.addHandler(handler)


configure_logging()

APP_CONFIG: AppConfig = AppConfig()
OUTPUT_JSON: bool = False


def set_app_config(cfg: AppConfig) -> None:
    global APP_CONFIG
    APP_CONFIG = cfg


def emit_success(command: str, *, text: str | None = None, data: dict[str, Any] | None = None) -> None:
    if OUTPUT_JSON:
        payload: dict[str, Any] = {"ok": True, "command": command}
        if data:
            payload.update(data)
        if text is not None and "result" not in payload:
            payload["result"] = text
        print(json.dumps(payload, ensure_ascii=False))
    else:
        if text is not None:
            print(text)


# --------------------------------------------------------------------
# Table helpers
# --------------------------------------------------------------------
def build_table(cfg: AppConfig | None = None) -> LinearProbingTable:
    policy = (cfg or APP_CONFIG).table
    table = LinearProbingTable.from_policy(policy)
    logger.debug(
        "Built table capacity=%d grow_at=%.3f shrink_at=%.3f growth=%.3f hash=%s key=%s value=%s",
        policy.initial_capacity,
        policy.grow_at,
        policy.shrink_at,
        policy.growth_factor,
        policy.hash_function,
        policy.key_type,
        policy.value_type,
    )
    return table


def seed_table(table: LinearProbingTable, seeds: list[str]) -> None:
    """Apply ``KEY=VALUE`` seed strings through the adapters' parse hooks."""

    for raw in seeds:
        if "=" not in raw:
            raise InvalidArgumentError(f"Seed {raw!r} must be KEY=VALUE")
        key, value = raw.split("=", 1)
        table.put(table.key_adapter.parse(key), table.value_adapter.parse(value))


def run_op(table: LinearProbingTable, op: str, key: str, value: str | None) -> str | None:
    """Apply one textual operation; returns the GET value or a DEL flag."""

    parsed_key = table.key_adapter.parse(key)
    if op == "put":
        if value is None:
            raise InvalidArgumentError(f"put {key!r} requires a value")
        table.put(parsed_key, table.value_adapter.parse(value))
        return None
    if op == "get":
        found = table.get(parsed_key)
        return None if found is None else str(found)
    if op == "del":
        return "1" if table.delete(parsed_key) else "0"
    raise InvalidArgumentError(f"Unknown op {op!r}", hint=f"expected one of: {', '.join(CSV_OPS)}")


def _load_ops(path: str, max_rows: int) -> Iterator[tuple[int, str, str, str | None]]:
    csv_path = Path(path)
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV not found: {path}")
    try:
        fh = csv_path.open(newline="", encoding="utf-8")
    except OSError as exc:
        raise IOErrorEnvelope(f"Cannot open {path}: {exc}") from exc
    with fh:
        reader = csv.DictReader(fh)
        header = set(reader.fieldnames or [])
        if not {"op", "key"} <= header:
            raise InvalidArgumentError(
                f"CSV header must include 'op' and 'key' (got {sorted(header)})",
                hint="expected header: op,key,value",
            )
        for line_no, row in enumerate(reader, start=2):
            if line_no - 1 > max_rows:
                raise PolicyError(f"CSV exceeds max rows ({max_rows})", hint="raise --max-rows")
            op = (row.get("op") or "").strip().lower()
            key = row.get("key")
            if op not in CSV_OPS:
                raise InvalidArgumentError(f"line {line_no}: unknown op {op!r}")
            if key is None or key == "":
                raise InvalidArgumentError(f"line {line_no}: missing key")
            yield line_no, op, key, row.get("value")


def run_csv(
    path: str,
    *,
    cfg: AppConfig | None = None,
    max_rows: int = DEFAULT_CSV_MAX_ROWS,
    watch_every: int = 0,
    dry_run: bool = False,
) -> dict[str, Any]:
    """Replay a CSV workload and return a summary of outcomes and table stats."""

    app_cfg = cfg or APP_CONFIG
    if dry_run:
        rows = sum(1 for _ in _load_ops(path, max_rows))
        logger.info("Validated %d rows in %s", rows, path)
        return {"csv": path, "rows": rows, "status": "validated"}

    watchdog = TableWatchdog(app_cfg.watchdog)
    counts = {op: 0 for op in CSV_OPS}
    outcomes = {"get_found": 0, "get_missing": 0, "del_removed": 0, "del_missing": 0}
    alerts: list[dict[str, Any]] = []
    total = 0
    with build_table(app_cfg) as table:
        started = time.perf_counter()
        for line_no, op, key, value in _load_ops(path, max_rows):
            try:
                out = run_op(table, op, key, value)
            except InvalidArgumentError as exc:
                raise InvalidArgumentError(f"line {line_no}: {exc}", hint=exc.hint) from exc
            counts[op] += 1
            total += 1
            if op == "get":
                outcomes["get_found" if out is not None else "get_missing"] += 1
            elif op == "del":
                outcomes["del_removed" if out == "1" else "del_missing"] += 1
            if watch_every and total % watch_every == 0:
                tick_alerts, _ = watchdog.evaluate(collect_stats(table, label=Path(path).name))
                alerts.extend(tick_alerts)
        elapsed = time.perf_counter() - started
        stats = collect_stats(table, label=Path(path).name)

    final_alerts, _ = watchdog.evaluate(stats)
    alerts.extend(final_alerts)
    summary = {
        "csv": path,
        "total_ops": total,
        "ops": counts,
        "outcomes": outcomes,
        "elapsed_seconds": elapsed,
        "ops_per_second": (total / elapsed) if elapsed > 0 else 0.0,
        "stats": stats,
        "alerts": alerts,
    }
    logger.info(
        "run-csv finished: ops=%d count=%d capacity=%d collisions=%d",
        total,
        stats["count"],
        stats["capacity"],
        stats["collisions"],
    )
    return summary


def format_summary(summary: dict[str, Any]) -> str:
    stats = summary["stats"]
    lines = [
        f"Replayed {summary['total_ops']} ops from {summary['csv']}",
        "  put={put} get={get} del={del}".format(**summary["ops"]),
        "  get found={get_found} missing={get_missing}; del removed={del_removed} missing={del_missing}".format(
            **summary["outcomes"]
        ),
        f"Used: {stats['count']}",
        f"Capacity: {stats['capacity']}",
        f"Collisions: {stats['collisions']}",
        f"Load factor: {stats['load_factor']:.3f} | max probe: {stats['max_probe_distance']}"
        f" | avg probe: {stats['avg_probe_distance']:.3f}",
    ]
    for alert in summary["alerts"]:
        lines.append(f"ALERT {alert['metric']}: {alert['message']}")
    return "\n".join(lines)


def main(argv: list[str]) -> int:
    p = argparse.ArgumentParser(
        description="Linear-probing hash table CLI: workload replay, probe tracing, slot dumps."
    )
    p.add_argument("--log-json", action="store_true", help="Emit logs in JSON format")
    p.add_argument(
        "--log-file",
        default=None,
        help="Optional log file path (rotates at 5MB, keeps 5 backups by default)",
    )
    p.add_argument(
        "--log-max-bytes",
        type=int,
        default=DEFAULT_LOG_MAX_BYTES,
        help="Max bytes per log file before rotation (default: %(default)s)",
    )
    p.add_argument(
        "--log-backup-count",
        type=int,
        default=DEFAULT_LOG_BACKUP_COUNT,
        help="Number of rotated log files to keep (default: %(default)s)",
    )
    p.add_argument("--verbose", action="store_true", help="Log resizes and other DEBUG detail")
    p.add_argument("--json", action="store_true", help="Emit machine-readable success output to stdout")
    p.add_argument(
        "--config",
        default=None,
        help="Path to TOML config file (env overrides still apply)",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    ctx = CLIContext(
        emit_success=emit_success,
        build_table=lambda: build_table(APP_CONFIG),
        seed_table=seed_table,
        run_op=run_op,
        run_csv=lambda path, **kwargs: run_csv(path, cfg=APP_CONFIG, **kwargs),
        format_summary=format_summary,
        logger=logger,
        json_enabled=lambda: OUTPUT_JSON,
        guard=guard_cli,
    )

    handlers = register_subcommands(sub, ctx)

    args = p.parse_args(argv)

    global OUTPUT_JSON
    OUTPUT_JSON = bool(args.json)

    configure_logging(
        args.log_json,
        args.log_file,
        level=logging.DEBUG if args.verbose else logging.INFO,
        max_bytes=args.log_max_bytes,
        backup_count=args.log_backup_count,
    )

    cfg_path = args.config or os.getenv("LPHASH_CONFIG")
    cfg = guard_cli(load_app_config)(cfg_path)
    set_app_config(cfg)
    if cfg_path:
        logger.info("Loaded config from %s", cfg_path)

    handler = handlers.get(args.cmd)
    if handler is None:
        raise PolicyError(f"Unknown command {args.cmd}")
    return handler(args)


def console_main() -> None:
    """Entry point for console_scripts."""

    try:
        raise SystemExit(main(sys.argv[1:]))
    except SystemExit:
        raise
    except Exception as e:  # noqa: BLE001
        logger.exception("Fatal error: %s", e)
        raise SystemExit(2) from e


if __name__ == "__main__":
    console_main()
