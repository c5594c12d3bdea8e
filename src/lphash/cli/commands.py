"""CLI command registration and handlers for lphash."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from lphash.analysis import format_trace_lines, trace_probe_delete, trace_probe_get, trace_probe_put
from lphash.contracts.error import Exit, InvalidArgumentError, IOErrorEnvelope
from lphash.core.table import LinearProbingTable


@dataclass(frozen=True)
class CLIContext:
    """Runtime hooks supplied by the top-level CLI entrypoint."""

    emit_success: Callable[..., None]
    build_table: Callable[[], LinearProbingTable]
    seed_table: Callable[[LinearProbingTable, List[str]], None]
    run_op: Callable[..., Optional[str]]
    run_csv: Callable[..., Dict[str, Any]]
    format_summary: Callable[[Dict[str, Any]], str]
    logger: logging.Logger
    json_enabled: Callable[[], bool]
    guard: Callable[[Callable[[argparse.Namespace], int]], Callable[[argparse.Namespace], int]]


def register_subcommands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
    ctx: CLIContext,
) -> Dict[str, Callable[[argparse.Namespace], int]]:
    """Define CLI subcommands and return their handlers."""

    handlers: Dict[str, Callable[[argparse.Namespace], int]] = {}

    def _register(
        name: str,
        help_text: Optional[str],
        configure: Callable[[argparse.ArgumentParser], Callable[[argparse.Namespace], int]],
    ) -> None:
        parser = subparsers.add_parser(name, help=help_text)
        handler = configure(parser)
        handlers[name] = ctx.guard(handler)

    _register(
        "run-csv",
        "Replay an op,key,value CSV workload and report table stats.",
        lambda parser: _configure_run_csv(parser, ctx),
    )
    _register(
        "probe-visualize",
        "Trace probe paths for GET/PUT/DEL operations (text/JSON).",
        lambda parser: _configure_probe_visualize(parser, ctx),
    )
    _register(
        "slots",
        "Dump every slot with its key, value and probe distance.",
        lambda parser: _configure_slots(parser, ctx),
    )
    return handlers


def _add_seed_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--seed",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Seed the table with entries first (repeatable)",
    )


def _configure_run_csv(parser: argparse.ArgumentParser, ctx: CLIContext) -> Callable[[argparse.Namespace], int]:
    parser.add_argument("--csv", required=True, help="Workload CSV with header op,key,value")
    parser.add_argument("--max-rows", type=int, default=5_000_000, help="Reject CSVs longer than this")
    parser.add_argument(
        "--watch-every",
        type=int,
        default=0,
        help="Evaluate watchdog guardrails every N ops (0 = only at the end)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Validate the CSV without replaying it")
    parser.add_argument("--json-summary-out", help="Also write the summary JSON to this file")

    def handler(args: argparse.Namespace) -> int:
        if args.max_rows <= 0:
            raise InvalidArgumentError("--max-rows must be > 0")
        if args.watch_every < 0:
            raise InvalidArgumentError("--watch-every must be >= 0")
        summary = ctx.run_csv(
            args.csv,
            max_rows=args.max_rows,
            watch_every=args.watch_every,
            dry_run=args.dry_run,
        )
        if args.json_summary_out:
            _write_json(args.json_summary_out, summary)
        if args.dry_run:
            text = f"Validated {summary['rows']} rows in {args.csv}"
        else:
            text = ctx.format_summary(summary)
        ctx.emit_success("run-csv", text=text, data=summary)
        return int(Exit.OK)

    return handler


def _configure_probe_visualize(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    parser.add_argument("--operation", choices=["get", "put", "del"], required=True, help="Operation to trace")
    parser.add_argument("--key", required=True, help="Key to probe")
    parser.add_argument("--value", help="Value for PUT operations")
    _add_seed_argument(parser)
    parser.add_argument("--export-json", help="Write the trace payload to a JSON file (indent=2)")
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Apply the operation to the table after tracing",
    )

    def handler(args: argparse.Namespace) -> int:
        if args.operation == "put" and args.value is None:
            raise InvalidArgumentError("PUT operation requires --value")

        with ctx.build_table() as table:
            ctx.seed_table(table, list(args.seed))
            key = table.key_adapter.parse(args.key)

            if args.operation == "get":
                trace = trace_probe_get(table, key)
            elif args.operation == "put":
                trace = trace_probe_put(table, key, table.value_adapter.parse(args.value))
            else:
                trace = trace_probe_delete(table, key)
            if args.apply:
                ctx.run_op(table, args.operation, args.key, args.value)
                trace["applied"] = True
                trace["capacity_after"] = table.capacity

        export_path = None
        if args.export_json:
            export_path = _write_json(args.export_json, trace)
        lines = format_trace_lines(trace, seeds=list(args.seed), export_path=export_path)
        ctx.emit_success("probe-visualize", text="\n".join(lines), data={"trace": trace})
        return int(Exit.OK)

    return handler


def _configure_slots(parser: argparse.ArgumentParser, ctx: CLIContext) -> Callable[[argparse.Namespace], int]:
    _add_seed_argument(parser)
    parser.add_argument("--only-occupied", action="store_true", help="Skip empty slots")

    def handler(args: argparse.Namespace) -> int:
        rows: List[Dict[str, Any]] = []
        lines: List[str] = []
        with ctx.build_table() as table:
            ctx.seed_table(table, list(args.seed))
            for snap in table.get_all():
                if not snap.occupied:
                    if not args.only_occupied:
                        rows.append({"index": snap.index, "occupied": False})
                        lines.append(f"[{snap.index:>4}] <empty>")
                    continue
                rows.append(
                    {
                        "index": snap.index,
                        "occupied": True,
                        "key": repr(snap.key),
                        "value": repr(snap.value),
                        "probe_distance": snap.probe_distance,
                    }
                )
                lines.append(f"[{snap.index:>4}] {snap.key!r} = {snap.value!r} (probe_distance={snap.probe_distance})")
            info = table.info()
        lines.append(f"Used: {info.count} | Capacity: {info.capacity} | Collisions: {info.collisions}")
        ctx.emit_success("slots", text="\n".join(lines), data={"slots": rows, "info": info.to_dict()})
        return int(Exit.OK)

    return handler


def _write_json(path: str, payload: Dict[str, Any]) -> Path:
    out_path = Path(path).expanduser()
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(json.dumps(payload, indent=2, default=repr), encoding="utf-8")
    except OSError as exc:
        raise IOErrorEnvelope(f"Cannot write {out_path}: {exc}") from exc
    return out_path


__all__ = ["CLIContext", "register_subcommands"]
