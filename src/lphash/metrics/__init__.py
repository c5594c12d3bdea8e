"""Table statistics and guardrail alerts."""

from .core import STATS_SCHEMA, TableWatchdog, collect_stats

__all__ = ["STATS_SCHEMA", "TableWatchdog", "collect_stats"]
