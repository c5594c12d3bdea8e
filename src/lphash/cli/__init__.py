"""lphash command-line interface."""

from .app import configure_logging, console_main, emit_success, main, run_csv
from .commands import CLIContext, register_subcommands

__all__ = [
    "CLIContext",
    "configure_logging",
    "console_main",
    "emit_success",
    "main",
    "register_subcommands",
    "run_csv",
]
