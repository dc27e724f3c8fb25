"""Structured logging with Rich and small shared helpers."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from rich.console import Console
from rich.logging import RichHandler

console = Console()

_configured = False


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure and return the root kpi-engine logger."""
    global _configured
    if not _configured:
        logging.basicConfig(
            level=getattr(logging, level.upper(), logging.INFO),
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        )
        _configured = True
    return logging.getLogger("kpi_engine")


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the kpi_engine namespace."""
    return logging.getLogger(f"kpi_engine.{name}")


def unique_ordered(items: Iterable[str]) -> list[str]:
    """Drop duplicates from *items* while keeping first-seen order."""
    return list(dict.fromkeys(items))
