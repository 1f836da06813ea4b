"""Logging setup shared by the CLI and the API server."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: str | int = "INFO", *, console: Console | None = None) -> None:
    """Route the root logger through a rich handler at `level`."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")
    handler = RichHandler(console=console, rich_tracebacks=True, show_path=False)
    logging.basicConfig(level=level, format="%(message)s", datefmt="[%X]", handlers=[handler], force=True)
    # request lines come from the API timing middleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
