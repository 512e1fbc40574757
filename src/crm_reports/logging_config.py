"""Utilities to configure consistent logging across the CLI and dashboard."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TextIO

def configure_logging(
    log_path: Path | None = None,
    level: int | str = logging.INFO,
    stream: TextIO | None = None,
) -> None:
    """Configure root logging handlers and formatting.

    Args:
        log_path: Optional path to a file where logs will be written.
        level: Logging level, as an int or a name such as ``"DEBUG"``
            (defaults to INFO).
        stream: Console stream (defaults to stdout).
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper())
        if not isinstance(level, int):
            level = logging.INFO

    handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stdout)]
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=handlers,
    )
