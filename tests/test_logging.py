from __future__ import annotations

import logging
import sys
from crm_reports.logging_config import configure_logging


def test_configure_logging_adds_stream_handler() -> None:
    # Ensure configuring logging doesn't raise and attaches a StreamHandler
    configure_logging(None)
    root = logging.getLogger()
    assert any(isinstance(h, logging.StreamHandler) for h in root.handlers)


def test_configure_logging_accepts_level_names_and_stream() -> None:
    configure_logging(None, level="debug", stream=sys.stderr)
    configure_logging(None, level="not-a-level")
    root = logging.getLogger()
    assert any(isinstance(h, logging.StreamHandler) for h in root.handlers)
