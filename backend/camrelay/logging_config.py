"""Loguru sink configuration."""

from __future__ import annotations

import sys
import threading

from loguru import logger

_lock = threading.Lock()
_sink_ids: list[int] = []


def setup_logging(level: str = "INFO", json: bool = False) -> None:
    """
    Replace the active sinks with a single stdout sink.

    Safe to call more than once (e.g. once per app instance in tests); earlier
    sinks installed here are removed first. ``json=True`` emits one serialized
    record per line for log shippers.
    """
    global _sink_ids
    with _lock:
        if not _sink_ids:
            # Drop loguru's default stderr handler the first time through.
            logger.remove()
        for sink_id in _sink_ids:
            try:
                logger.remove(sink_id)
            except ValueError:
                continue
        _sink_ids = [
            logger.add(
                sys.stdout,
                level=level.upper(),
                serialize=json,
                backtrace=False,
            )
        ]
