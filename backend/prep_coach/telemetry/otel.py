from __future__ import annotations

from contextlib import contextmanager
import json
import logging
import time
from typing import Any

logger = logging.getLogger("prep_coach.telemetry")


@contextmanager
def start_span(name: str, attributes: dict[str, Any] | None = None):
    span: dict[str, Any] = {"name": name, "attributes": dict(attributes or {})}
    started = time.perf_counter()
    try:
        yield span
    finally:
        span["durationMs"] = round((time.perf_counter() - started) * 1000, 3)
        logger.debug(json.dumps({"type": "span", **span}, sort_keys=True, default=str))
