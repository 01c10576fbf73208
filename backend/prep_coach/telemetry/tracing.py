from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger("prep_coach.telemetry")


def build_event(name: str, *, attributes: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "type": "event",
        "name": name,
        "attributes": attributes or {},
    }


def emit_event(name: str, *, attributes: dict[str, Any] | None = None) -> dict[str, Any]:
    payload = build_event(name, attributes=attributes)
    logger.info(json.dumps(payload, sort_keys=True))
    return payload


def build_metric(
    name: str,
    value: float,
    *,
    attributes: dict[str, Any] | None = None,
) -> dict[str, Any]:
    return {
        "type": "metric",
        "name": name,
        "value": value,
        "attributes": attributes or {},
    }


def emit_metric(
    name: str,
    value: float,
    *,
    attributes: dict[str, Any] | None = None,
) -> dict[str, Any]:
    payload = build_metric(name, value, attributes=attributes)
    logger.info(json.dumps(payload, sort_keys=True))
    return payload
