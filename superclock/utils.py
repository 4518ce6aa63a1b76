"""
Shared parsing helpers

Provides common helpers for:
- Environment variable conversion (parse_bool, parse_int, parse_float)
- Tolerant payload decoding (decode_json_object, coerce_float, coerce_bool)
- NaN-aware value comparison used by change tracking
"""

from __future__ import annotations

import json
import math
from typing import Any

TRUE_WORDS = {"1", "true", "yes", "on"}


def parse_bool(value: str | None, default: bool = False) -> bool:
    """Interpret env-style booleans."""
    if value is None:
        return default
    return value.strip().lower() in TRUE_WORDS


def parse_int(value: str | None, default: int) -> int:
    """Best-effort int parser with fallback."""
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def parse_float(value: str | None, default: float) -> float:
    """Best-effort float parser with fallback."""
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def decode_json_object(payload: bytes | str) -> dict[str, Any] | None:
    """Decode an MQTT payload into a JSON object, or None when it is not one."""
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="ignore")
    try:
        data = json.loads(payload)
    except (ValueError, TypeError, RecursionError):
        return None
    if isinstance(data, dict):
        return data
    return None


def coerce_float(value: Any) -> float:
    """Convert a decoded JSON value to float; anything non-numeric becomes NaN."""
    if isinstance(value, bool) or value is None:
        return math.nan
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            return math.nan
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return math.nan
    return math.nan


def coerce_bool(value: Any) -> bool | None:
    """Convert a decoded JSON value to bool; unknown shapes become None."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_WORDS:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    return None


def same_value(old: Any, new: Any) -> bool:
    """Equality that treats two NaNs as the same value."""
    if isinstance(old, float) and isinstance(new, float) and math.isnan(old) and math.isnan(new):
        return True
    return old == new
