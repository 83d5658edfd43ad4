"""General utility helpers shared across modules."""

from __future__ import annotations

import dataclasses
import json
import math
from datetime import datetime, date
from decimal import Decimal
from pathlib import Path
from typing import Any


def format_duration(seconds: float) -> str:
    """Format seconds into an ``H:MM:SS`` string."""

    total = int(round(seconds))
    hours, rest = divmod(total, 3600)
    mins, sec = divmod(rest, 60)
    return f"{hours}:{mins:02d}:{sec:02d}"


def _normalise_value(value: Any) -> Any:
    """Convert objects to JSON-friendly representations."""

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.name: _normalise_value(getattr(value, f.name))
            for f in dataclasses.fields(value)
        }
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="ignore")
    if isinstance(value, set):
        return sorted(_normalise_value(item) for item in value)
    if isinstance(value, (list, tuple)):
        return [_normalise_value(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _normalise_value(val) for key, val in value.items()}
    return value


def json_dumps_sorted(value: Any, *, indent: int | None = None) -> str:
    """Return canonical JSON for results, dataclasses included."""

    normalised = _normalise_value(value)
    separators = (",", ":") if indent is None else (",", ": ")
    return json.dumps(normalised, sort_keys=True, indent=indent, separators=separators)
