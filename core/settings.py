from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any

from core.paths import get_settings_path


def _coerce(value: object, integral: bool) -> tuple[str | None, float | int | None]:
    """Split an optional ``(key, raw)`` pair and parse ``raw`` as a finite number."""
    key = None
    if isinstance(value, tuple) and len(value) == 2 and isinstance(value[0], str):
        key, value = value
    if isinstance(value, bool) or value is None:
        return key, None
    if isinstance(value, str):
        value = value.strip()
    try:
        number = float(value)
    except (TypeError, ValueError):
        return key, None
    if not math.isfinite(number):
        return key, None
    if integral:
        if not number.is_integer():
            return key, None
        return key, int(number)
    return key, number


def _parse(value: object, default: Any, min_value: Any, max_value: Any, integral: bool) -> Any:
    key, number = _coerce(value, integral)
    if number is None:
        logging.warning("Invalid numeric setting %s; using default %s.", key or repr(value), default)
        return default
    if min_value is not None:
        number = max(number, min_value)
    if max_value is not None:
        number = min(number, max_value)
    return number


def safe_float(
    value: object,
    default: float,
    *,
    min_value: float | None = None,
    max_value: float | None = None,
) -> float:
    """Parse a lenient numeric setting, falling back to ``default``.

    ``value`` may be a ``(key, raw)`` pair so the warning names the setting.
    """
    return float(_parse(value, default, min_value, max_value, integral=False))


def safe_int(
    value: object,
    default: int,
    *,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    return int(_parse(value, default, min_value, max_value, integral=True))


def load_settings(defaults: dict[str, Any], path: Path | None = None) -> dict[str, Any]:
    """Merge a JSON settings file over ``defaults``; unknown keys are ignored."""
    path = path or get_settings_path()
    if not path.exists():
        return dict(defaults)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        payload = None
    if not isinstance(payload, dict):
        logging.warning("Settings file %s unreadable; using defaults.", path)
        return dict(defaults)
    unknown = sorted(key for key in payload if key not in defaults)
    if unknown:
        logging.warning("Ignoring unknown settings: %s", ", ".join(unknown))
    return {**defaults, **{key: value for key, value in payload.items() if key in defaults}}
