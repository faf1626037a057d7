from __future__ import annotations

import math
from typing import Any, Mapping

from tickertape.schemas.settings import (
    DEFAULT_REFRESH_INTERVAL,
    DEFAULT_SCROLL_SPEED,
    DisplaySettings,
    DisplayStyle,
)

REFRESH_INTERVAL_MIN = 20.0
REFRESH_INTERVAL_MAX = 300.0
REFRESH_INTERVAL_STEP = 30.0

SCROLL_SPEED_MIN = 10.0
SCROLL_SPEED_MAX = 100.0
SCROLL_SPEED_STEP = 5.0


def _to_float(value: Any) -> float:
    try:
        if value is None or value == "":
            return 0.0
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(result):
        return 0.0
    return result


def _quantize(value: float, step: float) -> float:
    # ties go up, matching the slider rounding users see
    return math.floor(value / step + 0.5) * step


def _normalize(raw: Any, *, default: float, low: float, high: float, step: float) -> float:
    value = _to_float(raw)
    if value == 0:
        value = default
    value = max(low, min(value, high))
    return float(_quantize(value, step))


def normalize_refresh_interval(raw: Any) -> float:
    """Clamp to [20, 300] seconds and round to the nearest 30. Zero means unset."""
    return _normalize(
        raw,
        default=DEFAULT_REFRESH_INTERVAL,
        low=REFRESH_INTERVAL_MIN,
        high=REFRESH_INTERVAL_MAX,
        step=REFRESH_INTERVAL_STEP,
    )


def normalize_scroll_speed(raw: Any) -> float:
    """Clamp to [10, 100] px/s and round to the nearest 5. Zero means unset."""
    return _normalize(
        raw,
        default=DEFAULT_SCROLL_SPEED,
        low=SCROLL_SPEED_MIN,
        high=SCROLL_SPEED_MAX,
        step=SCROLL_SPEED_STEP,
    )


def normalize_display_style(raw: Any) -> DisplayStyle:
    if isinstance(raw, DisplayStyle):
        return raw
    text = str(raw or "").strip().lower()
    for style in DisplayStyle:
        if text in {style.value.lower(), style.name.lower()}:
            return style
    return DisplayStyle.STATIONARY


def normalize_settings(raw: Mapping[str, Any] | None) -> DisplaySettings:
    data = raw or {}
    return DisplaySettings(
        refresh_interval=normalize_refresh_interval(data.get("refresh_interval")),
        scroll_speed=normalize_scroll_speed(data.get("scroll_speed")),
        display_style=normalize_display_style(data.get("display_style")),
    )


def format_refresh_interval(seconds: float) -> str:
    total = int(seconds)
    if total >= 60:
        minutes, rest = divmod(total, 60)
        if rest == 0:
            return f"{minutes} minute(s)"
        return f"{minutes} minute(s) {rest} seconds"
    return f"{total} seconds"
