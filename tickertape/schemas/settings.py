from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

DEFAULT_REFRESH_INTERVAL = 300.0
DEFAULT_SCROLL_SPEED = 50.0


class DisplayStyle(str, Enum):
    STATIONARY = "Stationary"
    SCROLLING = "Scrolling"


class DisplaySettings(BaseModel):
    """User-facing settings. Always produced by the normalizer, never edited in place."""

    model_config = ConfigDict(frozen=True)

    refresh_interval: float = DEFAULT_REFRESH_INTERVAL
    scroll_speed: float = DEFAULT_SCROLL_SPEED
    display_style: DisplayStyle = DisplayStyle.STATIONARY


class SettingsUpdate(BaseModel):
    """Raw edits. Values are coerced by the normalizer, never rejected here."""

    refresh_interval: Any | None = None
    scroll_speed: Any | None = None
    display_style: Any | None = None
