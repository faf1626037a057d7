from __future__ import annotations

import time
from typing import Callable

from tickertape.schemas.settings import DisplayStyle


class AnimationTimer:
    """Continuous marquee loop timing.

    The offset moves linearly from 0 to ``-content_width`` over
    ``content_width / scroll_speed`` seconds and wraps back to 0 with no
    pause. Changing width or speed restarts the loop from 0; there is no
    visual continuity across a parameter change.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self.content_width = 0.0
        self.scroll_speed = 0.0
        self.display_style = DisplayStyle.STATIONARY
        self.loop_started_at: float | None = None
        self.restarts = 0

    def configure(
        self,
        *,
        content_width: float,
        scroll_speed: float,
        display_style: DisplayStyle,
        now: float | None = None,
    ) -> bool:
        """Apply parameters. Returns True when the loop was restarted."""
        self.display_style = display_style
        width = max(float(content_width), 0.0)
        speed = max(float(scroll_speed), 0.0)
        if width == self.content_width and speed == self.scroll_speed and self.loop_started_at is not None:
            return False

        self.content_width = width
        self.scroll_speed = speed
        if self.suspended:
            self.loop_started_at = None
            return False

        self.loop_started_at = self._clock() if now is None else now
        self.restarts += 1
        return True

    @property
    def suspended(self) -> bool:
        return self.content_width <= 0 or self.scroll_speed <= 0

    @property
    def placeholder(self) -> bool:
        return self.content_width <= 0

    @property
    def scrolling(self) -> bool:
        return self.display_style == DisplayStyle.SCROLLING and not self.suspended

    @property
    def loop_duration(self) -> float | None:
        if self.suspended:
            return None
        return self.content_width / self.scroll_speed

    def offset(self, now: float | None = None) -> float:
        if not self.scrolling or self.loop_started_at is None:
            return 0.0
        current = self._clock() if now is None else now
        elapsed = max(current - self.loop_started_at, 0.0)
        duration = self.content_width / self.scroll_speed
        progress = (elapsed % duration) / duration
        if progress == 0:
            return 0.0
        return -self.content_width * progress
