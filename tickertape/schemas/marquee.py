from pydantic import BaseModel


class MarqueeFrame(BaseModel):
    text: str
    offset: float
    content_width: float
    scroll_speed: float
    loop_duration: float | None
    scrolling: bool
    placeholder: bool
    restarts: int
