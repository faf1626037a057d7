import os
from functools import lru_cache

from pydantic import BaseModel

from tickertape.integrations.twelve_data import TwelveDataClient


class Settings(BaseModel):
    TICKERTAPE_API_BASE_URL: str = TwelveDataClient.DEFAULT_BASE_URL
    TICKERTAPE_API_KEY: str | None = None
    TICKERTAPE_API_HOST: str | None = None
    TICKERTAPE_STORAGE_PATH: str = "tickertape-state.json"
    TICKERTAPE_FETCH_TIMEOUT_SEC: float = 10.0
    # operational cadence only; the display refresh interval setting never changes it
    TICKERTAPE_REFRESH_PERIOD_SEC: float = 30.0

    @classmethod
    def from_env(cls) -> "Settings":
        names = (
            "TICKERTAPE_API_BASE_URL",
            "TICKERTAPE_API_KEY",
            "TICKERTAPE_API_HOST",
            "TICKERTAPE_STORAGE_PATH",
            "TICKERTAPE_FETCH_TIMEOUT_SEC",
            "TICKERTAPE_REFRESH_PERIOD_SEC",
        )
        raw = {name: os.getenv(name) for name in names}
        return cls.model_validate({k: v for k, v in raw.items() if v not in (None, "")})


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
