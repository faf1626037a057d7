from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from tickertape.api.routes import router
from tickertape.config.settings import get_settings
from tickertape.integrations.twelve_data import TwelveDataClient
from tickertape.services.storage import JsonFileStorage
from tickertape.services.ticker_tape import TickerTapeService


def build_service(settings=None) -> TickerTapeService:
    settings = settings or get_settings()
    client = TwelveDataClient(
        api_key=settings.TICKERTAPE_API_KEY,
        api_host=settings.TICKERTAPE_API_HOST,
        base_url=settings.TICKERTAPE_API_BASE_URL,
        timeout_sec=settings.TICKERTAPE_FETCH_TIMEOUT_SEC,
    )
    return TickerTapeService(
        storage=JsonFileStorage(settings.TICKERTAPE_STORAGE_PATH),
        quote_client=client,
        fetch_timeout_sec=settings.TICKERTAPE_FETCH_TIMEOUT_SEC,
        refresh_period_sec=settings.TICKERTAPE_REFRESH_PERIOD_SEC,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    service = app.state.ticker_tape_service
    print("[APP][startup] refresh_scheduler=start", flush=True)
    service.start()
    try:
        yield
    finally:
        service.stop()
        print("[APP][shutdown] refresh_scheduler=stop", flush=True)


app = FastAPI(title="TickerTape", version="0.1.0", lifespan=lifespan)
app.include_router(router, prefix="/v1")

app.state.ticker_tape_service = build_service()
