from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


def _new_quote_id() -> str:
    return uuid.uuid4().hex


class Quote(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_quote_id)
    ticker: str
    name: str = ""
    price: float = 0.0
    change: float = 0.0
    last_updated: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.last_updated is None


class SymbolMatch(BaseModel):
    symbol: str
    instrument_name: str
    country: str
