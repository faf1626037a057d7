from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class FetchFailure(BaseModel):
    ticker: str
    reason: str


class RefreshOutcome(BaseModel):
    requested: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)
    failed: list[FetchFailure] = Field(default_factory=list)
    started_at: datetime
    finished_at: datetime

    @property
    def failed_tickers(self) -> list[str]:
        return [f.ticker for f in self.failed]
