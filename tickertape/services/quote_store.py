from __future__ import annotations

import threading

from tickertape.errors import DuplicateTickerError
from tickertape.schemas.quote import Quote


class QuoteStore:
    """Ordered quotes keyed by ticker. Insertion order is render order."""

    def __init__(self, quotes: list[Quote] | None = None) -> None:
        self._lock = threading.Lock()
        self._rows: list[Quote] = list(quotes or [])

    def _index_of_ticker(self, ticker: str) -> int | None:
        for i, row in enumerate(self._rows):
            if row.ticker == ticker:
                return i
        return None

    def add(self, quote: Quote) -> None:
        with self._lock:
            if self._index_of_ticker(quote.ticker) is not None:
                raise DuplicateTickerError(quote.ticker)
            self._rows.append(quote)

    def remove_by_id(self, quote_id: str) -> Quote | None:
        with self._lock:
            for i, row in enumerate(self._rows):
                if row.id == quote_id:
                    return self._rows.pop(i)
            return None

    def update_by_ticker(self, ticker: str, new_quote: Quote) -> bool:
        with self._lock:
            index = self._index_of_ticker(ticker)
            if index is None:
                return False
            # keep the row id stable so removals issued against older snapshots still match
            self._rows[index] = new_quote.model_copy(update={"id": self._rows[index].id})
            return True

    def replace_all(self, quotes: list[Quote]) -> None:
        with self._lock:
            self._rows = list(quotes)

    def snapshot(self) -> list[Quote]:
        with self._lock:
            return list(self._rows)

    def tickers(self) -> list[str]:
        with self._lock:
            return [row.ticker for row in self._rows]

    def get(self, ticker: str) -> Quote | None:
        with self._lock:
            index = self._index_of_ticker(ticker)
            return None if index is None else self._rows[index]

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)

    def __contains__(self, ticker: object) -> bool:
        with self._lock:
            return any(row.ticker == ticker for row in self._rows)
