from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Optional

import requests

from tickertape.errors import DecodeFailure, NetworkFailure
from tickertape.schemas.quote import Quote, SymbolMatch


def _to_float(value: Any, *, field_name: str) -> float:
    try:
        if value is None or value == "":
            raise ValueError(f"missing value for {field_name}")
        result = float(value)
    except (TypeError, ValueError) as exc:
        raise DecodeFailure(f"invalid numeric value for {field_name}: {value!r}") from exc
    if not math.isfinite(result):
        raise DecodeFailure(f"non-finite value for {field_name}: {value!r}")
    return result


def parse_quote(symbol: str, payload: Any, *, now: datetime | None = None) -> Quote:
    """Decode a provider quote document. ``percent_change`` arrives in whole percent."""
    if not isinstance(payload, dict):
        raise DecodeFailure("quote payload must be an object")

    name = payload.get("name")
    if not isinstance(name, str) or not name:
        raise DecodeFailure(f"missing name for {symbol}")

    price = _to_float(payload.get("close"), field_name="close")
    change = _to_float(payload.get("percent_change"), field_name="percent_change")

    return Quote(
        ticker=symbol,
        name=name,
        price=price,
        change=change / 100,
        last_updated=now or datetime.now(timezone.utc),
    )


def parse_search_results(payload: Any) -> list[SymbolMatch]:
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
        raise DecodeFailure("search payload must contain a data array")

    out: list[SymbolMatch] = []
    for row in payload["data"]:
        if not isinstance(row, dict):
            continue
        symbol = row.get("symbol")
        instrument_name = row.get("instrument_name")
        country = row.get("country")
        if not all(isinstance(v, str) for v in (symbol, instrument_name, country)):
            continue
        out.append(SymbolMatch(symbol=symbol, instrument_name=instrument_name, country=country))
    return out


class TwelveDataClient:
    """Quote and symbol-search client for the Twelve Data REST API."""

    DEFAULT_BASE_URL = "https://twelve-data1.p.rapidapi.com"

    def __init__(
        self,
        api_key: str | None = None,
        *,
        api_host: str | None = None,
        base_url: Optional[str] = None,
        timeout_sec: float = 10.0,
        session: Optional[Any] = None,
    ) -> None:
        self.api_key = api_key
        self.api_host = api_host
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.timeout_sec = timeout_sec
        self.session = session or requests

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.api_key:
            headers["x-rapidapi-key"] = self.api_key
        if self.api_host:
            headers["x-rapidapi-host"] = self.api_host
        return headers

    def _get_json(self, path: str, params: dict[str, Any]) -> Any:
        try:
            response = self.session.get(
                f"{self.base_url}{path}",
                headers=self._headers(),
                params=params,
                timeout=self.timeout_sec,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise NetworkFailure(f"{path} request failed: {exc}") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise DecodeFailure(f"{path} returned invalid JSON") from exc

    def fetch_quote(self, symbol: str) -> Quote:
        payload = self._get_json(
            "/quote",
            {"symbol": symbol, "interval": "1day", "outputsize": 30, "format": "json"},
        )
        return parse_quote(symbol, payload)

    def search_symbols(self, query: str) -> list[SymbolMatch]:
        payload = self._get_json("/symbol_search", {"symbol": query, "outputsize": 30})
        return parse_search_results(payload)
