from __future__ import annotations

import json
import threading
import time
from typing import Any, Callable, Mapping

from pydantic import TypeAdapter, ValidationError

from tickertape.schemas.quote import Quote, SymbolMatch
from tickertape.schemas.marquee import MarqueeFrame
from tickertape.schemas.refresh import RefreshOutcome
from tickertape.schemas.settings import DisplaySettings
from tickertape.services.animation_timer import AnimationTimer
from tickertape.services.fetch_coordinator import FetchCoordinator
from tickertape.services.marquee import (
    PLACEHOLDER_TEXT,
    estimate_content_width,
    loading_label,
    marquee_labels,
)
from tickertape.services.quote_store import QuoteStore
from tickertape.services.refresh_scheduler import ACTUAL_REFRESH_PERIOD_SEC, RefreshScheduler
from tickertape.services.settings_normalizer import format_refresh_interval, normalize_settings
from tickertape.services.storage import (
    DISPLAY_STYLE_KEY,
    REFRESH_INTERVAL_KEY,
    SAVED_QUOTES_KEY,
    SCROLL_SPEED_KEY,
)

QUOTE_UPDATED = "quote_updated"
QUOTES_CHANGED = "quotes_changed"
REFRESH_STARTED = "refresh_started"
REFRESH_FINISHED = "refresh_finished"
SETTINGS_CHANGED = "settings_changed"

_QUOTE_LIST = TypeAdapter(list[Quote])


class TickerTapeService:
    """Owner of the quote list, display settings, loading flag and marquee timing.

    Only this object's methods mutate that state. Observers registered with
    ``subscribe`` receive an event name after each change.
    """

    def __init__(
        self,
        *,
        storage,
        quote_client,
        fetch_timeout_sec: float = 10.0,
        refresh_period_sec: float = ACTUAL_REFRESH_PERIOD_SEC,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.storage = storage
        self.quote_client = quote_client
        self.store = QuoteStore()
        self.coordinator = FetchCoordinator(quote_client=quote_client, fetch_timeout_sec=fetch_timeout_sec)
        self.scheduler = RefreshScheduler(refresh_fn=self.refresh, interval_sec=refresh_period_sec)
        self.animation = AnimationTimer(clock=clock)
        self._settings = DisplaySettings()
        self._loading = False
        self._observers: list[Callable[[str], None]] = []
        self._observers_lock = threading.Lock()
        # serializes every owner mutation together with its save and animation sync
        self._owner_lock = threading.RLock()

    # -- lifecycle -------------------------------------------------------

    def restore(self) -> None:
        with self._owner_lock:
            self.store.replace_all(self._load_quotes())
            self._settings = self._load_settings()
            self._sync_animation()

    def start(self) -> None:
        self.restore()
        self.scheduler.start()

    def stop(self) -> None:
        self.scheduler.stop()

    # -- observers -------------------------------------------------------

    def subscribe(self, callback: Callable[[str], None]) -> Callable[[], None]:
        with self._observers_lock:
            self._observers.append(callback)

        def _unsubscribe() -> None:
            with self._observers_lock:
                if callback in self._observers:
                    self._observers.remove(callback)

        return _unsubscribe

    def _notify(self, event: str) -> None:
        with self._observers_lock:
            observers = list(self._observers)
        for callback in observers:
            try:
                callback(event)
            except Exception as exc:
                print(f"[APP][observer_error] event={event} error={exc}", flush=True)

    # -- presentation boundary -------------------------------------------

    def current_quotes(self) -> list[Quote]:
        return self.store.snapshot()

    def is_loading(self) -> bool:
        return self._loading

    def settings(self) -> DisplaySettings:
        return self._settings

    def marquee(self, now: float | None = None) -> MarqueeFrame:
        with self._owner_lock:
            return self._frame(now)

    def _frame(self, now: float | None) -> MarqueeFrame:
        quotes = self.store.snapshot()
        if not quotes:
            text = PLACEHOLDER_TEXT
        elif self._loading and all(q.is_pending for q in quotes):
            text = loading_label(len(quotes))
        else:
            text = "   ".join(marquee_labels(quotes))

        timer = self.animation
        return MarqueeFrame(
            text=text,
            offset=timer.offset(now),
            content_width=timer.content_width,
            scroll_speed=timer.scroll_speed,
            loop_duration=timer.loop_duration,
            scrolling=timer.scrolling,
            placeholder=timer.placeholder,
            restarts=timer.restarts,
        )

    def add_ticker(self, symbol: str, *, fetch: bool = True) -> Quote:
        ticker = str(symbol or "").strip().upper()
        if not ticker:
            raise ValueError("EMPTY_SYMBOL")

        quote = Quote(ticker=ticker)
        with self._owner_lock:
            self.store.add(quote)
            self._save_quotes()
            self._sync_animation()
        print(f"[STORE][ticker_added] ticker={ticker} count={len(self.store)}", flush=True)
        self._notify(QUOTES_CHANGED)

        if fetch:
            try:
                fetched = self.quote_client.fetch_quote(ticker)
            except Exception as exc:
                print(f"[FETCH][fetch_failed] ticker={ticker} error={exc}", flush=True)
            else:
                with self._owner_lock:
                    merged = self.store.update_by_ticker(ticker, fetched)
                    if merged:
                        self._save_quotes()
                        self._sync_animation()
                if merged:
                    self._notify(QUOTE_UPDATED)
        return self.store.get(ticker) or quote

    def remove_ticker(self, quote_id: str) -> bool:
        with self._owner_lock:
            removed = self.store.remove_by_id(quote_id)
            if removed is None:
                return False
            self._save_quotes()
            self._sync_animation()
        print(f"[STORE][ticker_removed] ticker={removed.ticker} count={len(self.store)}", flush=True)
        self._notify(QUOTES_CHANGED)
        return True

    def set_settings(self, raw: Mapping[str, Any]) -> DisplaySettings:
        """Normalize and replace settings wholesale. Fields missing from ``raw`` keep their value."""
        with self._owner_lock:
            merged = self._settings.model_dump()
            merged.update({k: v for k, v in raw.items() if v is not None})
            settings = normalize_settings(merged)
            self._settings = settings
            self._save_settings()
            self._sync_animation()
            self._log_settings("settings_saved")
        self._notify(SETTINGS_CHANGED)
        return settings

    def manual_refresh(self) -> bool:
        return self.scheduler.trigger()

    def search_symbols(self, query: str) -> list[SymbolMatch]:
        text = str(query or "").strip()
        if not text:
            return []
        return self.quote_client.search_symbols(text)

    # -- refresh batch ---------------------------------------------------

    def _on_quote_merged(self, quote: Quote) -> None:
        with self._owner_lock:
            self._sync_animation()
        self._notify(QUOTE_UPDATED)

    def refresh(self) -> RefreshOutcome:
        self._loading = True
        print(f"[REFRESH][batch_start] count={len(self.store)}", flush=True)
        self._notify(REFRESH_STARTED)
        try:
            outcome = self.coordinator.refresh_all(self.store, on_merge=self._on_quote_merged)
        finally:
            self._loading = False
        with self._owner_lock:
            self._save_quotes()
            self._sync_animation()
        self._notify(REFRESH_FINISHED)
        return outcome

    # -- persistence -----------------------------------------------------

    def _load_quotes(self) -> list[Quote]:
        raw = self.storage.get(SAVED_QUOTES_KEY)
        if not raw:
            print("[STORE][quotes_loaded] count=0 source=default", flush=True)
            return []
        try:
            quotes = _QUOTE_LIST.validate_json(raw)
        except ValidationError as exc:
            print(f"[STORE][quotes_unreadable] error_count={exc.error_count()}", flush=True)
            return []

        seen: set[str] = set()
        unique: list[Quote] = []
        for quote in quotes:
            if quote.ticker in seen:
                continue
            seen.add(quote.ticker)
            unique.append(quote)
        print(f"[STORE][quotes_loaded] count={len(unique)} source=storage", flush=True)
        return unique

    def _save_quotes(self) -> None:
        payload = [q.model_dump(mode="json") for q in self.store.snapshot()]
        self.storage.set(SAVED_QUOTES_KEY, json.dumps(payload, ensure_ascii=False))

    def _load_settings(self) -> DisplaySettings:
        settings = normalize_settings(
            {
                "refresh_interval": self.storage.get(REFRESH_INTERVAL_KEY),
                "scroll_speed": self.storage.get(SCROLL_SPEED_KEY),
                "display_style": self.storage.get(DISPLAY_STYLE_KEY),
            }
        )
        self._settings = settings
        self._log_settings("settings_loaded")
        return settings

    def _save_settings(self) -> None:
        self.storage.set(REFRESH_INTERVAL_KEY, str(self._settings.refresh_interval))
        self.storage.set(SCROLL_SPEED_KEY, str(self._settings.scroll_speed))
        self.storage.set(DISPLAY_STYLE_KEY, self._settings.display_style.value)

    def _log_settings(self, event: str) -> None:
        s = self._settings
        print(
            f"[SETTINGS][{event}] refresh_interval={format_refresh_interval(s.refresh_interval)!r} "
            f"actual_refresh_sec={self.scheduler.interval_sec:g} scroll_speed={s.scroll_speed:g} "
            f"display_style={s.display_style.value}",
            flush=True,
        )

    def _sync_animation(self) -> None:
        labels = marquee_labels(self.store.snapshot())
        self.animation.configure(
            content_width=estimate_content_width(labels),
            scroll_speed=self._settings.scroll_speed,
            display_style=self._settings.display_style,
        )
