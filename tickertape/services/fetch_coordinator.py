from __future__ import annotations

import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Callable

from tickertape.errors import DecodeFailure, NetworkFailure
from tickertape.schemas.quote import Quote
from tickertape.schemas.refresh import FetchFailure, RefreshOutcome
from tickertape.services.quote_store import QuoteStore


class FetchCoordinator:
    """Fan out one fetch per tracked ticker, join them all, merge successes.

    Fetches run on worker threads; every merge into the store happens on the
    thread that called ``refresh_all``. The pool is sized to the ticker count,
    so fan-out is unbounded and only suited to small watch lists.
    """

    def __init__(
        self,
        *,
        quote_client,
        fetch_timeout_sec: float = 10.0,
        join_grace_sec: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.quote_client = quote_client
        self.fetch_timeout_sec = fetch_timeout_sec
        self.join_grace_sec = join_grace_sec
        self._clock = clock

    @staticmethod
    def _failure_reason(exc: BaseException) -> str:
        if isinstance(exc, NetworkFailure):
            return f"network:{exc}"
        if isinstance(exc, DecodeFailure):
            return f"decode:{exc}"
        return f"error:{type(exc).__name__}:{exc}"

    def refresh_all(
        self,
        store: QuoteStore,
        on_merge: Callable[[Quote], None] | None = None,
    ) -> RefreshOutcome:
        started_at = datetime.now(timezone.utc)
        tickers = store.tickers()
        updated: list[str] = []
        failed: list[FetchFailure] = []

        if not tickers:
            return RefreshOutcome(
                requested=[],
                started_at=started_at,
                finished_at=datetime.now(timezone.utc),
            )

        executor = ThreadPoolExecutor(max_workers=len(tickers), thread_name_prefix="quote-fetch")
        try:
            pending: dict[Future, str] = {
                executor.submit(self.quote_client.fetch_quote, ticker): ticker for ticker in tickers
            }
            deadline = self._clock() + self.fetch_timeout_sec + self.join_grace_sec

            while pending:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    break
                done, _ = wait(list(pending), timeout=remaining, return_when=FIRST_COMPLETED)
                for future in done:
                    ticker = pending.pop(future)
                    exc = future.exception()
                    if exc is not None:
                        failed.append(FetchFailure(ticker=ticker, reason=self._failure_reason(exc)))
                        print(f"[FETCH][fetch_failed] ticker={ticker} error={exc}", flush=True)
                        continue

                    quote = future.result()
                    if not store.update_by_ticker(ticker, quote):
                        print(f"[FETCH][merge_skipped] ticker={ticker} reason=not_tracked", flush=True)
                        continue
                    updated.append(ticker)
                    if on_merge is not None:
                        on_merge(quote)

            for future, ticker in pending.items():
                future.cancel()
                failed.append(FetchFailure(ticker=ticker, reason="timeout"))
                print(f"[FETCH][fetch_failed] ticker={ticker} error=timeout", flush=True)
        finally:
            # stragglers past the deadline are abandoned, their results never merged
            executor.shutdown(wait=False, cancel_futures=True)

        outcome = RefreshOutcome(
            requested=tickers,
            updated=updated,
            failed=failed,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
        )
        print(
            "[REFRESH][batch_resolve] "
            f"requested={len(tickers)} updated={len(updated)} failed={len(failed)}",
            flush=True,
        )
        return outcome
