import threading
import time
import unittest
from datetime import datetime, timezone

from tickertape.errors import DecodeFailure, NetworkFailure
from tickertape.schemas.quote import Quote
from tickertape.services.fetch_coordinator import FetchCoordinator
from tickertape.services.quote_store import QuoteStore

OLD_TS = datetime(2026, 1, 2, 15, 0, tzinfo=timezone.utc)


class StubQuoteClient:
    def __init__(self, prices: dict[str, tuple[float, float]], failures: dict[str, Exception] | None = None) -> None:
        self.prices = prices
        self.failures = failures or {}
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def fetch_quote(self, symbol: str) -> Quote:
        with self._lock:
            self.calls.append(symbol)
        if symbol in self.failures:
            raise self.failures[symbol]
        price, change = self.prices[symbol]
        return Quote(
            ticker=symbol,
            name=f"{symbol} Corp",
            price=price,
            change=change,
            last_updated=datetime.now(timezone.utc),
        )


class GatedQuoteClient(StubQuoteClient):
    """Blocks fetches for gated symbols until ``release`` is set."""

    def __init__(self, prices, gated: set[str]) -> None:
        super().__init__(prices)
        self.gated = gated
        self.release = threading.Event()
        self.entered = threading.Event()

    def fetch_quote(self, symbol: str) -> Quote:
        if symbol in self.gated:
            self.entered.set()
            self.release.wait(5)
        return super().fetch_quote(symbol)


def _seed(store: QuoteStore, ticker: str, price: float, change: float) -> Quote:
    quote = Quote(ticker=ticker, name=f"{ticker} Corp", price=price, change=change, last_updated=OLD_TS)
    store.add(quote)
    return quote


class TestFetchCoordinator(unittest.TestCase):
    def test_success_merges_and_failure_retains_prior_value(self):
        store = QuoteStore()
        _seed(store, "AAPL", 100.0, 0.01)
        _seed(store, "MSFT", 200.0, -0.02)
        client = StubQuoteClient(
            {"AAPL": (105.0, 0.02)},
            failures={"MSFT": NetworkFailure("connection reset")},
        )

        outcome = FetchCoordinator(quote_client=client).refresh_all(store)

        quotes = store.snapshot()
        self.assertEqual([q.ticker for q in quotes], ["AAPL", "MSFT"])
        self.assertEqual((quotes[0].price, quotes[0].change), (105.0, 0.02))
        self.assertNotEqual(quotes[0].last_updated, OLD_TS)
        self.assertEqual((quotes[1].price, quotes[1].change), (200.0, -0.02))
        self.assertEqual(quotes[1].last_updated, OLD_TS)
        self.assertEqual(outcome.updated, ["AAPL"])
        self.assertEqual(outcome.failed_tickers, ["MSFT"])
        self.assertTrue(outcome.failed[0].reason.startswith("network:"))

    def test_n_tickers_with_k_failures(self):
        store = QuoteStore()
        tickers = [f"T{i}" for i in range(8)]
        for t in tickers:
            _seed(store, t, 10.0, 0.0)
        failing = {"T1": DecodeFailure("bad"), "T4": TimeoutError("slow"), "T6": ValueError("odd")}
        client = StubQuoteClient({t: (20.0, 0.05) for t in tickers}, failures=failing)

        outcome = FetchCoordinator(quote_client=client).refresh_all(store)

        self.assertEqual(len(store), 8)
        self.assertEqual(store.tickers(), tickers)
        for quote in store.snapshot():
            expected = 10.0 if quote.ticker in failing else 20.0
            self.assertEqual(quote.price, expected, quote.ticker)
        self.assertEqual(sorted(outcome.updated), sorted(set(tickers) - set(failing)))
        self.assertEqual(sorted(outcome.failed_tickers), sorted(failing))
        self.assertEqual(sorted(client.calls), sorted(tickers))

    def test_on_merge_called_once_per_success(self):
        store = QuoteStore()
        _seed(store, "AAPL", 1.0, 0.0)
        _seed(store, "MSFT", 1.0, 0.0)
        _seed(store, "TSLA", 1.0, 0.0)
        client = StubQuoteClient(
            {"AAPL": (2.0, 0.0), "TSLA": (3.0, 0.0)},
            failures={"MSFT": NetworkFailure("down")},
        )
        merged: list[str] = []

        FetchCoordinator(quote_client=client).refresh_all(store, on_merge=lambda q: merged.append(q.ticker))

        self.assertEqual(sorted(merged), ["AAPL", "TSLA"])

    def test_merges_happen_on_calling_thread(self):
        store = QuoteStore()
        _seed(store, "AAPL", 1.0, 0.0)
        _seed(store, "MSFT", 1.0, 0.0)
        client = StubQuoteClient({"AAPL": (2.0, 0.0), "MSFT": (3.0, 0.0)})
        merge_threads: set[int] = set()

        FetchCoordinator(quote_client=client).refresh_all(
            store, on_merge=lambda _q: merge_threads.add(threading.get_ident())
        )

        self.assertEqual(merge_threads, {threading.get_ident()})

    def test_empty_store_finishes_immediately(self):
        client = StubQuoteClient({})
        outcome = FetchCoordinator(quote_client=client).refresh_all(QuoteStore())

        self.assertEqual(outcome.requested, [])
        self.assertEqual(client.calls, [])

    def test_hung_fetch_past_deadline_counts_as_failure_and_is_never_merged(self):
        store = QuoteStore()
        _seed(store, "AAPL", 100.0, 0.01)
        _seed(store, "HANG", 50.0, 0.0)
        client = GatedQuoteClient({"AAPL": (101.0, 0.0), "HANG": (999.0, 0.0)}, gated={"HANG"})
        coordinator = FetchCoordinator(quote_client=client, fetch_timeout_sec=0.05, join_grace_sec=0.05)

        try:
            outcome = coordinator.refresh_all(store)
        finally:
            client.release.set()

        self.assertEqual(outcome.updated, ["AAPL"])
        self.assertEqual(outcome.failed_tickers, ["HANG"])
        self.assertEqual(outcome.failed[0].reason, "timeout")
        time.sleep(0.05)
        self.assertEqual(store.get("HANG").price, 50.0)

    def test_ticker_removed_mid_flight_is_not_resurrected(self):
        store = QuoteStore()
        _seed(store, "AAPL", 100.0, 0.01)
        gone = _seed(store, "GONE", 10.0, 0.0)
        client = GatedQuoteClient({"AAPL": (101.0, 0.0), "GONE": (11.0, 0.0)}, gated={"GONE"})
        coordinator = FetchCoordinator(quote_client=client)
        result = {}

        worker = threading.Thread(target=lambda: result.setdefault("outcome", coordinator.refresh_all(store)))
        worker.start()
        self.assertTrue(client.entered.wait(1.0))
        store.remove_by_id(gone.id)
        client.release.set()
        worker.join(2.0)

        self.assertEqual(store.tickers(), ["AAPL"])
        self.assertEqual(store.get("AAPL").price, 101.0)
        self.assertNotIn("GONE", result["outcome"].updated)

    def test_tickers_added_after_batch_start_are_not_fetched(self):
        store = QuoteStore()
        _seed(store, "AAPL", 100.0, 0.0)
        client = GatedQuoteClient({"AAPL": (101.0, 0.0), "LATE": (5.0, 0.0)}, gated={"AAPL"})
        coordinator = FetchCoordinator(quote_client=client)
        result = {}

        worker = threading.Thread(target=lambda: result.setdefault("outcome", coordinator.refresh_all(store)))
        worker.start()
        self.assertTrue(client.entered.wait(1.0))
        late = Quote(ticker="LATE")
        store.add(late)
        client.release.set()
        worker.join(2.0)

        self.assertEqual(result["outcome"].requested, ["AAPL"])
        self.assertNotIn("LATE", client.calls)
        self.assertTrue(store.get("LATE").is_pending)


if __name__ == "__main__":
    unittest.main()
