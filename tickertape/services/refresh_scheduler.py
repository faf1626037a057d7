from __future__ import annotations

import threading
from typing import Callable

from tickertape.schemas.refresh import RefreshOutcome

IDLE = "IDLE"
REFRESHING = "REFRESHING"

# Fixed cadence. The user-facing refresh interval setting is display-only and
# never feeds into this value.
ACTUAL_REFRESH_PERIOD_SEC = 30.0


class RefreshScheduler:
    """Run a refresh batch at launch and then on a fixed period.

    Manual triggers while a batch is in flight are ignored, so two batches
    never overlap on the same store.
    """

    def __init__(
        self,
        *,
        refresh_fn: Callable[[], RefreshOutcome],
        interval_sec: float = ACTUAL_REFRESH_PERIOD_SEC,
        stop_timeout_sec: float = 1.0,
    ) -> None:
        self.refresh_fn = refresh_fn
        self.interval_sec = interval_sec
        self.stop_timeout_sec = stop_timeout_sec
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._state_lock = threading.Lock()
        self._state = IDLE
        self.last_outcome: RefreshOutcome | None = None
        self._metrics = {
            "runs": 0,
            "scheduled_runs": 0,
            "manual_runs": 0,
            "skipped_triggers": 0,
            "errors": 0,
        }

    @property
    def state(self) -> str:
        with self._state_lock:
            return self._state

    def _try_begin(self) -> bool:
        with self._state_lock:
            if self._state == REFRESHING:
                return False
            self._state = REFRESHING
            return True

    def _finish(self) -> None:
        with self._state_lock:
            self._state = IDLE

    def _bump(self, *keys: str) -> None:
        with self._state_lock:
            for key in keys:
                self._metrics[key] += 1

    def _run_batch(self, *, source: str) -> bool:
        if not self._try_begin():
            self._bump("skipped_triggers")
            print(f"[SCHED][trigger_skipped] source={source} reason=batch_in_flight", flush=True)
            return False

        try:
            self.last_outcome = self.refresh_fn()
            self._bump("runs", f"{source}_runs")
        finally:
            self._finish()
        return True

    def trigger(self) -> bool:
        """Manual refresh. Returns False when a batch is already running."""
        return self._run_batch(source="manual")

    def _loop(self, stop_event: threading.Event) -> None:
        while True:
            try:
                self._run_batch(source="scheduled")
            except Exception as exc:  # pragma: no cover
                self._bump("errors")
                print(f"[SCHED][batch_error] error={exc}", flush=True)
            if stop_event.wait(self.interval_sec):
                return

    def start(self) -> None:
        if self._thread and self._thread.is_alive() and not self._stop_event.is_set():
            return
        # a loop still draining after a timed-out stop keeps its own, already set, event
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._loop, args=(self._stop_event,), daemon=True, name="refresh-scheduler"
        )
        print(f"[SCHED][scheduler_start] interval_sec={self.interval_sec}", flush=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=self.stop_timeout_sec)
        print("[SCHED][scheduler_stop]", flush=True)

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def metrics(self) -> dict:
        outcome = self.last_outcome
        with self._state_lock:
            counters = dict(self._metrics)
        return {
            **counters,
            "state": self.state,
            "interval_sec": self.interval_sec,
            "last_requested": len(outcome.requested) if outcome else 0,
            "last_updated": len(outcome.updated) if outcome else 0,
            "last_failed": len(outcome.failed) if outcome else 0,
        }
