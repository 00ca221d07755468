"""Tick sources driving assessment countdowns.

A ticker owns a subscriber list and calls every subscriber once per second of
(real or simulated) time. Engines never read a clock to decide expiry, so tests
can drive them with :class:`ManualTicker`.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Callable, Protocol, runtime_checkable

import pendulum
import structlog

TickCallback = Callable[[], None]
Unsubscribe = Callable[[], None]


@runtime_checkable
class Ticker(Protocol):
    """Single tick source with a subscriber list."""

    def subscribe(self, callback: TickCallback) -> Unsubscribe:
        """Register ``callback`` and return a function removing it."""


class _SubscriberList:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._callbacks: list[TickCallback] = []
        self._logger = structlog.get_logger(__name__)

    def add(self, callback: TickCallback) -> Unsubscribe:
        with self._lock:
            self._callbacks.append(callback)

        def _remove() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return _remove

    def __len__(self) -> int:
        with self._lock:
            return len(self._callbacks)

    def fire(self) -> None:
        with self._lock:
            snapshot = list(self._callbacks)
        for callback in snapshot:
            try:
                callback()
            except Exception as exc:  # noqa: BLE001
                self._logger.error("ticker.subscriber_failed", error=str(exc), exc_info=True)


class ManualTicker:
    """Deterministic ticker that doubles as a clock.

    ``advance(n)`` moves the clock one second at a time and fires a tick after
    each step, so subscribers observe the same timestamps a real ticker would
    produce.
    """

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or pendulum.datetime(2025, 1, 1, tz="UTC")
        self._subscribers = _SubscriberList()

    def now(self) -> datetime:
        return self._now

    def subscribe(self, callback: TickCallback) -> Unsubscribe:
        return self._subscribers.add(callback)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def advance(self, seconds: int = 1) -> None:
        for _ in range(seconds):
            self._now = self._now + timedelta(seconds=1)
            self._subscribers.fire()

    def shift(self, seconds: float) -> None:
        """Move the clock without firing ticks."""
        self._now = self._now + timedelta(seconds=seconds)


class IntervalTicker:
    """Background-thread ticker firing every ``interval`` seconds of wall time."""

    def __init__(self, interval: float = 1.0) -> None:
        self._interval = interval
        self._subscribers = _SubscriberList()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._start_lock = threading.Lock()

    def subscribe(self, callback: TickCallback) -> Unsubscribe:
        unsubscribe = self._subscribers.add(callback)
        self._ensure_running()
        return unsubscribe

    def _ensure_running(self) -> None:
        with self._start_lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._stop.clear()
            self._thread = threading.Thread(target=self._run, name="assessment-ticker", daemon=True)
            self._thread.start()

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            self._subscribers.fire()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self._interval * 2)
            self._thread = None


__all__ = ["IntervalTicker", "ManualTicker", "Ticker"]
