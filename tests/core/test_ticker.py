from __future__ import annotations

import threading

from recruitflow.core import IntervalTicker, ManualTicker


def test_manual_ticker_advances_clock_and_fires():
    ticker = ManualTicker()
    start = ticker.now()
    seen: list = []
    unsubscribe = ticker.subscribe(lambda: seen.append(ticker.now()))

    ticker.advance(3)
    unsubscribe()
    ticker.advance(2)

    assert len(seen) == 3
    assert (seen[-1] - start).total_seconds() == 3
    assert (ticker.now() - start).total_seconds() == 5
    assert ticker.subscriber_count == 0


def test_failing_subscriber_does_not_stop_others():
    ticker = ManualTicker()
    calls: list[str] = []

    def broken() -> None:
        raise RuntimeError("boom")

    ticker.subscribe(broken)
    ticker.subscribe(lambda: calls.append("ok"))
    ticker.advance(2)

    assert calls == ["ok", "ok"]


def test_subscriber_may_unsubscribe_during_tick():
    ticker = ManualTicker()
    calls: list[int] = []
    holder: dict = {}

    def once() -> None:
        calls.append(1)
        holder["unsubscribe"]()

    holder["unsubscribe"] = ticker.subscribe(once)
    ticker.advance(3)

    assert calls == [1]


def test_shift_moves_clock_without_ticks():
    ticker = ManualTicker()
    start = ticker.now()
    calls: list[int] = []
    ticker.subscribe(lambda: calls.append(1))

    ticker.shift(30)

    assert calls == []
    assert (ticker.now() - start).total_seconds() == 30


def test_interval_ticker_fires_in_background():
    ticker = IntervalTicker(interval=0.01)
    fired = threading.Event()
    ticker.subscribe(fired.set)
    try:
        assert fired.wait(timeout=2)
    finally:
        ticker.stop()
