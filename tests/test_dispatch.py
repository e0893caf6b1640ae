"""Tests for _dispatch module."""

from __future__ import annotations

import logging
import threading
import time

import pytest

from smiwatch._dispatch import SweepDispatcher
from smiwatch._types import Sweep


def _make_sweep(ts: int = 1, missing: tuple[int, ...] = ()) -> Sweep:
    return Sweep(timestamp_ns=ts, samples={idx: None for idx in missing})


def test_flush_preserves_order() -> None:
    received: list[int] = []
    dispatcher = SweepDispatcher(
        handler=lambda sweeps: received.extend(s.timestamp_ns for s in sweeps)
    )
    for ts in range(1, 6):
        dispatcher.offer(_make_sweep(ts))
    assert dispatcher.pending == 5
    assert dispatcher.flush() == 5
    assert received == [1, 2, 3, 4, 5]
    assert dispatcher.pending == 0
    assert dispatcher.delivered == 5


def test_flush_respects_batch_size() -> None:
    batches: list[int] = []
    dispatcher = SweepDispatcher(batch_size=2, handler=lambda sweeps: batches.append(len(sweeps)))
    for ts in range(5):
        dispatcher.offer(_make_sweep(ts))
    dispatcher.flush()
    assert batches == [2, 2, 1]


def test_flush_empty() -> None:
    dispatcher = SweepDispatcher()
    assert dispatcher.flush() == 0
    assert dispatcher.delivered == 0


def test_overflow_drops_oldest() -> None:
    received: list[int] = []
    dispatcher = SweepDispatcher(
        capacity=3, handler=lambda sweeps: received.extend(s.timestamp_ns for s in sweeps)
    )
    for ts in range(1, 6):
        dispatcher.offer(_make_sweep(ts))
    assert dispatcher.pending == 3
    assert dispatcher.dropped == 2
    dispatcher.flush()
    assert received == [3, 4, 5]


def test_device_health_counts() -> None:
    dispatcher = SweepDispatcher(capacity=2)
    dispatcher.offer(_make_sweep(1))
    dispatcher.offer(_make_sweep(2, missing=(1,)))
    dispatcher.offer(_make_sweep(3, missing=(1, 3)))
    # counted at offer time, so the dropped sweep still shows up
    assert dispatcher.dropped == 1
    assert dispatcher.incomplete == 2
    assert dispatcher.misses() == {1: 2, 3: 1}


def test_start_and_stop() -> None:
    dispatcher = SweepDispatcher(flush_interval_ms=50)
    dispatcher.start()
    assert dispatcher.is_running
    dispatcher.stop()
    assert not dispatcher.is_running


def test_double_start_is_idempotent() -> None:
    dispatcher = SweepDispatcher(flush_interval_ms=1000)
    dispatcher.start()
    thread1 = dispatcher._thread
    dispatcher.start()
    assert dispatcher._thread is thread1
    assert thread1 is not None
    assert thread1.daemon is True
    assert thread1.name == "smiwatch-dispatch"
    dispatcher.stop()


def test_handler_called_on_interval() -> None:
    received: list[Sweep] = []
    dispatcher = SweepDispatcher(flush_interval_ms=50, handler=received.extend)
    dispatcher.offer(_make_sweep(1))
    dispatcher.offer(_make_sweep(2))
    dispatcher.start()
    time.sleep(0.2)
    assert [s.timestamp_ns for s in received] == [1, 2]
    dispatcher.stop()


def test_full_batch_wakes_delivery_early() -> None:
    delivered = threading.Event()
    dispatcher = SweepDispatcher(
        batch_size=3, flush_interval_ms=60_000, handler=lambda sweeps: delivered.set()
    )
    dispatcher.start()
    for ts in range(3):
        dispatcher.offer(_make_sweep(ts))
    assert delivered.wait(timeout=2.0)
    dispatcher.stop()
    assert dispatcher.delivered == 3


def test_final_flush_on_stop() -> None:
    received: list[Sweep] = []
    dispatcher = SweepDispatcher(flush_interval_ms=60_000, handler=received.extend)
    dispatcher.start()
    dispatcher.offer(_make_sweep(42))
    dispatcher.stop()
    assert [s.timestamp_ns for s in received] == [42]
    assert dispatcher.pending == 0


def test_handler_exception_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    def bad_handler(sweeps: list[Sweep]) -> None:
        raise RuntimeError("handler exploded")

    dispatcher = SweepDispatcher(handler=bad_handler)
    dispatcher.offer(_make_sweep(1))
    dispatcher.offer(_make_sweep(2))
    with caplog.at_level(logging.WARNING, logger="smiwatch.dispatch"):
        assert dispatcher.flush() == 2
    assert dispatcher.delivered == 0
    assert any("2 sweep(s) lost" in r.getMessage() for r in caplog.records)


def test_handler_exception_keeps_thread_alive() -> None:
    calls: list[int] = []

    def flaky(sweeps: list[Sweep]) -> None:
        calls.append(len(sweeps))
        if len(calls) == 1:
            raise RuntimeError("first batch fails")

    dispatcher = SweepDispatcher(batch_size=1, flush_interval_ms=20, handler=flaky)
    dispatcher.start()
    dispatcher.offer(_make_sweep(1))
    time.sleep(0.1)
    dispatcher.offer(_make_sweep(2))
    time.sleep(0.1)
    assert dispatcher.is_running
    dispatcher.stop()
    assert calls == [1, 1]
    assert dispatcher.delivered == 1


def test_concurrent_offers() -> None:
    dispatcher = SweepDispatcher(capacity=10_000)

    def worker() -> None:
        for ts in range(500):
            dispatcher.offer(_make_sweep(ts, missing=(0,)))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert dispatcher.pending == 2000
    assert dispatcher.incomplete == 2000
    assert dispatcher.misses() == {0: 2000}
