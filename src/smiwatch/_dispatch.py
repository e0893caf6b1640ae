"""Sweep dispatcher: hands collected sweeps to a user handler off the sampling thread."""

from __future__ import annotations

import logging
import threading
from collections import Counter, deque
from collections.abc import Callable

from smiwatch._types import Sweep

logger = logging.getLogger("smiwatch.dispatch")

SweepHandler = Callable[[list[Sweep]], None]


def _discard(sweeps: list[Sweep]) -> None:
    """Default handler: sweeps stay reachable only through ``latest``."""


class SweepDispatcher:
    """Bounded hand-off between the monitor and a user handler.

    ``offer`` never blocks the sampling thread. When ``capacity`` sweeps are
    already waiting the oldest one is dropped. A daemon thread delivers
    batches in arrival order every ``flush_interval_ms``, or as soon as a
    full batch is waiting. Device health is tallied per offered sweep, so
    the counts also cover sweeps that were later dropped.
    """

    def __init__(
        self,
        *,
        capacity: int = 256,
        batch_size: int = 64,
        flush_interval_ms: int = 5000,
        handler: SweepHandler = _discard,
    ) -> None:
        self._capacity = max(1, capacity)
        self._batch_size = max(1, batch_size)
        self._flush_interval_s = flush_interval_ms / 1000.0
        self._handler = handler
        self._pending: deque[Sweep] = deque()
        self._cond = threading.Condition()
        self._stopping = False
        self._thread: threading.Thread | None = None
        self._dropped = 0
        self._delivered = 0
        self._incomplete = 0
        self._misses: Counter[int] = Counter()

    def offer(self, sweep: Sweep) -> None:
        with self._cond:
            if len(self._pending) >= self._capacity:
                self._pending.popleft()
                self._dropped += 1
            self._pending.append(sweep)
            missing = sweep.missing
            if missing:
                self._incomplete += 1
                self._misses.update(missing)
            if len(self._pending) >= self._batch_size:
                self._cond.notify()

    def start(self) -> None:
        if self._thread is not None:
            return
        with self._cond:
            self._stopping = False
        self._thread = threading.Thread(target=self._run, name="smiwatch-dispatch", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the delivery thread, then hand over whatever is still waiting."""
        with self._cond:
            self._stopping = True
            self._cond.notify()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None
        self.flush()

    def flush(self) -> int:
        """Deliver every waiting sweep on the calling thread. Returns how many."""
        total = 0
        while True:
            with self._cond:
                batch = self._take()
            if not batch:
                return total
            self._deliver(batch)
            total += len(batch)

    def _take(self) -> list[Sweep]:
        count = min(self._batch_size, len(self._pending))
        return [self._pending.popleft() for _ in range(count)]

    def _run(self) -> None:
        while True:
            with self._cond:
                if not self._stopping and len(self._pending) < self._batch_size:
                    self._cond.wait(timeout=self._flush_interval_s)
                if self._stopping:
                    return
                batch = self._take()
            if batch:
                self._deliver(batch)

    def _deliver(self, batch: list[Sweep]) -> None:
        try:
            self._handler(batch)
        except Exception:  # noqa: BLE001
            logger.warning("sweep handler raised; %d sweep(s) lost", len(batch), exc_info=True)
            return
        with self._cond:
            self._delivered += len(batch)

    @property
    def pending(self) -> int:
        with self._cond:
            return len(self._pending)

    @property
    def dropped(self) -> int:
        """Sweeps discarded because the queue was full."""
        return self._dropped

    @property
    def delivered(self) -> int:
        """Sweeps the handler accepted without raising."""
        return self._delivered

    @property
    def incomplete(self) -> int:
        """Offered sweeps in which at least one device had no sample."""
        return self._incomplete

    def misses(self) -> dict[int, int]:
        """Per-device count of sweeps that came back without a sample."""
        with self._cond:
            return dict(self._misses)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
