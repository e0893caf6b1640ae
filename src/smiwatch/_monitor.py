"""Periodic telemetry monitor: runs collection sweeps on a daemon thread."""

from __future__ import annotations

import logging
import threading
import time

from smiwatch._collector import MultiDeviceCollector
from smiwatch._dispatch import SweepDispatcher
from smiwatch._types import Sweep

logger = logging.getLogger("smiwatch.monitor")


class TelemetryMonitor:
    """Drives the collector every ``sample_interval_ms`` and dispatches each sweep.

    The most recent sweep stays available through ``latest``. A sweep that
    raises (enumeration failure) is logged and the loop keeps going.
    """

    def __init__(
        self,
        collector: MultiDeviceCollector,
        dispatcher: SweepDispatcher | None = None,
        *,
        sample_interval_ms: int = 1000,
    ) -> None:
        self._collector = collector
        self._dispatcher = dispatcher
        self._interval_s = sample_interval_ms / 1000.0
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._latest: Sweep | None = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._collection_loop, name="smiwatch-monitor", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None

    def sweep(self) -> Sweep:
        """Run one collection cycle now and record it."""
        samples = self._collector.collect()
        result = Sweep(timestamp_ns=time.time_ns(), samples=samples)
        self._latest = result
        if self._dispatcher is not None:
            self._dispatcher.offer(result)
        missing = result.missing
        if missing:
            logger.debug(
                "sweep missing %d of %d device(s): %s", len(missing), len(samples), missing
            )
        return result

    def _collection_loop(self) -> None:
        while not self._stop_event.wait(self._interval_s):
            try:
                self.sweep()
            except Exception:  # noqa: BLE001
                logger.error("telemetry sweep failed", exc_info=True)

    @property
    def latest(self) -> Sweep | None:
        return self._latest

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
