"""Runtime singleton: wires driver, registry, collector and background threads."""

from __future__ import annotations

import atexit
import logging

from smiwatch._amdsmi import AmdSmiDriver
from smiwatch._collector import MultiDeviceCollector
from smiwatch._config import SmiwatchConfig
from smiwatch._device import Device
from smiwatch._dispatch import SweepDispatcher, SweepHandler, _discard
from smiwatch._driver import DriverPort
from smiwatch._monitor import TelemetryMonitor
from smiwatch._registry import DeviceRegistry
from smiwatch._types import MemoryType, Sweep, TelemetrySample

logger = logging.getLogger("smiwatch.runtime")

_runtime_instance: _SmiwatchRuntime | None = None


class _SmiwatchRuntime:
    """Internal runtime singleton. Not part of the public API."""

    def __init__(
        self,
        config: SmiwatchConfig,
        driver: DriverPort,
        *,
        handler: SweepHandler = _discard,
        owns_driver: bool = False,
    ) -> None:
        self.config = config
        self._driver: DriverPort | None = driver
        self._owns_driver = owns_driver
        self.registry = DeviceRegistry(driver, memory_type=config.memory_type)
        self.collector = MultiDeviceCollector(self.registry, max_workers=config.max_workers)
        self.dispatcher = SweepDispatcher(
            capacity=config.buffer_size,
            batch_size=config.batch_size,
            flush_interval_ms=config.flush_interval_ms,
            handler=handler,
        )
        self._monitor = TelemetryMonitor(
            self.collector,
            self.dispatcher,
            sample_interval_ms=config.sample_interval_ms,
        )

    def start(self) -> None:
        """Enumerate devices, then start sampling and draining threads.

        Raises EnumerationError if the device list cannot be built.
        """
        devices = self.registry.enumerate()
        logger.info(
            "sampling %d device(s) every %d ms", len(devices), self.config.sample_interval_ms
        )
        self.dispatcher.start()
        self._monitor.start()

    def shutdown(self) -> None:
        self._monitor.stop()
        self.dispatcher.stop()
        logger.info(
            "delivered %d sweep(s), dropped %d, %d with missing devices",
            self.dispatcher.delivered,
            self.dispatcher.dropped,
            self.dispatcher.incomplete,
        )
        if self._owns_driver and self._driver is not None:
            shutdown = getattr(self._driver, "shutdown", None)
            if shutdown is not None:
                shutdown()
        self._driver = None

    def collect(self) -> dict[int, TelemetrySample | None]:
        return self.collector.collect()

    def devices(self) -> list[Device]:
        return self.registry.enumerate()

    def latest(self) -> Sweep | None:
        return self._monitor.latest


class _NoopRuntime:
    """Fallback used when the runtime is not initialized. Nothing is sampled."""

    def collect(self) -> dict[int, TelemetrySample | None]:
        return {}

    def devices(self) -> list[Device]:
        return []

    def latest(self) -> Sweep | None:
        return None


_noop = _NoopRuntime()


def _get_runtime() -> _SmiwatchRuntime | _NoopRuntime:
    """Return the active runtime or a noop fallback."""
    if _runtime_instance is not None:
        return _runtime_instance
    return _noop


def init(
    *,
    driver: DriverPort | None = None,
    handler: SweepHandler | None = None,
    sample_interval_ms: int = 1000,
    max_workers: int = 1,
    buffer_size: int = 256,
    batch_size: int = 64,
    flush_interval_ms: int = 5000,
    memory_type: MemoryType = MemoryType.VRAM,
) -> None:
    """Initialize smiwatch and start periodic sampling.

    Without ``driver`` an AmdSmiDriver is created and shut down again by
    ``shutdown()``. A caller-provided driver is never shut down here.
    """
    global _runtime_instance  # noqa: PLW0603

    if _runtime_instance is not None:
        _runtime_instance.shutdown()
        _runtime_instance = None

    config = SmiwatchConfig(
        sample_interval_ms=sample_interval_ms,
        max_workers=max_workers,
        buffer_size=buffer_size,
        batch_size=batch_size,
        flush_interval_ms=flush_interval_ms,
        memory_type=memory_type,
    )
    owns_driver = driver is None
    active_driver: DriverPort = AmdSmiDriver() if driver is None else driver
    runtime = _SmiwatchRuntime(
        config,
        active_driver,
        handler=handler or _discard,
        owns_driver=owns_driver,
    )
    try:
        runtime.start()
    except Exception:
        runtime.shutdown()
        raise
    _runtime_instance = runtime
    atexit.register(shutdown)


def shutdown() -> None:
    """Stop sampling, handing any buffered sweeps to the handler."""
    global _runtime_instance  # noqa: PLW0603
    if _runtime_instance is not None:
        _runtime_instance.shutdown()
        _runtime_instance = None
