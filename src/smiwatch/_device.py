"""Device handle with a probe-once, cache-forever capability mask."""

from __future__ import annotations

import threading
from typing import Any

from smiwatch._capabilities import probe_capabilities
from smiwatch._driver import DriverPort
from smiwatch._sampler import read_sample
from smiwatch._types import CapabilityMask, MemoryType, ProcessorType, TelemetrySample


class Device:
    """One accelerator managed by the driver.

    The driver reference is shared with every other Device from the same
    registry and is never shut down from here. The capability mask is
    computed on first use and reused for the lifetime of the handle. The
    memory pool is fixed per handle so probe and samples look at the same one.
    """

    __slots__ = (
        "_driver",
        "_handle",
        "_processor_type",
        "_index",
        "_memory_type",
        "_lock",
        "_capabilities",
    )

    def __init__(
        self,
        driver: DriverPort,
        handle: Any,
        processor_type: ProcessorType,
        index: int = 0,
        *,
        memory_type: MemoryType = MemoryType.VRAM,
    ) -> None:
        self._driver = driver
        self._handle = handle
        self._processor_type = processor_type
        self._index = index
        self._memory_type = memory_type
        self._lock = threading.Lock()
        self._capabilities: CapabilityMask | None = None

    @property
    def driver(self) -> DriverPort:
        return self._driver

    @property
    def handle(self) -> Any:
        return self._handle

    @property
    def processor_type(self) -> ProcessorType:
        return self._processor_type

    @property
    def index(self) -> int:
        return self._index

    @property
    def memory_type(self) -> MemoryType:
        return self._memory_type

    @property
    def is_probed(self) -> bool:
        return self._capabilities is not None

    @property
    def capabilities(self) -> CapabilityMask:
        """Capability mask, probing the driver exactly once per handle."""
        mask = self._capabilities
        if mask is not None:
            return mask
        with self._lock:
            if self._capabilities is None:
                self._capabilities = probe_capabilities(
                    self._driver, self._handle, memory_type=self._memory_type
                )
            return self._capabilities

    def probe(self) -> CapabilityMask:
        return self.capabilities

    def sample(self) -> TelemetrySample:
        """Read one sample; raises DriverCallError if the metrics block is unreadable."""
        return read_sample(
            self._driver, self._handle, self.capabilities, memory_type=self._memory_type
        )

    def __repr__(self) -> str:
        return (
            f"Device(index={self._index}, handle={self._handle!r}, "
            f"type={self._processor_type.name})"
        )


def probe(device: Device) -> CapabilityMask:
    """Return the device's capability mask, probing on first call only."""
    return device.probe()


def sample(device: Device) -> TelemetrySample:
    """Take one telemetry sample from ``device``."""
    return device.sample()
