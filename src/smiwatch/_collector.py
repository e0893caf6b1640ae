"""Multi-device collector: one sweep across all devices, failures isolated per device."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from smiwatch._device import Device
from smiwatch._registry import DeviceRegistry
from smiwatch._types import TelemetrySample

logger = logging.getLogger("smiwatch.collector")


class MultiDeviceCollector:
    """Samples every enumerated device and keys the results by device index.

    A device whose sample cannot be read gets a ``None`` slot and a log
    record; the sweep carries on. Only an enumeration failure raises.
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        *,
        max_workers: int = 1,
    ) -> None:
        self._registry = registry
        self._max_workers = max(1, max_workers)

    @property
    def registry(self) -> DeviceRegistry:
        return self._registry

    def collect(self) -> dict[int, TelemetrySample | None]:
        devices = self._registry.enumerate()
        if self._max_workers > 1 and len(devices) > 1:
            workers = min(self._max_workers, len(devices))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="smiwatch") as pool:
                results = list(pool.map(self._sample_one, devices))
        else:
            results = [self._sample_one(device) for device in devices]
        return {device.index: result for device, result in zip(devices, results)}

    def _sample_one(self, device: Device) -> TelemetrySample | None:
        try:
            return device.sample()
        except Exception:  # noqa: BLE001
            logger.warning("failed to read sample for device %d", device.index, exc_info=True)
            return None
