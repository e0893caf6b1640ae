"""Device registry: enumerates every socket and device once at startup."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from smiwatch._device import Device
from smiwatch._driver import DriverPort
from smiwatch._errors import DriverCallError, EnumerationError, check_status
from smiwatch._types import DriverVersion, MemoryType, ProcessorType, Status

logger = logging.getLogger("smiwatch.registry")


def _two_phase(
    call: Callable[[list[Any] | None], tuple[Status, int]],
    message: str,
) -> list[Any]:
    """Ask for the count, then for a buffer of exactly that many handles."""
    status, count = call(None)
    check_status(status, message, EnumerationError)
    if count == 0:
        return []
    handles: list[Any] = [None] * count
    status, written = call(handles)
    check_status(status, message, EnumerationError)
    return handles[:written]


def _processor_type(raw: int) -> ProcessorType:
    try:
        return ProcessorType(raw)
    except ValueError:
        logger.debug("unrecognised processor type code %r", raw)
        return ProcessorType.UNKNOWN


class DeviceRegistry:
    """Owns the Device handles built from one shared driver connection.

    Enumeration either yields the full device list or raises
    EnumerationError; a partial list is never returned or cached. Every
    device probes and samples the ``memory_type`` pool.
    """

    def __init__(
        self, driver: DriverPort, *, memory_type: MemoryType = MemoryType.VRAM
    ) -> None:
        self._driver = driver
        self._memory_type = memory_type
        self._lock = threading.Lock()
        self._devices: list[Device] | None = None

    @property
    def driver(self) -> DriverPort:
        return self._driver

    @property
    def memory_type(self) -> MemoryType:
        return self._memory_type

    def enumerate(self) -> list[Device]:
        """Return every device across every socket, in enumeration order."""
        with self._lock:
            if self._devices is None:
                self._devices = self._enumerate()
                logger.info("enumerated %d device(s)", len(self._devices))
            return list(self._devices)

    @property
    def devices(self) -> list[Device]:
        return self.enumerate()

    def version(self) -> DriverVersion:
        status, version = self._driver.get_version()
        check_status(status, "Fail to get AMD SMI driver version!")
        if version is None:
            raise DriverCallError("Fail to get AMD SMI driver version!", Status.NO_DATA)
        return version

    def _enumerate(self) -> list[Device]:
        driver = self._driver
        devices: list[Device] = []
        sockets = _two_phase(driver.get_socket_handles, "Failed to get socket handles!")
        for socket in sockets:
            handles = _two_phase(
                lambda out, s=socket: driver.get_processor_handles(s, out),
                "Failed to get processor handles for provided socket!",
            )
            for handle in handles:
                status, processor_type = driver.get_processor_type(handle)
                check_status(status, "Failed to get processor type!", EnumerationError)
                devices.append(
                    Device(
                        driver,
                        handle,
                        _processor_type(processor_type),
                        len(devices),
                        memory_type=self._memory_type,
                    )
                )
        return devices

    def __len__(self) -> int:
        return len(self.enumerate())
