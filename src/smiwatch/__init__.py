"""smiwatch: capability-aware telemetry sampling for AMD accelerators."""

from __future__ import annotations

from smiwatch._amdsmi import AmdSmiDriver
from smiwatch._collector import MultiDeviceCollector
from smiwatch._config import SmiwatchConfig
from smiwatch._device import Device, probe, sample
from smiwatch._dispatch import SweepDispatcher
from smiwatch._driver import METRIC_VALUE_NOT_SUPPORTED, DriverPort
from smiwatch._errors import DriverCallError, EnumerationError, SmiError
from smiwatch._monitor import TelemetryMonitor
from smiwatch._registry import DeviceRegistry
from smiwatch._runtime import _get_runtime, init, shutdown
from smiwatch._types import (
    CapabilityMask,
    DriverVersion,
    MemoryType,
    ProcessorType,
    Status,
    Sweep,
    TelemetrySample,
)

__version__ = "0.1.0"

__all__ = [
    "METRIC_VALUE_NOT_SUPPORTED",
    "AmdSmiDriver",
    "CapabilityMask",
    "Device",
    "DeviceRegistry",
    "DriverCallError",
    "DriverPort",
    "DriverVersion",
    "EnumerationError",
    "MemoryType",
    "MultiDeviceCollector",
    "ProcessorType",
    "SmiError",
    "SmiwatchConfig",
    "Status",
    "Sweep",
    "SweepDispatcher",
    "TelemetryMonitor",
    "TelemetrySample",
    "__version__",
    "collect",
    "devices",
    "init",
    "latest",
    "probe",
    "sample",
    "shutdown",
]


def collect() -> dict[int, TelemetrySample | None]:
    """Take one sweep across every device of the active runtime.

    Usage::

        smiwatch.init()
        for index, s in smiwatch.collect().items():
            if s is not None:
                print(index, s.average_socket_power, s.hotspot_temperature)
    """
    return _get_runtime().collect()


def devices() -> list[Device]:
    """Devices enumerated by the active runtime, in enumeration order."""
    return _get_runtime().devices()


def latest() -> Sweep | None:
    """Most recent sweep taken by the background monitor."""
    return _get_runtime().latest()
