"""Driver port protocol and the raw payload types it returns."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from smiwatch._types import (
    DriverVersion,
    MemoryType,
    ProcessorType,
    Status,
    TemperatureMetric,
    TemperatureType,
)

# Reserved value: field exists in the payload but the device does not implement it.
METRIC_VALUE_NOT_SUPPORTED = 0xFFFF

MAX_NUM_XCP = 8
MAX_NUM_VCN = 4
MAX_NUM_JPEG = 32
MAX_NUM_JPEG_ENG_V1 = 40


def _filled(size: int) -> list[int]:
    return [METRIC_VALUE_NOT_SUPPORTED] * size


@dataclass
class PowerInfo:
    current_socket_power: int = 0
    average_socket_power: int = 0
    socket_power: int = 0


@dataclass
class EngineUsage:
    gfx_activity: int = 0
    umc_activity: int = 0
    mm_activity: int = 0


@dataclass
class XcpStats:
    """Per-partition engine busyness counters."""

    vcn_busy: list[int] = field(default_factory=lambda: _filled(MAX_NUM_VCN))
    jpeg_busy: list[int] = field(default_factory=lambda: _filled(MAX_NUM_JPEG))


@dataclass
class GpuMetrics:
    """Combined metrics block: temperatures, power, activity and XCP stats."""

    temperature_edge: int = METRIC_VALUE_NOT_SUPPORTED
    temperature_hotspot: int = METRIC_VALUE_NOT_SUPPORTED
    current_socket_power: int = METRIC_VALUE_NOT_SUPPORTED
    average_socket_power: int = METRIC_VALUE_NOT_SUPPORTED
    average_gfx_activity: int = METRIC_VALUE_NOT_SUPPORTED
    average_umc_activity: int = METRIC_VALUE_NOT_SUPPORTED
    average_mm_activity: int = METRIC_VALUE_NOT_SUPPORTED
    vcn_activity: list[int] = field(default_factory=lambda: _filled(MAX_NUM_VCN))
    jpeg_activity: list[int] = field(default_factory=lambda: _filled(MAX_NUM_JPEG_ENG_V1))
    xcp_stats: list[XcpStats] = field(default_factory=list)


@runtime_checkable
class DriverPort(Protocol):
    """Structural protocol for the vendor monitoring driver.

    Every operation returns ``(status, value)``; ``value`` is meaningless
    unless ``status`` is SUCCESS. Enumeration calls follow the two-phase
    convention: pass ``out=None`` to learn the count, then a list sized to
    that count to have it filled in place.
    """

    def get_version(self) -> tuple[Status, DriverVersion | None]: ...

    def get_socket_handles(self, out: list[Any] | None) -> tuple[Status, int]: ...

    def get_processor_handles(
        self, socket: Any, out: list[Any] | None
    ) -> tuple[Status, int]: ...

    def get_processor_type(self, handle: Any) -> tuple[Status, ProcessorType]: ...

    def get_power_info(self, handle: Any) -> tuple[Status, PowerInfo]: ...

    def get_temperature_metric(
        self, handle: Any, sensor: TemperatureType, metric: TemperatureMetric
    ) -> tuple[Status, int]: ...

    def get_gpu_activity(self, handle: Any) -> tuple[Status, EngineUsage]: ...

    def get_memory_usage(
        self, handle: Any, memory_type: MemoryType
    ) -> tuple[Status, int]: ...

    def get_gpu_metrics_info(self, handle: Any) -> tuple[Status, GpuMetrics]: ...
