"""Core types: driver enums, capability mask and telemetry sample structures."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, fields


class Status(enum.IntEnum):
    """Status code returned by every driver call."""

    SUCCESS = 0
    INVAL = 1
    NOT_SUPPORTED = 2
    NOT_YET_IMPLEMENTED = 3
    FAIL_LOAD_MODULE = 4
    FAIL_LOAD_SYMBOL = 5
    DRM_ERROR = 6
    API_FAILED = 7
    TIMEOUT = 8
    RETRY = 9
    NO_PERM = 10
    INTERRUPT = 11
    IO = 12
    ADDRESS_FAULT = 13
    FILE_ERROR = 14
    OUT_OF_RESOURCES = 15
    INTERNAL_EXCEPTION = 16
    INPUT_OUT_OF_BOUNDS = 17
    INIT_ERROR = 18
    REFCOUNT_OVERFLOW = 19
    BUSY = 30
    NOT_FOUND = 31
    NOT_INIT = 32
    NO_SLOT = 33
    DRIVER_NOT_LOADED = 34
    NO_DATA = 40
    INSUFFICIENT_SIZE = 41
    UNEXPECTED_SIZE = 42
    UNEXPECTED_DATA = 43
    MAP_ERROR = 0xFFFFFFFE
    UNKNOWN_ERROR = 0xFFFFFFFF

    @classmethod
    def from_code(cls, code: int) -> Status:
        """Map a raw driver code to a Status, folding unknown codes into UNKNOWN_ERROR."""
        try:
            return cls(code)
        except ValueError:
            return cls.UNKNOWN_ERROR


class ProcessorType(enum.IntEnum):
    """Coarse kind of a managed device."""

    UNKNOWN = 0
    AMD_GPU = 1
    AMD_CPU = 2
    NON_AMD_GPU = 3
    NON_AMD_CPU = 4
    AMD_CPU_CORE = 5
    AMD_APU = 6


class TemperatureType(enum.IntEnum):
    """Temperature sensor location."""

    EDGE = 0
    HOTSPOT = 1
    JUNCTION = 1
    VRAM = 2


class TemperatureMetric(enum.IntEnum):
    """Which reading of a temperature sensor to return."""

    CURRENT = 0
    MAX = 1
    MIN = 2


class MemoryType(enum.IntEnum):
    """Memory pool queried by memory-usage reads."""

    VRAM = 0
    VIS_VRAM = 1
    GTT = 2


@dataclass(frozen=True)
class DriverVersion:
    """Driver library version read right after initialization."""

    major: int
    minor: int
    release: int
    build: str = ""

    def __str__(self) -> str:
        if self.build:
            return f"{self.major}.{self.minor}.{self.release} ({self.build})"
        return f"{self.major}.{self.minor}.{self.release}"


_SCALAR_FAMILIES = (
    "current_socket_power",
    "average_socket_power",
    "memory_usage",
    "hotspot_temperature",
    "edge_temperature",
    "gfx_activity",
    "umc_activity",
    "mm_activity",
    "vcn_xcp_stats",
    "jpeg_xcp_stats",
)


@dataclass(frozen=True)
class CapabilityMask:
    """Immutable record of which metric families a device reports reliably.

    Scalar flags cover one metric family each. ``vcn_activity`` and
    ``jpeg_activity`` hold one flag per device-wide encode/decode engine;
    ``vcn_busy`` and ``jpeg_busy`` hold one vector per compute partition,
    one flag per engine instance inside it. ``vcn_xcp_stats`` and
    ``jpeg_xcp_stats`` are true iff any per-partition flag is true.
    """

    current_socket_power: bool = False
    average_socket_power: bool = False
    memory_usage: bool = False
    hotspot_temperature: bool = False
    edge_temperature: bool = False
    gfx_activity: bool = False
    umc_activity: bool = False
    mm_activity: bool = False
    vcn_xcp_stats: bool = False
    jpeg_xcp_stats: bool = False
    vcn_activity: tuple[bool, ...] = ()
    jpeg_activity: tuple[bool, ...] = ()
    vcn_busy: tuple[tuple[bool, ...], ...] = ()
    jpeg_busy: tuple[tuple[bool, ...], ...] = ()

    @classmethod
    def unsupported(cls) -> CapabilityMask:
        """Mask with every family cleared."""
        return cls()

    def supported_metrics(self) -> list[str]:
        """Names of the scalar families whose flag is set, in field order."""
        return [name for name in _SCALAR_FAMILIES if getattr(self, name)]

    @property
    def num_partitions(self) -> int:
        return max(len(self.vcn_busy), len(self.jpeg_busy))


@dataclass(frozen=True)
class TelemetrySample:
    """One telemetry snapshot of one device.

    Power is in milliwatts, temperature in millidegrees Celsius, utilization
    in the driver's native percentage unit and memory usage in bytes. Fields
    the device's CapabilityMask does not mark supported stay at zero.
    """

    timestamp_ns: int = 0
    current_socket_power: int = 0
    average_socket_power: int = 0
    memory_usage: int = 0
    hotspot_temperature: int = 0
    edge_temperature: int = 0
    gfx_activity: int = 0
    umc_activity: int = 0
    mm_activity: int = 0
    vcn_activity: tuple[int, ...] = ()
    jpeg_activity: tuple[int, ...] = ()
    vcn_busy: tuple[tuple[int, ...], ...] = ()
    jpeg_busy: tuple[tuple[int, ...], ...] = ()

    def as_dict(self) -> dict[str, object]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class Sweep:
    """Result of one collection cycle across every enumerated device."""

    timestamp_ns: int
    samples: dict[int, TelemetrySample | None] = field(default_factory=dict)

    @property
    def missing(self) -> list[int]:
        """Indices of devices whose sample could not be read this cycle."""
        return [idx for idx, s in self.samples.items() if s is None]
