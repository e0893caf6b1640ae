"""AMD SMI driver port backed by the ``amdsmi`` Python binding."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from smiwatch._driver import (
    MAX_NUM_XCP,
    METRIC_VALUE_NOT_SUPPORTED,
    EngineUsage,
    GpuMetrics,
    PowerInfo,
    XcpStats,
)
from smiwatch._types import (
    DriverVersion,
    MemoryType,
    ProcessorType,
    Status,
    TemperatureMetric,
    TemperatureType,
)

logger = logging.getLogger("smiwatch.amdsmi")

# amdsmi is optional; AmdSmiDriver refuses to start without it.
try:
    import amdsmi

    _HAS_AMDSMI = True
except (ImportError, OSError):
    amdsmi = None  # type: ignore[assignment,unused-ignore]
    _HAS_AMDSMI = False

_PROCESSOR_TYPE_PREFIX = "AMDSMI_PROCESSOR_TYPE_"


def _raw(value: Any) -> int:
    """Undo the binding's "N/A" rendering of the not-supported sentinel."""
    if value is None or value == "N/A":
        return METRIC_VALUE_NOT_SUPPORTED
    try:
        return int(value)
    except (TypeError, ValueError):
        return METRIC_VALUE_NOT_SUPPORTED


def _raw_list(values: Any) -> list[int]:
    if not isinstance(values, (list, tuple)):
        return []
    return [_raw(v) for v in values]


def _processor_type(raw: Any) -> ProcessorType:
    if isinstance(raw, dict):
        raw = raw.get("processor_type")
    if isinstance(raw, str):
        name = raw.removeprefix(_PROCESSOR_TYPE_PREFIX)
        return ProcessorType.__members__.get(name, ProcessorType.UNKNOWN)
    try:
        return ProcessorType(int(getattr(raw, "value", raw)))
    except (TypeError, ValueError):
        return ProcessorType.UNKNOWN


class AmdSmiDriver:
    """DriverPort implementation over amdsmi.

    Binding exceptions are turned into status codes so callers only ever see
    ``(status, value)`` pairs.
    """

    def __init__(self, *, init_flags: Any = None) -> None:
        if not _HAS_AMDSMI:
            raise RuntimeError("amdsmi is not installed")
        assert amdsmi is not None
        flags = amdsmi.AmdSmiInitFlags.INIT_AMD_GPUS if init_flags is None else init_flags
        amdsmi.amdsmi_init(flags)
        logger.debug("amdsmi initialized")

    def _call(self, fn: Callable[..., Any], *args: Any) -> tuple[Status, Any]:
        assert amdsmi is not None
        try:
            return Status.SUCCESS, fn(*args)
        except amdsmi.AmdSmiLibraryException as e:
            status = Status.from_code(e.get_error_code())
        except amdsmi.AmdSmiException:
            status = Status.INVAL
        logger.debug("%s failed: %s", getattr(fn, "__name__", fn), status.name)
        return status, None

    def get_version(self) -> tuple[Status, DriverVersion | None]:
        assert amdsmi is not None
        status, raw = self._call(amdsmi.amdsmi_get_lib_version)
        if status != Status.SUCCESS or not isinstance(raw, dict):
            return status if status != Status.SUCCESS else Status.UNEXPECTED_DATA, None
        return status, DriverVersion(
            major=int(raw.get("major", 0)),
            minor=int(raw.get("minor", 0)),
            release=int(raw.get("release", 0)),
            build=str(raw.get("build", "")),
        )

    def _fill(self, status: Status, handles: Any, out: list[Any] | None) -> tuple[Status, int]:
        if status != Status.SUCCESS:
            return status, 0
        handles = list(handles or [])
        if out is None:
            return status, len(handles)
        written = min(len(out), len(handles))
        out[:written] = handles[:written]
        return status, written

    def get_socket_handles(self, out: list[Any] | None) -> tuple[Status, int]:
        assert amdsmi is not None
        status, handles = self._call(amdsmi.amdsmi_get_socket_handles)
        return self._fill(status, handles, out)

    def get_processor_handles(self, socket: Any, out: list[Any] | None) -> tuple[Status, int]:
        assert amdsmi is not None
        status, handles = self._call(
            amdsmi.amdsmi_get_processor_handles_by_type,
            socket,
            amdsmi.AmdSmiProcessorType.AMD_GPU,
        )
        return self._fill(status, handles, out)

    def get_processor_type(self, handle: Any) -> tuple[Status, ProcessorType]:
        assert amdsmi is not None
        status, raw = self._call(amdsmi.amdsmi_get_processor_type, handle)
        if status != Status.SUCCESS:
            return status, ProcessorType.UNKNOWN
        return status, _processor_type(raw)

    def get_power_info(self, handle: Any) -> tuple[Status, PowerInfo]:
        assert amdsmi is not None
        status, raw = self._call(amdsmi.amdsmi_get_power_info, handle)
        if status != Status.SUCCESS or not isinstance(raw, dict):
            return status, PowerInfo()
        return status, PowerInfo(
            current_socket_power=_raw(raw.get("current_socket_power")),
            average_socket_power=_raw(raw.get("average_socket_power")),
            socket_power=_raw(raw.get("socket_power")),
        )

    def get_temperature_metric(
        self, handle: Any, sensor: TemperatureType, metric: TemperatureMetric
    ) -> tuple[Status, int]:
        assert amdsmi is not None
        status, raw = self._call(
            amdsmi.amdsmi_get_temp_metric,
            handle,
            getattr(amdsmi.AmdSmiTemperatureType, sensor.name),
            getattr(amdsmi.AmdSmiTemperatureMetric, metric.name),
        )
        return status, _raw(raw) if status == Status.SUCCESS else 0

    def get_gpu_activity(self, handle: Any) -> tuple[Status, EngineUsage]:
        assert amdsmi is not None
        status, raw = self._call(amdsmi.amdsmi_get_gpu_activity, handle)
        if status != Status.SUCCESS or not isinstance(raw, dict):
            return status, EngineUsage()
        return status, EngineUsage(
            gfx_activity=_raw(raw.get("gfx_activity")),
            umc_activity=_raw(raw.get("umc_activity")),
            mm_activity=_raw(raw.get("mm_activity")),
        )

    def get_memory_usage(self, handle: Any, memory_type: MemoryType) -> tuple[Status, int]:
        assert amdsmi is not None
        status, raw = self._call(
            amdsmi.amdsmi_get_gpu_memory_usage,
            handle,
            getattr(amdsmi.AmdSmiMemoryType, memory_type.name),
        )
        return status, _raw(raw) if status == Status.SUCCESS else 0

    def get_gpu_metrics_info(self, handle: Any) -> tuple[Status, GpuMetrics]:
        assert amdsmi is not None
        status, raw = self._call(amdsmi.amdsmi_get_gpu_metrics_info, handle)
        if status != Status.SUCCESS:
            return status, GpuMetrics()
        if not isinstance(raw, dict):
            return Status.UNEXPECTED_DATA, GpuMetrics()
        xcp_stats = [
            XcpStats(
                vcn_busy=_raw_list(xcp.get("vcn_busy")),
                jpeg_busy=_raw_list(xcp.get("jpeg_busy")),
            )
            for xcp in (raw.get("xcp_stats") or [])[:MAX_NUM_XCP]
            if isinstance(xcp, dict)
        ]
        return status, GpuMetrics(
            temperature_edge=_raw(raw.get("temperature_edge")),
            temperature_hotspot=_raw(raw.get("temperature_hotspot")),
            current_socket_power=_raw(raw.get("current_socket_power")),
            average_socket_power=_raw(raw.get("average_socket_power")),
            average_gfx_activity=_raw(raw.get("average_gfx_activity")),
            average_umc_activity=_raw(raw.get("average_umc_activity")),
            average_mm_activity=_raw(raw.get("average_mm_activity")),
            vcn_activity=_raw_list(raw.get("vcn_activity")),
            jpeg_activity=_raw_list(raw.get("jpeg_activity")),
            xcp_stats=xcp_stats,
        )

    def shutdown(self) -> None:
        try:
            assert amdsmi is not None
            amdsmi.amdsmi_shut_down()
        except Exception:  # noqa: BLE001
            pass
