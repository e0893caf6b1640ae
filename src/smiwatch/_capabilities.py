"""Capability probe: decides once which metric families a device can report.

Each metric family is read a single time through the driver port. A family
is supported iff its call succeeds and, for families the driver can fill
with the reserved not-supported value, the returned value is not that
sentinel. Engine activity is gated on call success alone. Engine vectors
come from the combined metrics block: an element is supported iff the block
read succeeded and the element is not the sentinel.

The probe never raises. A failed call clears only the flags it feeds.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from smiwatch._driver import METRIC_VALUE_NOT_SUPPORTED, DriverPort
from smiwatch._types import (
    CapabilityMask,
    MemoryType,
    Status,
    TemperatureMetric,
    TemperatureType,
)

logger = logging.getLogger("smiwatch.capabilities")


def _is_value(value: int) -> bool:
    return value != METRIC_VALUE_NOT_SUPPORTED


def _engine_flags(values: Sequence[int]) -> tuple[bool, ...]:
    return tuple(_is_value(v) for v in values)


def _read(call: Callable[..., tuple[Status, Any]], *args: Any) -> tuple[Status, Any]:
    """Run one probe read; a raising driver counts as a failed call."""
    try:
        return call(*args)
    except Exception:  # noqa: BLE001
        logger.debug("probe read %s raised", getattr(call, "__name__", call), exc_info=True)
        return Status.UNKNOWN_ERROR, None


def _probe_temperature(driver: DriverPort, handle: Any, sensor: TemperatureType) -> bool:
    status, value = _read(driver.get_temperature_metric, handle, sensor, TemperatureMetric.CURRENT)
    return status == Status.SUCCESS and _is_value(value)


def probe_capabilities(
    driver: DriverPort, handle: Any, *, memory_type: MemoryType = MemoryType.VRAM
) -> CapabilityMask:
    """Issue one read of every metric family and fold the results into a mask.

    ``memory_type`` must be the pool later samples read, so the memory flag
    describes that pool.
    """
    status, power = _read(driver.get_power_info, handle)
    power_ok = status == Status.SUCCESS
    current_power = power_ok and _is_value(power.current_socket_power)
    average_power = power_ok and _is_value(power.average_socket_power)

    status, _ = _read(driver.get_gpu_activity, handle)
    activity_ok = status == Status.SUCCESS

    status, _ = _read(driver.get_memory_usage, handle, memory_type)
    memory_ok = status == Status.SUCCESS

    hotspot = _probe_temperature(driver, handle, TemperatureType.HOTSPOT)
    edge = _probe_temperature(driver, handle, TemperatureType.EDGE)

    vcn_activity: tuple[bool, ...] = ()
    jpeg_activity: tuple[bool, ...] = ()
    vcn_busy: tuple[tuple[bool, ...], ...] = ()
    jpeg_busy: tuple[tuple[bool, ...], ...] = ()

    status, metrics = _read(driver.get_gpu_metrics_info, handle)
    if status == Status.SUCCESS:
        vcn_activity = _engine_flags(metrics.vcn_activity)
        jpeg_activity = _engine_flags(metrics.jpeg_activity)
        vcn_busy = tuple(_engine_flags(xcp.vcn_busy) for xcp in metrics.xcp_stats)
        jpeg_busy = tuple(_engine_flags(xcp.jpeg_busy) for xcp in metrics.xcp_stats)
    else:
        logger.debug(
            "metrics block unavailable for %r: %s", handle, Status.from_code(int(status)).name
        )

    mask = CapabilityMask(
        current_socket_power=current_power,
        average_socket_power=average_power,
        memory_usage=memory_ok,
        hotspot_temperature=hotspot,
        edge_temperature=edge,
        gfx_activity=activity_ok,
        umc_activity=activity_ok,
        mm_activity=activity_ok,
        vcn_xcp_stats=any(any(engines) for engines in vcn_busy),
        jpeg_xcp_stats=any(any(engines) for engines in jpeg_busy),
        vcn_activity=vcn_activity,
        jpeg_activity=jpeg_activity,
        vcn_busy=vcn_busy,
        jpeg_busy=jpeg_busy,
    )
    logger.debug("capabilities for %r: %s", handle, ", ".join(mask.supported_metrics()) or "none")
    return mask
