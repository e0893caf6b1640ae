"""Metrics sampler: one telemetry sample per call, filtered by capability."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import Any

from smiwatch._driver import METRIC_VALUE_NOT_SUPPORTED, DriverPort
from smiwatch._errors import check_status
from smiwatch._types import CapabilityMask, MemoryType, Status, TelemetrySample

logger = logging.getLogger("smiwatch.sampler")


def _masked(flag: bool, value: int) -> int:
    # the block can carry the sentinel even where the dedicated read did not
    if not flag or value == METRIC_VALUE_NOT_SUPPORTED:
        return 0
    return int(value)


def _masked_engines(flags: Sequence[bool], values: Sequence[int]) -> tuple[int, ...]:
    return tuple(
        _masked(ok and i < len(values), values[i] if i < len(values) else 0)
        for i, ok in enumerate(flags)
    )


def _masked_partitions(
    flags: Sequence[Sequence[bool]], partitions: Sequence[Sequence[int]]
) -> tuple[tuple[int, ...], ...]:
    result = []
    for p, engine_flags in enumerate(flags):
        values: Sequence[int] = partitions[p] if p < len(partitions) else ()
        result.append(_masked_engines(engine_flags, values))
    return tuple(result)


def read_sample(
    driver: DriverPort,
    handle: Any,
    mask: CapabilityMask,
    *,
    memory_type: MemoryType = MemoryType.VRAM,
) -> TelemetrySample:
    """Read the metrics block (and memory usage) and keep only supported fields.

    Raises DriverCallError if the metrics block read fails. A failed
    memory-usage read is logged and leaves the field at zero.
    """
    status, metrics = driver.get_gpu_metrics_info(handle)
    check_status(status, "Failed to get gpu metrics info!")
    timestamp_ns = time.time_ns()

    memory_usage = 0
    if mask.memory_usage:
        status, value = driver.get_memory_usage(handle, memory_type)
        if status == Status.SUCCESS:
            memory_usage = int(value)
        else:
            logger.warning(
                "memory usage read failed for %r: %s",
                handle, Status.from_code(int(status)).name,
            )

    return TelemetrySample(
        timestamp_ns=timestamp_ns,
        current_socket_power=_masked(mask.current_socket_power, metrics.current_socket_power),
        average_socket_power=_masked(mask.average_socket_power, metrics.average_socket_power),
        memory_usage=memory_usage,
        hotspot_temperature=_masked(mask.hotspot_temperature, metrics.temperature_hotspot),
        edge_temperature=_masked(mask.edge_temperature, metrics.temperature_edge),
        gfx_activity=_masked(mask.gfx_activity, metrics.average_gfx_activity),
        umc_activity=_masked(mask.umc_activity, metrics.average_umc_activity),
        mm_activity=_masked(mask.mm_activity, metrics.average_mm_activity),
        vcn_activity=_masked_engines(mask.vcn_activity, metrics.vcn_activity),
        jpeg_activity=_masked_engines(mask.jpeg_activity, metrics.jpeg_activity),
        vcn_busy=_masked_partitions(mask.vcn_busy, [x.vcn_busy for x in metrics.xcp_stats]),
        jpeg_busy=_masked_partitions(mask.jpeg_busy, [x.jpeg_busy for x in metrics.xcp_stats]),
    )
