#!/usr/bin/env python3
"""Sampling hot-path overhead benchmark.

Measures the library-side cost of:
  1. read_sample      (capability masking over one metrics block)
  2. Device.sample    (cached mask lookup + read_sample)
  3. collect()        (one sweep over 8 devices, failures isolated)
  4. SweepDispatcher  (sweep offer, no delivery thread)

The driver is an in-memory stand-in returning constant payloads, so the
numbers exclude driver latency.

Usage:
    python benchmarks/bench_overhead.py
"""

from __future__ import annotations

import time
from typing import Any

from smiwatch._collector import MultiDeviceCollector
from smiwatch._device import Device
from smiwatch._dispatch import SweepDispatcher
from smiwatch._driver import (
    MAX_NUM_JPEG,
    MAX_NUM_VCN,
    EngineUsage,
    GpuMetrics,
    PowerInfo,
    XcpStats,
)
from smiwatch._registry import DeviceRegistry
from smiwatch._sampler import read_sample
from smiwatch._types import (
    DriverVersion,
    MemoryType,
    ProcessorType,
    Status,
    Sweep,
    TemperatureMetric,
    TemperatureType,
)

_METRICS = GpuMetrics(
    temperature_edge=45000,
    temperature_hotspot=62000,
    current_socket_power=140,
    average_socket_power=150,
    average_gfx_activity=75,
    average_umc_activity=50,
    average_mm_activity=60,
    xcp_stats=[XcpStats(vcn_busy=[25] * MAX_NUM_VCN, jpeg_busy=[20] * MAX_NUM_JPEG)] * 8,
)


class _StaticDriver:
    """Driver port with constant answers for ``num_gpus`` devices on one socket."""

    def __init__(self, num_gpus: int = 8) -> None:
        self._handles = [f"gpu-{i}" for i in range(num_gpus)]

    def get_version(self) -> tuple[Status, DriverVersion | None]:
        return Status.SUCCESS, DriverVersion(0, 0, 0)

    def _fill(self, items: list[Any], out: list[Any] | None) -> tuple[Status, int]:
        if out is None:
            return Status.SUCCESS, len(items)
        out[: len(items)] = items[: len(out)]
        return Status.SUCCESS, min(len(out), len(items))

    def get_socket_handles(self, out: list[Any] | None) -> tuple[Status, int]:
        return self._fill(["socket-0"], out)

    def get_processor_handles(self, socket: Any, out: list[Any] | None) -> tuple[Status, int]:
        return self._fill(self._handles, out)

    def get_processor_type(self, handle: Any) -> tuple[Status, ProcessorType]:
        return Status.SUCCESS, ProcessorType.AMD_GPU

    def get_power_info(self, handle: Any) -> tuple[Status, PowerInfo]:
        return Status.SUCCESS, PowerInfo(current_socket_power=140, average_socket_power=150)

    def get_temperature_metric(
        self, handle: Any, sensor: TemperatureType, metric: TemperatureMetric
    ) -> tuple[Status, int]:
        return Status.SUCCESS, 50000

    def get_gpu_activity(self, handle: Any) -> tuple[Status, EngineUsage]:
        return Status.SUCCESS, EngineUsage(75, 50, 60)

    def get_memory_usage(self, handle: Any, memory_type: MemoryType) -> tuple[Status, int]:
        return Status.SUCCESS, 8192

    def get_gpu_metrics_info(self, handle: Any) -> tuple[Status, GpuMetrics]:
        return Status.SUCCESS, _METRICS


def bench_read_sample(iterations: int = 100_000) -> float:
    """Benchmark: read_sample against a pre-probed mask."""
    driver = _StaticDriver(num_gpus=1)
    mask = Device(driver, "gpu-0", ProcessorType.AMD_GPU).probe()

    # Warmup
    for _ in range(1000):
        read_sample(driver, "gpu-0", mask)

    start = time.perf_counter_ns()
    for _ in range(iterations):
        read_sample(driver, "gpu-0", mask)
    elapsed = time.perf_counter_ns() - start

    return elapsed / iterations


def bench_device_sample(iterations: int = 100_000) -> float:
    """Benchmark: Device.sample with the capability mask already cached."""
    device = Device(_StaticDriver(num_gpus=1), "gpu-0", ProcessorType.AMD_GPU)
    device.probe()

    for _ in range(1000):
        device.sample()

    start = time.perf_counter_ns()
    for _ in range(iterations):
        device.sample()
    elapsed = time.perf_counter_ns() - start

    return elapsed / iterations


def bench_collect(iterations: int = 10_000) -> float:
    """Benchmark: one sequential sweep over 8 devices."""
    collector = MultiDeviceCollector(DeviceRegistry(_StaticDriver(num_gpus=8)))

    for _ in range(100):
        collector.collect()

    start = time.perf_counter_ns()
    for _ in range(iterations):
        collector.collect()
    elapsed = time.perf_counter_ns() - start

    return elapsed / iterations


def bench_offer_only(iterations: int = 500_000) -> float:
    """Benchmark: dispatcher offer cost only (one incomplete sweep per call)."""
    dispatcher = SweepDispatcher(capacity=iterations + 10_000, batch_size=iterations + 10_000)
    sweep = Sweep(timestamp_ns=1000, samples={0: None})

    for _ in range(5000):
        dispatcher.offer(sweep)
    dispatcher.flush()

    start = time.perf_counter_ns()
    for _ in range(iterations):
        dispatcher.offer(sweep)
    elapsed = time.perf_counter_ns() - start

    return elapsed / iterations


def main() -> None:
    print("=" * 60)
    print("smiwatch Sampling Overhead Benchmark")
    print("=" * 60)

    results: list[tuple[str, float, str]] = []

    ns = bench_offer_only()
    status = "PASS" if ns < 1000 else "WARN" if ns < 5000 else "FAIL"
    results.append(("SweepDispatcher.offer", ns, f"{status} (target < 1μs)"))

    ns = bench_read_sample()
    status = "PASS" if ns < 20000 else "WARN" if ns < 50000 else "FAIL"
    results.append(("read_sample (8 partitions)", ns, f"{status} (target < 20μs)"))

    ns = bench_device_sample()
    status = "PASS" if ns < 20000 else "WARN" if ns < 50000 else "FAIL"
    results.append(("Device.sample (cached mask)", ns, f"{status} (target < 20μs)"))

    ns = bench_collect()
    status = "PASS" if ns < 200000 else "WARN" if ns < 500000 else "FAIL"
    results.append(("collect() over 8 devices", ns, f"{status} (target < 200μs)"))

    print()
    for name, ns_val, note in results:
        if ns_val >= 1000:
            display = f"{ns_val / 1000:.2f}μs"
        else:
            display = f"{ns_val:.0f}ns"
        print(f"  {name:40s}  {display:>10s}   {note}")

    print()
    all_pass = all("PASS" in r[2] or "WARN" in r[2] for r in results)
    if all_pass:
        print("All benchmarks within acceptable range.")
    else:
        print("WARNING: Some benchmarks exceeded target. Review above.")


if __name__ == "__main__":
    main()
