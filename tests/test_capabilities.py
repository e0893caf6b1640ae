"""Tests for the capability probe: one driver read per metric family."""

from __future__ import annotations

from typing import Any

from fake_driver import SENTINEL, FakeDevice, FakeDriver, full_metrics

from smiwatch._capabilities import probe_capabilities
from smiwatch._driver import MAX_NUM_JPEG, MAX_NUM_VCN, GpuMetrics, PowerInfo, XcpStats
from smiwatch._types import CapabilityMask, MemoryType, Status, TemperatureType


def _probe(device: FakeDevice) -> tuple[CapabilityMask, FakeDriver]:
    driver = FakeDriver(devices={"gpu-0": device})
    return probe_capabilities(driver, "gpu-0"), driver


class TestAllSupported:
    def test_every_scalar_flag_set(self) -> None:
        mask, _ = _probe(FakeDevice())
        assert mask.average_socket_power
        assert mask.current_socket_power
        assert mask.gfx_activity
        assert mask.mm_activity
        assert mask.umc_activity
        assert mask.memory_usage
        assert mask.edge_temperature
        assert mask.hotspot_temperature
        assert mask.vcn_xcp_stats
        assert mask.jpeg_xcp_stats

    def test_partition_vectors_shaped_like_block(self) -> None:
        mask, _ = _probe(FakeDevice(metrics=full_metrics(num_partitions=3)))
        assert len(mask.vcn_busy) == 3
        assert len(mask.jpeg_busy) == 3
        assert all(len(v) == MAX_NUM_VCN for v in mask.vcn_busy)
        assert all(len(v) == MAX_NUM_JPEG for v in mask.jpeg_busy)
        assert all(all(v) for v in mask.vcn_busy)

    def test_one_read_per_family(self) -> None:
        _, driver = _probe(FakeDevice())
        assert driver.calls["get_power_info"] == 1
        assert driver.calls["get_gpu_activity"] == 1
        assert driver.calls["get_memory_usage"] == 1
        assert driver.calls["get_temperature_metric"] == 2
        assert driver.calls["get_gpu_metrics_info"] == 1


class TestPower:
    def test_power_call_failure_clears_both_flags(self) -> None:
        mask, _ = _probe(FakeDevice(power_status=Status.NOT_SUPPORTED))
        assert not mask.average_socket_power
        assert not mask.current_socket_power
        # other families unaffected
        assert mask.gfx_activity
        assert mask.memory_usage
        assert mask.hotspot_temperature

    def test_power_reported_values(self) -> None:
        power = PowerInfo(socket_power=11, current_socket_power=10, average_socket_power=9)
        mask, _ = _probe(FakeDevice(power=power))
        assert mask.average_socket_power
        assert mask.current_socket_power

    def test_sentinel_clears_only_that_field(self) -> None:
        power = PowerInfo(current_socket_power=SENTINEL, average_socket_power=150)
        mask, _ = _probe(FakeDevice(power=power))
        assert not mask.current_socket_power
        assert mask.average_socket_power


class TestTemperature:
    def test_edge_sentinel_hotspot_value(self) -> None:
        device = FakeDevice(
            temperatures={TemperatureType.HOTSPOT: 62000, TemperatureType.EDGE: SENTINEL}
        )
        mask, _ = _probe(device)
        assert not mask.edge_temperature
        assert mask.hotspot_temperature

    def test_hotspot_call_failure(self) -> None:
        device = FakeDevice(temperature_status={TemperatureType.HOTSPOT: Status.NOT_SUPPORTED})
        mask, _ = _probe(device)
        assert not mask.hotspot_temperature
        assert mask.edge_temperature

    def test_negative_reading_is_supported(self) -> None:
        device = FakeDevice(temperatures={TemperatureType.HOTSPOT: -500, TemperatureType.EDGE: 1})
        mask, _ = _probe(device)
        assert mask.hotspot_temperature


class TestEngineActivity:
    def test_activity_failure_clears_all_three(self) -> None:
        mask, _ = _probe(FakeDevice(activity_status=Status.API_FAILED))
        assert not mask.gfx_activity
        assert not mask.umc_activity
        assert not mask.mm_activity
        assert mask.average_socket_power

    def test_memory_failure(self) -> None:
        mask, _ = _probe(FakeDevice(memory_status=Status.NOT_SUPPORTED))
        assert not mask.memory_usage


class TestMetricsBlock:
    def test_all_partitions_sentinel(self) -> None:
        metrics = full_metrics()
        metrics.xcp_stats = [XcpStats() for _ in range(8)]
        mask, _ = _probe(FakeDevice(metrics=metrics))
        assert not mask.vcn_xcp_stats
        assert not mask.jpeg_xcp_stats
        assert len(mask.vcn_busy) == 8
        assert not any(any(v) for v in mask.vcn_busy)

    def test_single_engine_sets_aggregate(self) -> None:
        metrics = full_metrics()
        metrics.xcp_stats = [XcpStats() for _ in range(4)]
        metrics.xcp_stats[2].vcn_busy[1] = 0
        mask, _ = _probe(FakeDevice(metrics=metrics))
        assert mask.vcn_xcp_stats
        assert not mask.jpeg_xcp_stats
        assert mask.vcn_busy[2][1]
        assert not mask.vcn_busy[2][0]
        assert not mask.vcn_busy[0][1]

    def test_zero_partitions(self) -> None:
        mask, _ = _probe(FakeDevice(metrics=full_metrics(num_partitions=0)))
        assert mask.vcn_busy == ()
        assert mask.jpeg_busy == ()
        assert not mask.vcn_xcp_stats
        assert not mask.jpeg_xcp_stats
        assert mask.num_partitions == 0

    def test_block_failure_clears_vectors(self) -> None:
        mask, _ = _probe(FakeDevice(metrics_status=Status.NOT_SUPPORTED))
        assert mask.vcn_busy == ()
        assert mask.jpeg_busy == ()
        assert mask.vcn_activity == ()
        assert not mask.vcn_xcp_stats
        assert not mask.jpeg_xcp_stats
        # scalar families come from their own reads
        assert mask.hotspot_temperature
        assert mask.average_socket_power

    def test_device_level_engines(self) -> None:
        metrics = full_metrics()
        metrics.vcn_activity = [50, SENTINEL, 30, SENTINEL]
        metrics.jpeg_activity = [40, SENTINEL]
        mask, _ = _probe(FakeDevice(metrics=metrics))
        assert mask.vcn_activity == (True, False, True, False)
        assert mask.jpeg_activity == (True, False)

    def test_zero_is_a_real_reading(self) -> None:
        metrics = GpuMetrics(xcp_stats=[XcpStats(vcn_busy=[0] * MAX_NUM_VCN)])
        mask, _ = _probe(FakeDevice(metrics=metrics))
        assert mask.vcn_xcp_stats
        assert all(mask.vcn_busy[0])


class TestMemoryPool:
    def test_probes_requested_pool(self) -> None:
        driver = FakeDriver()
        probe_capabilities(driver, "gpu-0", memory_type=MemoryType.GTT)
        assert ("get_memory_usage", ("gpu-0", MemoryType.GTT)) in driver.call_log

    def test_defaults_to_vram(self) -> None:
        _, driver = _probe(FakeDevice())
        assert ("get_memory_usage", ("gpu-0", MemoryType.VRAM)) in driver.call_log


class TestNeverRaises:
    def test_everything_failing_gives_empty_mask(self) -> None:
        device = FakeDevice(
            power_status=Status.NOT_SUPPORTED,
            activity_status=Status.NOT_SUPPORTED,
            memory_status=Status.NOT_SUPPORTED,
            temperature_status={
                TemperatureType.HOTSPOT: Status.NOT_SUPPORTED,
                TemperatureType.EDGE: Status.NOT_SUPPORTED,
            },
            metrics_status=Status.NOT_SUPPORTED,
        )
        mask, _ = _probe(device)
        assert mask == CapabilityMask.unsupported()
        assert mask.supported_metrics() == []

    def test_raising_driver_call_counts_as_failure(self) -> None:
        class _Exploding(FakeDriver):
            def get_power_info(self, handle: Any) -> tuple[Status, PowerInfo]:
                raise OSError("device lost")

        driver = _Exploding()
        mask = probe_capabilities(driver, "gpu-0")
        assert not mask.average_socket_power
        assert not mask.current_socket_power
        assert mask.hotspot_temperature
