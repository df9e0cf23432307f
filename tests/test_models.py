"""Tests for linkboard.models — wire names and omission rules."""

from __future__ import annotations

from linkboard.models import (
    CpuStats,
    GpuStats,
    HistoryPoint,
    Link,
    MemoryStats,
    ProcessSample,
    Snapshot,
    SnapshotErrors,
    SwapDevice,
)


class TestSnapshotJson:
    def test_camel_case_keys(self):
        data = Snapshot(host_ip="192.168.1.2", updated_at=1000, processes=12).to_json_dict()
        assert data["hostIp"] == "192.168.1.2"
        assert data["updatedAt"] == 1000
        assert data["processes"] == 12
        assert data["errors"] == {"cpu": "", "memory": "", "disks": "", "gpus": "", "hostIp": ""}

    def test_optional_sections_omitted(self):
        data = Snapshot().to_json_dict()
        for key in ("gpus", "topCpu", "topMemory", "history"):
            assert key not in data
        assert data["disks"] == []
        assert "temperatureC" not in data["cpu"]
        assert "modules" not in data["memory"]

    def test_cpu_clock_aliases(self):
        data = CpuStats(current_mhz=1800.0, max_mhz=3600.0, temperature_c=55.0).to_json_dict()
        assert data["currentMHz"] == 1800.0
        assert data["maxMHz"] == 3600.0
        assert data["temperatureC"] == 55.0
        assert "currentMhz" not in data

    def test_populate_by_alias(self):
        cpu = CpuStats.model_validate({"currentMHz": 1200.0, "logicalCores": 4})
        assert cpu.current_mhz == 1200.0
        assert cpu.logical_cores == 4

    def test_swap_device_type_key(self):
        data = MemoryStats(swap_devices=[SwapDevice(name="/swapfile", kind="file", size_bytes=1)]).to_json_dict()
        assert data["swapDevices"] == [{"name": "/swapfile", "type": "file", "sizeBytes": 1, "usedBytes": 0}]

    def test_gpu_metrics_omitted_when_unknown(self):
        data = GpuStats(index=0, name="Intel UHD", vendor="Intel").to_json_dict()
        assert "utilizationPercent" not in data
        assert "memoryTotalBytes" not in data

    def test_process_sample(self):
        data = ProcessSample(pid=42, name="postgres", memory_bytes=10).to_json_dict()
        assert data == {"pid": 42, "name": "postgres", "memoryBytes": 10}

    def test_history_point_disks_optional(self):
        assert HistoryPoint(time=1).to_json_dict() == {"time": 1, "cpu": 0.0, "mem": 0.0}
        assert HistoryPoint(time=1, disks={"/": 40.0}).to_json_dict()["disks"] == {"/": 40.0}


def test_errors_failed():
    errors = SnapshotErrors(disks="statfs failed", host_ip="no route")
    assert errors.failed() == ["disks", "host_ip"]
    assert SnapshotErrors().failed() == []


def test_link_defaults():
    link = Link(url="http://nas.local")
    assert link.title == ""
    assert link.model_dump() == {"url": "http://nas.local", "title": ""}
