from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ResourceModel(BaseModel):
    """Base for telemetry models: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SnapshotErrors(ResourceModel):
    """One short message per metric family; empty string when healthy."""

    cpu: str = ""
    memory: str = ""
    disks: str = ""
    gpus: str = ""
    host_ip: str = ""

    def failed(self) -> list[str]:
        return [name for name, msg in self if msg]


class CpuStats(ResourceModel):
    percent: float = 0.0
    model: str = ""
    physical_cores: int = 0
    logical_cores: int = 0
    current_mhz: float = Field(0.0, alias="currentMHz")
    max_mhz: float = Field(0.0, alias="maxMHz")
    current_percent_of_max: float = 0.0
    temperature_c: float | None = None
    performance_cores: int = 0
    efficiency_cores: int = 0
    performance_threads: int = 0
    efficiency_threads: int = 0


class MemoryModule(ResourceModel):
    label: str = ""
    vendor: str = ""
    size_bytes: int = 0


class SwapDevice(ResourceModel):
    name: str
    kind: str = Field("", alias="type")
    size_bytes: int = 0
    used_bytes: int = 0


class MemoryStats(ResourceModel):
    total_bytes: int = 0
    used_bytes: int = 0
    used_percent: float = 0.0
    swap_total_bytes: int = 0
    swap_used_bytes: int = 0
    swap_used_percent: float = 0.0
    modules: list[MemoryModule] | None = None
    swap_devices: list[SwapDevice] | None = None


class DiskStats(ResourceModel):
    mountpoint: str
    device: str = ""
    filesystem: str = ""
    drive_type: str = ""
    model: str = ""
    total_bytes: int = 0
    used_bytes: int = 0
    used_percent: float = 0.0


class GpuStats(ResourceModel):
    index: int = 0
    name: str = ""
    vendor: str = ""
    driver: str = ""
    utilization_percent: float | None = None
    memory_total_bytes: int | None = None
    memory_used_bytes: int | None = None
    temperature_c: float | None = None


class ProcessSample(ResourceModel):
    pid: int
    name: str = ""
    cpu_percent: float | None = None
    memory_bytes: int | None = None
    memory_percent: float | None = None


class HistoryPoint(ResourceModel):
    """Summary of one tick kept for trend graphs."""

    time: int  # epoch millis
    cpu: float = 0.0
    mem: float = 0.0
    disks: dict[str, float] | None = None


class Snapshot(ResourceModel):
    """Point-in-time telemetry record published once per tick."""

    host_ip: str = ""
    updated_at: int = 0  # epoch millis
    cpu: CpuStats = Field(default_factory=CpuStats)
    memory: MemoryStats = Field(default_factory=MemoryStats)
    disks: list[DiskStats] = Field(default_factory=list)
    gpus: list[GpuStats] | None = None
    processes: int = 0
    top_cpu: ProcessSample | None = None
    top_memory: ProcessSample | None = None
    history: list[HistoryPoint] | None = None
    errors: SnapshotErrors = Field(default_factory=SnapshotErrors)
