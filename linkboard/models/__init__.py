from .link import Link, LinkRef
from .resources import (
    CpuStats,
    DiskStats,
    GpuStats,
    HistoryPoint,
    MemoryModule,
    MemoryStats,
    ProcessSample,
    Snapshot,
    SnapshotErrors,
    SwapDevice,
)

__all__ = [
    "Link",
    "LinkRef",
    "CpuStats",
    "DiskStats",
    "GpuStats",
    "HistoryPoint",
    "MemoryModule",
    "MemoryStats",
    "ProcessSample",
    "Snapshot",
    "SnapshotErrors",
    "SwapDevice",
]
