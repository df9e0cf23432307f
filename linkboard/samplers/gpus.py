from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from linkboard.models.resources import GpuStats
from linkboard.samplers.base import Sample, ToolUnavailable, run_tool

logger = logging.getLogger(__name__)

NVIDIA_VENDOR = "NVIDIA"
NVIDIA_SMI_QUERY = [
    "--query-gpu=name,utilization.gpu,memory.used,memory.total,temperature.gpu",
    "--format=csv,noheader,nounits",
]
_MIB = 1024 * 1024


@dataclass(slots=True)
class VendorGpuRow:
    """One adapter line reported by the vendor tool."""

    name: str
    utilization_percent: float | None = None
    memory_used_bytes: int | None = None
    memory_total_bytes: int | None = None
    temperature_c: float | None = None


def _parse_float(text: str) -> float | None:
    try:
        return float(text.strip())
    except ValueError:
        return None


def _mib_to_bytes(text: str) -> int | None:
    value = _parse_float(text)
    return int(value * _MIB) if value is not None else None


def parse_nvidia_smi(output: str) -> list[VendorGpuRow]:
    """Parse ``name, util %, mem used MiB, mem total MiB, temp C`` lines."""
    rows: list[VendorGpuRow] = []
    for line in output.strip().splitlines():
        parts = [p.strip() for p in line.split(",")]
        if len(parts) < 5:
            continue
        rows.append(
            VendorGpuRow(
                name=parts[0],
                utilization_percent=_parse_float(parts[1]),
                memory_used_bytes=_mib_to_bytes(parts[2]),
                memory_total_bytes=_mib_to_bytes(parts[3]),
                temperature_c=_parse_float(parts[4]),
            )
        )
    return rows


def find_nvidia_smi() -> str:
    path = shutil.which("nvidia-smi")
    if path:
        return path
    if os.name == "nt":
        for env in ("ProgramFiles", "ProgramFiles(x86)"):
            base = os.environ.get(env)
            if not base:
                continue
            candidate = Path(base) / "NVIDIA Corporation" / "NVSMI" / "nvidia-smi.exe"
            if candidate.is_file():
                return str(candidate)
    raise ToolUnavailable("nvidia-smi not found")


def query_nvidia_smi(timeout: float) -> list[VendorGpuRow]:
    return parse_nvidia_smi(run_tool([find_nvidia_smi(), *NVIDIA_SMI_QUERY], timeout=timeout))


def merge_gpu_metrics(
    gpus: list[GpuStats],
    rows: list[VendorGpuRow],
    vendor: str = NVIDIA_VENDOR,
) -> list[GpuStats]:
    """Overlay vendor-tool rows onto inventory entries.

    Rows are paired with the vendor's inventory entries by position, in
    encounter order. This is an approximation: nothing guarantees both
    sources enumerate adapters in the same order. Without any matching
    inventory entry each row becomes a new entry tagged with ``vendor``.
    """
    merged = [g.model_copy() for g in gpus]
    matches = [g for g in merged if vendor.lower() in g.vendor.lower()]

    if not matches:
        for i, row in enumerate(rows):
            merged.append(
                GpuStats(
                    index=i,
                    name=row.name,
                    vendor=vendor,
                    utilization_percent=row.utilization_percent,
                    memory_used_bytes=row.memory_used_bytes,
                    memory_total_bytes=row.memory_total_bytes,
                    temperature_c=row.temperature_c,
                )
            )
        return merged

    for gpu, row in zip(matches, rows):
        if not gpu.name.strip():
            gpu.name = row.name
        gpu.utilization_percent = row.utilization_percent
        gpu.memory_used_bytes = row.memory_used_bytes
        gpu.memory_total_bytes = row.memory_total_bytes
        gpu.temperature_c = row.temperature_c
    return merged


def sample_gpus(inventory: Sample[list[GpuStats]], tool_timeout: float) -> Sample[list[GpuStats]]:
    """Inventory identity merged with live vendor-tool metrics.

    Either source alone is enough to report adapters; the family only fails
    when both fail and nothing was found.
    """
    gpus = [g.model_copy() for g in inventory.value or []]

    tool_error = ""
    try:
        rows = query_nvidia_smi(tool_timeout)
    except ToolUnavailable as exc:
        rows = []
        tool_error = str(exc)
        logger.debug("nvidia-smi unavailable: %s", exc)

    if rows:
        gpus = merge_gpu_metrics(gpus, rows)

    if not gpus:
        if inventory.error and tool_error:
            return Sample(None, f"gpu: inventory={inventory.error}; nvidia-smi={tool_error}")
        return Sample(None)

    for gpu in gpus:
        if not gpu.name and gpu.vendor:
            gpu.name = gpu.vendor
    return Sample(gpus)
