from __future__ import annotations

import logging
import math
import platform
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

import psutil

from linkboard.models.resources import CpuStats
from linkboard.samplers.base import Sample, join_errors, read_int, read_text

logger = logging.getLogger(__name__)

CPU_SYSFS_ROOT = Path("/sys/devices/system/cpu")
CPUINFO_PATH = Path("/proc/cpuinfo")

# Hybrid core detection thresholds, in kHz.
_HYBRID_MIN_SPREAD_KHZ = 100_000
_HYBRID_TOLERANCE_KHZ = 50_000


# ── cumulative counters ───────────────────────────────


def read_cpu_counters() -> tuple[float, float]:
    """Return (total, idle) cumulative CPU seconds summed over all cores.

    Idle includes IO-wait. Guest time is already part of user time on Linux
    so it is not added again.
    """
    t = psutil.cpu_times(percpu=False)
    fields = t._asdict()
    total = sum(v for k, v in fields.items() if k not in ("guest", "guest_nice"))
    idle = fields.get("idle", 0.0) + fields.get("iowait", 0.0)
    return total, idle


# ── static identity ───────────────────────────────────


def cpu_model_name() -> str:
    if CPUINFO_PATH.exists():
        for line in CPUINFO_PATH.read_text(errors="replace").splitlines():
            key, _, value = line.partition(":")
            if key.strip() in ("model name", "Model", "Hardware") and value.strip():
                return value.strip()
    return platform.processor().strip()


def sample_cpu_static() -> Sample[CpuStats]:
    """Model name and core counts. Each missing piece is a warning, not a failure."""
    stats = CpuStats()
    warnings: list[str] = []

    try:
        stats.model = cpu_model_name()
    except OSError as exc:
        warnings.append(f"cpu info: {exc}")

    physical = psutil.cpu_count(logical=False)
    if physical is None:
        warnings.append("cpu physical cores: unknown")
    else:
        stats.physical_cores = physical

    logical = psutil.cpu_count(logical=True)
    if logical is None:
        warnings.append("cpu logical cores: unknown")
    else:
        stats.logical_cores = logical

    return Sample(stats, join_errors(*warnings))


# ── temperature ───────────────────────────────────────


def _sensor_score(key: str) -> int:
    score = 0
    if "package" in key:
        score += 50
    elif "tctl" in key or "tdie" in key:
        score += 40
    if "coretemp" in key or "k10temp" in key:
        score += 20
    if "cpu" in key:
        score += 10
    if "core" in key:
        score += 5
    return score


def pick_cpu_temperature(sensors: dict[str, list]) -> float | None:
    """Choose the reading most likely to be the CPU package temperature."""
    best: float | None = None
    best_score = -1
    for chip, entries in sensors.items():
        for entry in entries:
            temp = entry.current
            if temp is None or not math.isfinite(temp) or temp <= 0:
                continue
            key = f"{chip} {entry.label}".strip().lower()
            score = _sensor_score(key)
            if score > best_score or (score == best_score and best is not None and temp > best):
                best = float(temp)
                best_score = score
    return best


def sample_cpu_temperature() -> Sample[float]:
    """Temperature is optional; platforms without sensors are not an error."""
    read = getattr(psutil, "sensors_temperatures", None)
    if read is None:
        return Sample(None)
    try:
        sensors = read()
    except (OSError, NotImplementedError) as exc:
        return Sample(None, f"cpu temp: {exc}")
    return Sample(pick_cpu_temperature(sensors or {}))


# ── frequency strategies ──────────────────────────────


@dataclass(slots=True)
class CpuFreqSummary:
    current_mhz: float = 0.0
    max_mhz: float = 0.0
    performance_cores: int = 0
    efficiency_cores: int = 0
    performance_threads: int = 0
    efficiency_threads: int = 0


def summarize_cpufreq(root: Path = CPU_SYSFS_ROOT) -> CpuFreqSummary:
    """Aggregate per-thread cpufreq data from sysfs into per-core figures.

    Raises ``LookupError`` when no thread exposes a max frequency.
    """
    cores: dict[str, list[int]] = {}  # core key -> [max_khz, threads]
    cur_sum = 0
    cur_count = 0

    for entry in sorted(root.iterdir()):
        name = entry.name
        if not name.startswith("cpu") or not name[3:].isdigit() or not entry.is_dir():
            continue

        max_khz = _read_first_int(entry / "cpufreq/cpuinfo_max_freq", entry / "cpufreq/scaling_max_freq")
        if max_khz <= 0:
            continue
        cur_khz = _read_first_int(entry / "cpufreq/scaling_cur_freq", entry / "cpufreq/cpuinfo_cur_freq")
        if cur_khz > 0:
            cur_sum += cur_khz
            cur_count += 1

        try:
            key = f"{read_int(entry / 'topology/physical_package_id')}:{read_int(entry / 'topology/core_id')}"
        except (OSError, ValueError):
            key = name

        agg = cores.setdefault(key, [0, 0])
        agg[0] = max(agg[0], max_khz)
        agg[1] += 1

    if not cores:
        raise LookupError("no cpufreq data found")

    unique_max = sorted({max_khz for max_khz, _ in cores.values() if max_khz > 0})
    perf_khz = unique_max[-1]
    eff_khz = unique_max[0]

    summary = CpuFreqSummary(
        current_mhz=cur_sum / cur_count / 1000 if cur_count else 0.0,
        max_mhz=perf_khz / 1000,
    )
    if len(unique_max) >= 2 and perf_khz - eff_khz >= _HYBRID_MIN_SPREAD_KHZ:
        for max_khz, threads in cores.values():
            if abs(max_khz - perf_khz) <= _HYBRID_TOLERANCE_KHZ:
                summary.performance_cores += 1
                summary.performance_threads += threads
            elif abs(max_khz - eff_khz) <= _HYBRID_TOLERANCE_KHZ:
                summary.efficiency_cores += 1
                summary.efficiency_threads += threads
    return summary


def _read_first_int(*paths: Path) -> int:
    for path in paths:
        try:
            value = read_int(path)
        except (OSError, ValueError):
            continue
        if value > 0:
            return value
    return 0


class CpuFrequencySource(ABC):
    """Dynamic CPU clock and temperature, refreshed on a short TTL."""

    name: str = "base"

    @abstractmethod
    def frequency(self) -> CpuFreqSummary:
        """Return the current clock summary or raise on failure."""
        ...

    def sample(self) -> Sample[CpuStats]:
        stats = CpuStats()
        warnings: list[str] = []

        try:
            freq = self.frequency()
        except (OSError, LookupError, RuntimeError) as exc:
            warnings.append(f"cpu freq: {exc}")
        else:
            stats.current_mhz = freq.current_mhz
            stats.max_mhz = freq.max_mhz
            if freq.current_mhz > 0 and freq.max_mhz > 0:
                stats.current_percent_of_max = freq.current_mhz / freq.max_mhz * 100
            stats.performance_cores = freq.performance_cores
            stats.efficiency_cores = freq.efficiency_cores
            stats.performance_threads = freq.performance_threads
            stats.efficiency_threads = freq.efficiency_threads

        temp = sample_cpu_temperature()
        stats.temperature_c = temp.value
        if temp.error:
            warnings.append(temp.error)

        return Sample(stats, join_errors(*warnings))


class SysfsCpuFrequency(CpuFrequencySource):
    """Linux: cheap per-thread reads from /sys/devices/system/cpu."""

    name = "sysfs"

    def __init__(self, root: Path = CPU_SYSFS_ROOT) -> None:
        self.root = root

    def frequency(self) -> CpuFreqSummary:
        return summarize_cpufreq(self.root)


class PsutilCpuFrequency(CpuFrequencySource):
    """Other platforms: averaged psutil clock readings."""

    name = "psutil"

    def frequency(self) -> CpuFreqSummary:
        per_cpu = psutil.cpu_freq(percpu=True) or []
        currents = [f.current for f in per_cpu if f.current and f.current > 0]
        overall = psutil.cpu_freq()
        if not currents and overall is None:
            raise LookupError("clock speed not reported")
        current = sum(currents) / len(currents) if currents else overall.current
        max_mhz = overall.max if overall is not None and overall.max else 0.0
        return CpuFreqSummary(current_mhz=current or 0.0, max_mhz=max_mhz)
