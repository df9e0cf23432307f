from __future__ import annotations

import logging
import os

import psutil

from linkboard.engine.cpu_percent import ProcessCpuTracker
from linkboard.models.resources import ProcessSample
from linkboard.samplers.base import Sample

logger = logging.getLogger(__name__)

TopProcesses = tuple[ProcessSample | None, ProcessSample | None]


def sample_process_count() -> Sample[int]:
    try:
        return Sample(len(psutil.pids()))
    except OSError as exc:
        return Sample(None, str(exc))


class TopProcessScanner:
    """Finds the heaviest CPU and memory consumers each round.

    CPU share is computed from the change in each process's CPU seconds
    since the previous scan, so a process is only a top-CPU candidate from
    its second sighting onwards.
    """

    def __init__(self) -> None:
        self._tracker = ProcessCpuTracker()

    def __call__(self, now: float, logical_cores: int, memory_total: int) -> Sample[TopProcesses]:
        cores = logical_cores or os.cpu_count() or 1
        names: dict[int, str] = {}
        cpu_seconds: dict[int, float] = {}
        rss: dict[int, int] = {}

        try:
            procs = psutil.process_iter(["pid", "name", "cpu_times", "memory_info"])
            for proc in procs:
                try:
                    info = proc.info
                    pid = info["pid"]
                    names[pid] = info.get("name") or ""
                    times = info.get("cpu_times")
                    if times is not None:
                        cpu_seconds[pid] = times.user + times.system
                    mem = info.get("memory_info")
                    if mem is not None:
                        rss[pid] = mem.rss
                except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                    continue
        except OSError as exc:
            return Sample(None, str(exc))

        percents = self._tracker.update(now, cpu_seconds, cores)

        top_cpu: ProcessSample | None = None
        if percents:
            pid = max(percents, key=percents.__getitem__)
            top_cpu = ProcessSample(pid=pid, name=names.get(pid, ""), cpu_percent=percents[pid])
            if pid in rss:
                top_cpu.memory_bytes = rss[pid]
                top_cpu.memory_percent = _memory_percent(rss[pid], memory_total)

        top_memory: ProcessSample | None = None
        if rss:
            pid = max(rss, key=rss.__getitem__)
            top_memory = ProcessSample(
                pid=pid,
                name=names.get(pid, ""),
                memory_bytes=rss[pid],
                memory_percent=_memory_percent(rss[pid], memory_total),
            )

        return Sample((top_cpu, top_memory))


def _memory_percent(rss: int, total: int) -> float:
    return rss / total * 100 if total > 0 else 0.0
