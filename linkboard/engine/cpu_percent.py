from __future__ import annotations


def clamp_percent(value: float) -> float:
    return min(max(value, 0.0), 100.0)


class CpuPercentEstimator:
    """Busy percent derived from two successive cumulative counter readings.

    The first reading only seeds the baseline and reports 0: a rate needs
    two samples.
    """

    def __init__(self) -> None:
        self._prev_total: float | None = None
        self._prev_idle: float = 0.0

    def update(self, total: float, idle: float) -> float:
        if self._prev_total is None:
            self._prev_total = total
            self._prev_idle = idle
            return 0.0

        total_delta = total - self._prev_total
        idle_delta = idle - self._prev_idle
        self._prev_total = total
        self._prev_idle = idle

        # Counter went backwards or did not move.
        if total_delta <= 0:
            return 0.0
        return clamp_percent((total_delta - idle_delta) / total_delta * 100)


def process_cpu_percent(cpu_seconds_delta: float, elapsed: float, logical_cores: int) -> float:
    """Share of the whole machine used by one process over ``elapsed`` seconds."""
    if elapsed <= 0:
        return 0.0
    cores = max(logical_cores, 1)
    return clamp_percent(max(cpu_seconds_delta, 0.0) / elapsed * 100 / cores)


class ProcessCpuTracker:
    """Per-process variant of the estimator, keyed by PID.

    Processes without a previous reading are left out of the result for
    that round. PIDs that disappear are forgotten.
    """

    def __init__(self) -> None:
        self._prev: dict[int, float] = {}
        self._last_at: float | None = None

    def update(self, now: float, cpu_seconds: dict[int, float], logical_cores: int) -> dict[int, float]:
        elapsed = now - self._last_at if self._last_at is not None else 0.0
        percents: dict[int, float] = {}
        if elapsed > 0:
            for pid, total in cpu_seconds.items():
                prev = self._prev.get(pid)
                if prev is not None:
                    percents[pid] = process_cpu_percent(total - prev, elapsed, logical_cores)
        self._prev = dict(cpu_seconds)
        self._last_at = now
        return percents
