from __future__ import annotations

from collections import deque

from linkboard.models.resources import HistoryPoint, Snapshot


def history_point(snap: Snapshot) -> HistoryPoint:
    """Summarise a snapshot; only mounts present in it get a disk entry."""
    disks = {d.mountpoint: d.used_percent for d in snap.disks if d.mountpoint}
    return HistoryPoint(
        time=snap.updated_at,
        cpu=snap.cpu.percent,
        mem=snap.memory.used_percent,
        disks=disks or None,
    )


class HistoryRing:
    """Time- and count-bounded series of history points.

    Every append first drops points older than ``max_age_ms`` relative to
    the newest point, then drops the oldest points beyond ``max_points``.
    Not thread-safe on its own; the monitor guards it with its lock.
    """

    def __init__(self, max_age_ms: int, max_points: int) -> None:
        self.max_age_ms = max_age_ms
        self.max_points = max_points
        self._points: deque[HistoryPoint] = deque()

    def __len__(self) -> int:
        return len(self._points)

    def append(self, point: HistoryPoint) -> None:
        self._points.append(point)
        cutoff = point.time - self.max_age_ms
        while self._points and self._points[0].time < cutoff:
            self._points.popleft()
        while len(self._points) > self.max_points:
            self._points.popleft()

    def latest(self) -> HistoryPoint | None:
        return self._points[-1].model_copy(deep=True) if self._points else None

    def at(self, index: int) -> HistoryPoint:
        return self._points[index].model_copy(deep=True)

    def copy(self) -> list[HistoryPoint]:
        """Independent deep copy, disk mappings included."""
        return [p.model_copy(deep=True) for p in self._points]
