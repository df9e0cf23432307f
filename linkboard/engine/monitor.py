from __future__ import annotations

import logging
import math
import threading
import time
from typing import Callable

from linkboard.config import Settings, settings as default_settings
from linkboard.engine.cpu_percent import CpuPercentEstimator
from linkboard.engine.history import HistoryRing, history_point
from linkboard.engine.rwlock import ReadWriteLock
from linkboard.engine.ttl_cache import TTLCache
from linkboard.models.resources import CpuStats, DiskStats, GpuStats, MemoryStats, Snapshot, SnapshotErrors
from linkboard.samplers.base import Sample, join_errors
from linkboard.samplers.cpu import read_cpu_counters, sample_cpu_static
from linkboard.samplers.disks import sample_disks
from linkboard.samplers.gpus import sample_gpus
from linkboard.samplers.hostip import sample_host_ip
from linkboard.samplers.inventory import DiskMeta, InventoryError
from linkboard.samplers.memory import MemorySampler
from linkboard.samplers.platform import PlatformSamplers, detect_platform
from linkboard.samplers.processes import TopProcessScanner, sample_process_count

logger = logging.getLogger(__name__)

# Prefix of the cpu error when the busy percent itself could not be computed.
CPU_COUNTERS_ERROR = "cpu counters"


class ResourceMonitor:
    """Samples host resources on a fixed tick and publishes snapshots.

    All sampling state (counter baselines, per-family caches) belongs to the
    ticking thread. Readers only ever see deep copies of the last fully
    assembled snapshot, taken under a shared lock.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        platform: PlatformSamplers | None = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings or default_settings
        self.platform = platform or detect_platform(self.settings)
        self._clock = clock
        self._wall_clock = wall_clock

        s = self.settings
        self._lock = ReadWriteLock()
        self._snapshot = Snapshot()
        self._history = HistoryRing(
            max_age_ms=int(s.history_max_age * 1000),
            max_points=s.history_max_points,
        )
        self._ticks = 0
        self._published = threading.Event()

        self._cpu_percent = CpuPercentEstimator()
        self._top_processes = TopProcessScanner()
        memory = MemorySampler(
            self.platform.inventory,
            swap_devices=self.platform.swap_devices,
            board_model=self.platform.board_model,
            retry_interval=s.hardware_meta_ttl,
            clock=clock,
        )

        self._host_ip = TTLCache("host ip", s.host_ip_ttl, sample_host_ip, str)
        self._cpu_static = TTLCache("cpu static", s.cpu_static_ttl, sample_cpu_static, CpuStats)
        self._cpu_dynamic = TTLCache(
            "cpu dynamic", self.platform.cpu_dynamic_ttl, self.platform.cpu_frequency.sample, CpuStats
        )
        self._memory = TTLCache("memory", 0.0, memory, MemoryStats)
        self._disk_meta = TTLCache("disk metadata", s.hardware_meta_ttl, self._sample_disk_meta, dict)
        self._gpu_meta = TTLCache("gpu inventory", s.hardware_meta_ttl, self._sample_gpu_meta, list)
        self._disks = TTLCache("disks", s.disks_ttl, self._sample_disks, list)
        self._gpus = TTLCache("gpus", s.gpus_ttl, self._sample_gpus, list)

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    # ── lifecycle ────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, stop_event: threading.Event | None = None) -> threading.Event:
        """Begin ticking immediately in a daemon thread and return at once.

        Setting the returned (or supplied) event stops the ticker at the
        next tick boundary.
        """
        if self.running:
            return self._stop_event
        self._stop_event = stop_event or threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            args=(self._stop_event,),
            daemon=True,
            name="ResourceMonitor",
        )
        self._thread.start()
        logger.info("ResourceMonitor started (interval=%.1fs)", self.settings.tick_interval)
        return self._stop_event

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop_event.set()
        if self._thread is None:
            return
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            # Keep the handle so start() cannot spawn a second ticker.
            logger.warning("ResourceMonitor still finishing a tick after %.1fs", timeout or 0.0)
            return
        self._thread = None
        logger.info("ResourceMonitor stopped after %d ticks", self._ticks)

    def wait_for_snapshot(self, timeout: float | None = None) -> bool:
        """Block until the first snapshot has been published."""
        return self._published.wait(timeout)

    def _run(self, stop: threading.Event) -> None:
        interval = self.settings.tick_interval
        next_tick = self._clock()
        while not stop.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("ResourceMonitor tick failed")

            next_tick += interval
            now = self._clock()
            if next_tick < now:
                # Ticks that could not run in time are dropped, not queued.
                next_tick += math.ceil((now - next_tick) / interval) * interval
            stop.wait(next_tick - now)

    # ── read side ────────────────────────────────────────

    def snapshot(self, include_history: bool = False) -> Snapshot:
        """Independent deep copy of the latest published snapshot."""
        with self._lock.read_locked():
            snap = self._snapshot.model_copy(deep=True)
            if include_history:
                snap.history = self._history.copy()
        return snap

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def history_length(self) -> int:
        with self._lock.read_locked():
            return len(self._history)

    # ── tick ─────────────────────────────────────────────

    def tick(self) -> Snapshot:
        """Run one sampling pass and publish the result."""
        now = self._clock()
        updated_at = int(self._wall_clock() * 1000)

        host_ip = self._host_ip.get(now)

        percent = self._sample_cpu_percent()
        static = self._cpu_static.get(now)
        dynamic = self._cpu_dynamic.get(now)
        cpu = dynamic.value.model_copy(
            update={
                "percent": percent.value,
                "model": static.value.model,
                "physical_cores": static.value.physical_cores,
                "logical_cores": static.value.logical_cores,
            }
        )
        cpu_errors = [percent.error, static.error, dynamic.error]

        memory = self._memory.get(now)
        disks = self._disks.get(now)
        gpus = self._gpus.get(now)

        processes = sample_process_count()
        if processes.error:
            cpu_errors.append(f"processes: {processes.error}")

        top_cpu = top_memory = None
        if self.settings.top_processes:
            top = self._top_processes(now, cpu.logical_cores, memory.value.total_bytes)
            if top.error:
                cpu_errors.append(f"top processes: {top.error}")
            elif top.value is not None:
                top_cpu, top_memory = top.value

        snap = Snapshot(
            host_ip=host_ip.value,
            updated_at=updated_at,
            cpu=cpu,
            memory=memory.value,
            disks=disks.value,
            gpus=gpus.value or None,
            processes=processes.value or 0,
            top_cpu=top_cpu,
            top_memory=top_memory,
            errors=SnapshotErrors(
                cpu=join_errors(*cpu_errors),
                memory=memory.error,
                disks=disks.error,
                gpus=gpus.error,
                host_ip=host_ip.error,
            ),
        )
        self._publish(snap)
        return snap

    def _publish(self, snap: Snapshot) -> None:
        with self._lock.write_locked():
            self._snapshot = snap
            self._history.append(history_point(snap))
        self._ticks += 1
        self._published.set()

    # ── family samplers ──────────────────────────────────

    def _sample_cpu_percent(self) -> Sample[float]:
        try:
            total, idle = read_cpu_counters()
        except (OSError, RuntimeError) as exc:
            return Sample(0.0, f"{CPU_COUNTERS_ERROR}: {exc}")
        return Sample(self._cpu_percent.update(total, idle))

    def _sample_disk_meta(self) -> Sample[dict[str, DiskMeta]]:
        try:
            return Sample(self.platform.inventory.disk_meta())
        except InventoryError as exc:
            return Sample(None, str(exc))

    def _sample_gpu_meta(self) -> Sample[list[GpuStats]]:
        try:
            return Sample(self.platform.inventory.gpus())
        except InventoryError as exc:
            return Sample(None, str(exc))

    def _sample_disks(self) -> Sample[list[DiskStats]]:
        return sample_disks(self.platform.disk_policy, self._disk_meta.get(self._clock()))

    def _sample_gpus(self) -> Sample[list[GpuStats]]:
        return sample_gpus(self._gpu_meta.get(self._clock()), self.settings.gpu_tool_timeout)
