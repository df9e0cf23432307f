from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable

import psutil

from linkboard.models.resources import MemoryModule, MemoryStats, SwapDevice
from linkboard.samplers.base import Sample, read_text
from linkboard.samplers.inventory import HardwareInventory, InventoryError

logger = logging.getLogger(__name__)

SWAPS_PATH = Path("/proc/swaps")
BOARD_MODEL_PATHS = (
    Path("/proc/device-tree/model"),
    Path("/sys/firmware/devicetree/base/model"),
)


def read_swap_devices(path: Path = SWAPS_PATH) -> list[SwapDevice]:
    """Parse /proc/swaps (sizes are in KiB)."""
    devices: list[SwapDevice] = []
    lines = path.read_text().splitlines()
    for line in lines[1:]:
        fields = line.split()
        if len(fields) < 4:
            continue
        try:
            size_kb = int(fields[2])
            used_kb = int(fields[3])
        except ValueError:
            size_kb = used_kb = 0
        devices.append(
            SwapDevice(
                name=fields[0],
                kind=fields[1],
                size_bytes=size_kb * 1024,
                used_bytes=used_kb * 1024,
            )
        )
    return devices


def read_board_model(paths: tuple[Path, ...] = BOARD_MODEL_PATHS) -> str:
    for path in paths:
        try:
            model = read_text(path)
        except OSError:
            continue
        if model:
            return model
    return ""


class MemorySampler:
    """RAM and swap usage plus the installed-module inventory.

    The module list is looked up until it first succeeds and then kept for
    the life of the process. Failed lookups are retried at most once per
    ``retry_interval`` seconds.
    """

    def __init__(
        self,
        inventory: HardwareInventory,
        swap_devices: bool = False,
        board_model: bool = False,
        retry_interval: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._inventory = inventory
        self._swap_devices = swap_devices
        self._board_model_enabled = board_model
        self._retry_interval = retry_interval
        self._clock = clock
        self._modules: list[MemoryModule] | None = None
        self._modules_tried_at: float | None = None
        self._board_model: str | None = None

    def __call__(self) -> Sample[MemoryStats]:
        try:
            vm = psutil.virtual_memory()
            sm = psutil.swap_memory()
        except (OSError, RuntimeError) as exc:
            return Sample(None, str(exc))

        stats = MemoryStats(
            total_bytes=vm.total,
            used_bytes=vm.used,
            used_percent=vm.percent,
            swap_total_bytes=sm.total,
            swap_used_bytes=sm.used,
            swap_used_percent=sm.percent,
        )

        modules = self.modules()
        if modules:
            stats.modules = modules
        elif "raspberry pi" in self.board_model().lower():
            stats.modules = [MemoryModule(label="SoC", vendor=self.board_model(), size_bytes=vm.total)]

        if self._swap_devices:
            try:
                devices = read_swap_devices()
            except OSError as exc:
                logger.debug("swap devices unavailable: %s", exc)
            else:
                stats.swap_devices = devices or None

        return Sample(stats)

    def modules(self) -> list[MemoryModule]:
        if self._modules is not None:
            return self._modules
        now = self._clock()
        if self._modules_tried_at is not None and now - self._modules_tried_at < self._retry_interval:
            return []
        self._modules_tried_at = now
        try:
            self._modules = self._inventory.memory_modules()
        except InventoryError as exc:
            logger.debug("memory module inventory unavailable: %s", exc)
            return []
        return self._modules

    def board_model(self) -> str:
        if self._board_model is None:
            self._board_model = read_board_model() if self._board_model_enabled else ""
        return self._board_model
