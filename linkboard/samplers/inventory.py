"""Slow-changing hardware inventory.

Identity data that rarely changes (which drive backs a mountpoint, which
graphics adapters exist, which DIMMs are installed). Callers cache it on a
long TTL and attach it opportunistically to the fast-changing usage figures.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

import psutil

from linkboard.models.resources import GpuStats, MemoryModule
from linkboard.samplers.base import ToolUnavailable, read_text, run_tool

logger = logging.getLogger(__name__)

PCI_VENDORS: dict[str, str] = {
    "0x8086": "Intel",
    "0x10de": "NVIDIA",
    "0x1002": "AMD",
    "0x1a03": "ASPEED",
    "0x15ad": "VMware",
    "0x1234": "QEMU/Bochs",
    "0x14e4": "Broadcom",
}


class InventoryError(Exception):
    """The hardware inventory could not be read."""


@dataclass(slots=True)
class DiskMeta:
    drive_type: str = ""
    storage_controller: str = ""
    model: str = ""


class HardwareInventory(ABC):
    name: str = "base"

    @abstractmethod
    def disk_meta(self) -> dict[str, DiskMeta]:
        """Map mountpoint -> metadata of the physical drive behind it."""
        ...

    @abstractmethod
    def gpus(self) -> list[GpuStats]:
        """Graphics adapters with identity fields only, sorted by index."""
        ...

    @abstractmethod
    def memory_modules(self) -> list[MemoryModule]:
        ...


class NullInventory(HardwareInventory):
    """Platforms without a supported inventory source report nothing."""

    name = "none"

    def disk_meta(self) -> dict[str, DiskMeta]:
        return {}

    def gpus(self) -> list[GpuStats]:
        return []

    def memory_modules(self) -> list[MemoryModule]:
        raise InventoryError("memory module inventory not supported on this platform")


def _read_optional(path: Path) -> str:
    try:
        return read_text(path)
    except OSError:
        return ""


def normalize_spaces(text: str) -> str:
    return " ".join(text.split())


class SysfsInventory(HardwareInventory):
    """Linux inventory read from sysfs, with dmidecode for DIMMs."""

    name = "sysfs"

    def __init__(
        self,
        block_root: Path = Path("/sys/class/block"),
        drm_root: Path = Path("/sys/class/drm"),
        tool_timeout: float = 2.0,
    ) -> None:
        self.block_root = block_root
        self.drm_root = drm_root
        self.tool_timeout = tool_timeout

    # ── disks ───────────────────────────────────────────

    def disk_meta(self) -> dict[str, DiskMeta]:
        if not self.block_root.is_dir():
            raise InventoryError(f"{self.block_root} not available")
        try:
            partitions = psutil.disk_partitions(all=False)
        except OSError as exc:
            raise InventoryError(f"partitions: {exc}") from exc

        meta: dict[str, DiskMeta] = {}
        for part in partitions:
            if not part.mountpoint or not part.device.startswith("/dev/"):
                continue
            disk = self._parent_disk(part.device)
            if disk is not None:
                meta[part.mountpoint] = self._describe_disk(disk)
        return meta

    def _parent_disk(self, device: str) -> Path | None:
        node = self.block_root / Path(os.path.realpath(device)).name
        if not node.exists():
            return None
        resolved = node.resolve()
        if (resolved / "partition").exists():
            return resolved.parent
        return resolved

    @staticmethod
    def _describe_disk(disk: Path) -> DiskMeta:
        name = disk.name
        if name.startswith("nvme"):
            controller = "nvme"
        elif name.startswith("mmcblk"):
            controller = "mmc"
        elif name.startswith("vd"):
            controller = "virtio"
        elif name.startswith("loop"):
            controller = "loop"
        elif "/usb" in str(disk):
            controller = "usb"
        else:
            controller = "scsi"

        rotational = _read_optional(disk / "queue" / "rotational")
        if rotational == "1":
            drive_type = "hdd"
        elif rotational == "0":
            drive_type = "ssd"
        else:
            drive_type = "unknown"

        vendor = _read_optional(disk / "device" / "vendor")
        model = _read_optional(disk / "device" / "model")
        return DiskMeta(
            drive_type=drive_type,
            storage_controller=controller,
            model=normalize_spaces(f"{vendor} {model}"),
        )

    # ── gpus ────────────────────────────────────────────

    def gpus(self) -> list[GpuStats]:
        if not self.drm_root.is_dir():
            raise InventoryError(f"{self.drm_root} not available")

        cards: list[GpuStats] = []
        for card in self.drm_root.iterdir():
            suffix = card.name.removeprefix("card")
            if not card.name.startswith("card") or not suffix.isdigit():
                continue
            device = card / "device"
            vendor_id = _read_optional(device / "vendor").lower()
            driver = ""
            for line in _read_optional(device / "uevent").splitlines():
                if line.startswith("DRIVER="):
                    driver = line.split("=", 1)[1].strip()
                    break
            cards.append(
                GpuStats(
                    index=int(suffix),
                    vendor=PCI_VENDORS.get(vendor_id, vendor_id),
                    driver=driver,
                    name=_read_optional(device / "label"),
                )
            )
        cards.sort(key=lambda g: g.index)
        return cards

    # ── memory ──────────────────────────────────────────

    def memory_modules(self) -> list[MemoryModule]:
        try:
            output = run_tool(["dmidecode", "-t", "17"], timeout=self.tool_timeout)
        except ToolUnavailable as exc:
            raise InventoryError(f"memory modules: {exc}") from exc
        return parse_dmidecode_memory(output)


def _parse_size(text: str) -> int:
    parts = text.split()
    if len(parts) < 2:
        return 0
    try:
        amount = int(parts[0])
    except ValueError:
        return 0
    scale = {"KB": 1024, "MB": 1024**2, "GB": 1024**3, "TB": 1024**4}.get(parts[1].upper(), 0)
    return amount * scale


def parse_dmidecode_memory(output: str) -> list[MemoryModule]:
    """Parse ``dmidecode -t 17`` output; empty slots are skipped."""
    modules: list[MemoryModule] = []
    current: dict[str, str] | None = None

    def flush() -> None:
        if current is None:
            return
        size = _parse_size(current.get("Size", ""))
        if size <= 0:
            return
        modules.append(
            MemoryModule(
                label=current.get("Locator", "").strip(),
                vendor=current.get("Manufacturer", "").strip(),
                size_bytes=size,
            )
        )

    for raw in output.splitlines():
        line = raw.strip()
        if line == "Memory Device":
            flush()
            current = {}
            continue
        if current is None or ":" not in line:
            continue
        key, _, value = line.partition(":")
        current.setdefault(key.strip(), value.strip())
    flush()
    return modules
