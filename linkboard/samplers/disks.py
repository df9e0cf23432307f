from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable

import psutil

from linkboard.models.resources import DiskStats
from linkboard.samplers.base import Sample
from linkboard.samplers.inventory import DiskMeta

logger = logging.getLogger(__name__)

IGNORED_FS_TYPES = frozenset(
    {
        "autofs",
        "cgroup",
        "cgroup2",
        "configfs",
        "debugfs",
        "devfs",
        "devpts",
        "devtmpfs",
        "fusectl",
        "hugetlbfs",
        "mqueue",
        "proc",
        "pstore",
        "overlay",
        "squashfs",
        "securityfs",
        "sysfs",
        "tmpfs",
        "tracefs",
    }
)

REMOVABLE_ROOTS = ("/mnt/", "/media/", "/run/media/")
SYSTEM_ROOTS = ("/sys/", "/proc/", "/dev/")


class DiskPolicy(ABC):
    """Decides which mounts are worth showing on this platform."""

    name: str = "base"

    @abstractmethod
    def select(self, partitions: Iterable) -> set[str]:
        ...


class LinuxDiskPolicy(DiskPolicy):
    """Root plus real, removable or user-visible mounts; pseudo filesystems hidden."""

    name = "linux"

    def select(self, partitions: Iterable) -> set[str]:
        selected = {"/"}
        for part in partitions:
            mp = part.mountpoint.strip()
            if not mp or mp == "/" or part.fstype in IGNORED_FS_TYPES:
                continue
            if mp == "/mnt" or mp.startswith(REMOVABLE_ROOTS):
                selected.add(mp)
                continue
            device = part.device.strip()
            if device.startswith("/dev/") and "loop" not in device:
                selected.add(mp)
                continue
            if mp.startswith("/") and not mp.startswith(SYSTEM_ROOTS):
                selected.add(mp)
        return selected


class DriveLetterDiskPolicy(DiskPolicy):
    """Windows: every drive letter mount."""

    name = "drive-letter"

    def select(self, partitions: Iterable) -> set[str]:
        return {p.mountpoint for p in partitions if len(p.mountpoint) >= 2 and p.mountpoint[1] == ":"}


class RootDiskPolicy(DiskPolicy):
    name = "root"

    def select(self, partitions: Iterable) -> set[str]:
        return {"/"}


def select_mountpoints(policy: DiskPolicy, partitions: list) -> list[str]:
    """Apply ``policy``; never return an empty selection while mounts exist."""
    selected = policy.select(partitions)
    if not selected:
        for part in partitions:
            if part.mountpoint:
                selected = {part.mountpoint}
                break
    return sorted(selected)


def drive_type_label(drive_type: str, controller: str) -> str:
    controller = controller.strip()
    if controller.lower() == "nvme":
        return "NVMe"
    drive_type = drive_type.strip()
    if not drive_type or drive_type.lower() == "unknown":
        if controller and controller.lower() != "unknown":
            return controller.upper()
        return ""
    return drive_type.upper()


def sample_disks(policy: DiskPolicy, meta: Sample[dict[str, DiskMeta]]) -> Sample[list[DiskStats]]:
    """Usage for every selected mount, with drive metadata attached when known.

    A metadata failure is reported but never drops a mount.
    """
    try:
        partitions = psutil.disk_partitions(all=True)
    except OSError as exc:
        return Sample(None, str(exc))

    by_mount = {}
    for part in partitions:
        if part.mountpoint and part.mountpoint not in by_mount:
            by_mount[part.mountpoint] = part

    disk_meta = meta.value or {}
    out: list[DiskStats] = []
    for mp in select_mountpoints(policy, partitions):
        try:
            usage = psutil.disk_usage(mp)
        except OSError as exc:
            logger.debug("disk usage for %s unavailable: %s", mp, exc)
            continue

        part = by_mount.get(mp)
        stats = DiskStats(
            mountpoint=mp,
            device=part.device.strip() if part else "",
            filesystem=part.fstype.strip() if part else "",
            total_bytes=usage.total,
            used_bytes=usage.used,
            used_percent=usage.percent,
        )
        info = disk_meta.get(mp)
        if info is not None:
            stats.drive_type = drive_type_label(info.drive_type, info.storage_controller)
            stats.model = info.model
        out.append(stats)

    if meta.error:
        return Sample(out, f"disk metadata: {meta.error}")
    return Sample(out)
