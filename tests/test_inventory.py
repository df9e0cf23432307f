"""Tests for linkboard.samplers.inventory against a fake sysfs tree."""

from __future__ import annotations

from collections import namedtuple
from pathlib import Path
from unittest.mock import patch

import pytest

from linkboard.samplers.base import ToolUnavailable
from linkboard.samplers.inventory import (
    DiskMeta,
    InventoryError,
    NullInventory,
    SysfsInventory,
    parse_dmidecode_memory,
)

Part = namedtuple("Part", "device mountpoint fstype opts")

DMIDECODE = """\
# dmidecode 3.5
Getting SMBIOS data from sysfs.

Handle 0x0040, DMI type 17, 92 bytes
Memory Device
\tTotal Width: 64 bits
\tSize: 16 GB
\tLocator: DIMM_A1
\tBank Locator: BANK 0
\tManufacturer: Kingston
\tPart Number: KF3200C16D4/16GX

Handle 0x0041, DMI type 17, 92 bytes
Memory Device
\tSize: No Module Installed
\tLocator: DIMM_A2
\tManufacturer: Not Specified

Handle 0x0042, DMI type 17, 92 bytes
Memory Device
\tSize: 8192 MB
\tLocator: DIMM_B1
\tManufacturer: Samsung
"""


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


def _disk(devices: Path, rel: str, rotational: str, vendor: str = "", model: str = "") -> Path:
    disk = devices / rel
    _write(disk / "queue" / "rotational", rotational + "\n")
    if vendor:
        _write(disk / "device" / "vendor", vendor + "\n")
    if model:
        _write(disk / "device" / "model", model + "\n")
    return disk


def _partition(block_root: Path, disk: Path, name: str) -> None:
    part = disk / name
    _write(part / "partition", "1\n")
    (block_root / name).symlink_to(part)


@pytest.fixture
def sysfs(tmp_path):
    devices = tmp_path / "devices"
    block_root = tmp_path / "class" / "block"
    block_root.mkdir(parents=True)

    nvme = _disk(devices, "pci0000:00/nvme/nvme0n1", "0", model="Samsung SSD 980 PRO 1TB   ")
    _partition(block_root, nvme, "nvme0n1p2")

    usb = _disk(devices, "pci0000:00/usb2/2-1/host6/sdb", "1", vendor="WD", model="Elements   25A2")
    _partition(block_root, usb, "sdb1")

    sda = _disk(devices, "pci0000:00/ata1/host0/sda", "")
    (block_root / "sda").symlink_to(sda)

    drm_root = tmp_path / "class" / "drm"
    _write(drm_root / "card0" / "device" / "vendor", "0x8086\n")
    _write(drm_root / "card0" / "device" / "uevent", "PCI_ID=8086:46A6\nDRIVER=i915\n")
    _write(drm_root / "card1" / "device" / "vendor", "0x10de\n")
    _write(drm_root / "card1" / "device" / "uevent", "DRIVER=nvidia\n")
    _write(drm_root / "card1" / "device" / "label", "GeForce RTX 3060\n")
    _write(drm_root / "card0-eDP-1" / "status", "connected\n")
    (drm_root / "renderD128").mkdir()

    return SysfsInventory(block_root=block_root, drm_root=drm_root, tool_timeout=1.0)


def test_disk_meta(sysfs):
    partitions = [
        Part("/dev/nvme0n1p2", "/", "ext4", "rw"),
        Part("/dev/sdb1", "/media/usb", "exfat", "rw"),
        Part("/dev/sda", "/data", "xfs", "rw"),
        Part("/dev/mapper/missing", "/srv", "ext4", "rw"),
        Part("tmpfs", "/run", "tmpfs", "rw"),
    ]
    with patch("linkboard.samplers.inventory.psutil.disk_partitions", return_value=partitions):
        meta = sysfs.disk_meta()

    assert meta["/"] == DiskMeta(drive_type="ssd", storage_controller="nvme", model="Samsung SSD 980 PRO 1TB")
    assert meta["/media/usb"] == DiskMeta(drive_type="hdd", storage_controller="usb", model="WD Elements 25A2")
    assert meta["/data"] == DiskMeta(drive_type="unknown", storage_controller="scsi", model="")
    assert "/srv" not in meta
    assert "/run" not in meta


def test_disk_meta_without_sysfs(tmp_path):
    inventory = SysfsInventory(block_root=tmp_path / "nope", drm_root=tmp_path / "nope")
    with pytest.raises(InventoryError, match="not available"):
        inventory.disk_meta()
    with pytest.raises(InventoryError, match="not available"):
        inventory.gpus()


def test_gpus(sysfs):
    gpus = sysfs.gpus()
    assert [(g.index, g.vendor, g.driver, g.name) for g in gpus] == [
        (0, "Intel", "i915", ""),
        (1, "NVIDIA", "nvidia", "GeForce RTX 3060"),
    ]
    assert all(g.utilization_percent is None for g in gpus)


def test_unknown_pci_vendor_kept_as_id(tmp_path):
    drm_root = tmp_path / "drm"
    _write(drm_root / "card0" / "device" / "vendor", "0xabcd\n")
    gpus = SysfsInventory(drm_root=drm_root).gpus()
    assert gpus[0].vendor == "0xabcd"
    assert gpus[0].driver == ""


def test_parse_dmidecode_memory():
    modules = parse_dmidecode_memory(DMIDECODE)
    assert [(m.label, m.vendor, m.size_bytes) for m in modules] == [
        ("DIMM_A1", "Kingston", 16 * 1024**3),
        ("DIMM_B1", "Samsung", 8192 * 1024**2),
    ]


def test_memory_modules_via_dmidecode(sysfs):
    with patch("linkboard.samplers.inventory.run_tool", return_value=DMIDECODE) as run:
        modules = sysfs.memory_modules()
    assert len(modules) == 2
    assert run.call_args.args[0] == ["dmidecode", "-t", "17"]
    assert run.call_args.kwargs["timeout"] == 1.0


def test_memory_modules_tool_failure(sysfs):
    with patch("linkboard.samplers.inventory.run_tool", side_effect=ToolUnavailable("dmidecode not found")):
        with pytest.raises(InventoryError, match="memory modules: dmidecode not found"):
            sysfs.memory_modules()


def test_null_inventory():
    inventory = NullInventory()
    assert inventory.disk_meta() == {}
    assert inventory.gpus() == []
    with pytest.raises(InventoryError):
        inventory.memory_modules()
