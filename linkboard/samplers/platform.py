from __future__ import annotations

import logging
import platform as _platform
from dataclasses import dataclass

from linkboard.config import Settings
from linkboard.samplers.cpu import CpuFrequencySource, PsutilCpuFrequency, SysfsCpuFrequency
from linkboard.samplers.disks import DiskPolicy, DriveLetterDiskPolicy, LinuxDiskPolicy, RootDiskPolicy
from linkboard.samplers.inventory import HardwareInventory, NullInventory, SysfsInventory

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PlatformSamplers:
    """Per-OS strategy for every metric family that differs between platforms."""

    system: str
    cpu_frequency: CpuFrequencySource
    cpu_dynamic_ttl: float
    disk_policy: DiskPolicy
    inventory: HardwareInventory
    swap_devices: bool = False
    board_model: bool = False


def detect_platform(settings: Settings, system: str | None = None) -> PlatformSamplers:
    system = (system or _platform.system()).lower()

    if system == "linux":
        samplers = PlatformSamplers(
            system=system,
            cpu_frequency=SysfsCpuFrequency(),
            cpu_dynamic_ttl=settings.cpu_dynamic_ttl_linux,
            disk_policy=LinuxDiskPolicy(),
            inventory=SysfsInventory(tool_timeout=settings.gpu_tool_timeout),
            swap_devices=True,
            board_model=True,
        )
    elif system == "windows":
        samplers = PlatformSamplers(
            system=system,
            cpu_frequency=PsutilCpuFrequency(),
            cpu_dynamic_ttl=settings.cpu_dynamic_ttl_other,
            disk_policy=DriveLetterDiskPolicy(),
            inventory=NullInventory(),
        )
    else:
        samplers = PlatformSamplers(
            system=system,
            cpu_frequency=PsutilCpuFrequency(),
            cpu_dynamic_ttl=settings.cpu_dynamic_ttl_other,
            disk_policy=RootDiskPolicy(),
            inventory=NullInventory(),
        )

    logger.info(
        "Platform %s: cpu freq=%s, disks=%s, inventory=%s",
        system,
        samplers.cpu_frequency.name,
        samplers.disk_policy.name,
        samplers.inventory.name,
    )
    return samplers
