"""DMI (BIOS/board/product) identification from sysfs."""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path

from hwprofilectl.core.errors import DeviceActionError
from hwprofilectl.core.model import DMI_SCHEMA, Device, DmiDevice

SYSFS_DMI_ID = Path("/sys/class/dmi/id")
UNKNOWN = "Unknown!"


class DmiDeviceSource:
    schema = DMI_SCHEMA
    actions: tuple[str, ...] = ()

    def __init__(self, sysfs_root: Path = SYSFS_DMI_ID) -> None:
        self.sysfs_root = sysfs_root

    def _read(self, name: str) -> str:
        try:
            value = (self.sysfs_root / name).read_text(encoding="utf-8", errors="replace").strip()
        except OSError:
            return UNKNOWN
        return value or UNKNOWN

    def read_info(self) -> DmiDevice:
        values = {f.name: self._read(f.name) for f in fields(DmiDevice)}
        return DmiDevice(**values)

    def list_devices(self) -> list[Device]:
        return [self.read_info()]

    def run_action(self, device: Device, action: str) -> None:
        raise DeviceActionError(f"DMI information does not support action '{action}'")
