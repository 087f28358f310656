"""USB device enumeration from sysfs."""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path

from hwprofilectl.core.config import Settings
from hwprofilectl.core.errors import DeviceActionError, DeviceDiscoveryError
from hwprofilectl.core.model import USB_SCHEMA, Device, UsbDevice
from hwprofilectl.devices.base import privileged, run_action_command

SYSFS_USB_DEVICES = Path("/sys/bus/usb/devices")
# Interfaces ("1-1.2:1.0") and root hubs ("usb1") are not listed as devices.
_BUSID_RE = re.compile(r"^\d+-[\d.]+$")
_MODINFO_NAME_RE = re.compile(r"name:\s+(\w+)")
_SPEEDS = {
    "1.5": "1.0",
    "12": "1.1",
    "480": "2.0",
    "5000": "3.0",
    "10000": "3.1",
    "20000": "3.1",
}
LOGGER = logging.getLogger(__name__)


def _read_attr(path: Path, default: str) -> str:
    try:
        value = path.read_text(encoding="utf-8", errors="replace").strip()
    except OSError:
        return default
    return value or default


def _hex_attr(path: Path, width: int, default: str = "???") -> str:
    raw = _read_attr(path, "")
    try:
        return format(int(raw, 16), f"0{width}x")
    except ValueError:
        return default


def _int_attr(path: Path) -> int:
    try:
        return int(_read_attr(path, "0"))
    except ValueError:
        return 0


class UsbDeviceSource:
    schema = USB_SCHEMA
    actions = ("start", "stop", "enable", "disable")

    def __init__(self, settings: Settings, sysfs_root: Path = SYSFS_USB_DEVICES) -> None:
        self.settings = settings
        self.sysfs_root = sysfs_root

    def _blacklisted_busids(self) -> set[str]:
        try:
            lines = self.settings.usb_blacklist.read_text(encoding="utf-8").splitlines()
        except OSError:
            return set()
        return {line.strip() for line in lines if line.strip()}

    def _kernel_driver(self, busid: str) -> str | None:
        driver = self.sysfs_root / f"{busid}:1.0" / "driver"
        if not driver.exists():
            return None
        return driver.resolve().name

    def _port_number(self, entry: Path) -> int:
        devpath = _read_attr(entry / "devpath", "")
        last = devpath.rsplit(".", 1)[-1]
        return int(last) if last.isdigit() else 0

    def _build_device(self, entry: Path, blacklist: set[str]) -> UsbDevice:
        busid = entry.name
        kernel_driver = self._kernel_driver(busid)
        return UsbDevice(
            manufacturer_string_index=_read_attr(entry / "manufacturer", "???"),
            product_string_index=_read_attr(entry / "product", "???"),
            serial_number_string_index=_read_attr(entry / "serial", "Unknown"),
            protocol_code=_hex_attr(entry / "bDeviceProtocol", 4),
            class_code=_hex_attr(entry / "bDeviceClass", 2).upper(),
            vendor_id=_hex_attr(entry / "idVendor", 4),
            product_id=_hex_attr(entry / "idProduct", 4),
            usb_version=_read_attr(entry / "version", "Unknown"),
            bus_number=_int_attr(entry / "busnum"),
            port_number=self._port_number(entry),
            address=_int_attr(entry / "devnum"),
            sysfs_busid=busid,
            kernel_driver=kernel_driver or "Unknown",
            started=True if kernel_driver else None,
            enabled=busid not in blacklist,
            speed=_SPEEDS.get(_read_attr(entry / "speed", ""), "Unknown"),
        )

    def list_devices(self) -> list[Device]:
        try:
            entries = sorted(self.sysfs_root.iterdir(), key=lambda p: p.name)
        except OSError as exc:
            raise DeviceDiscoveryError(f"Could not read USB devices from {self.sysfs_root}: {exc}") from exc

        blacklist = self._blacklisted_busids()
        return [
            self._build_device(entry, blacklist)
            for entry in entries
            if _BUSID_RE.match(entry.name) and (entry / "idVendor").exists()
        ]

    def _module_name(self, busid: str) -> str:
        modalias = _read_attr(self.sysfs_root / f"{busid}:1.0" / "modalias", "")
        if not modalias:
            return ""
        try:
            result = subprocess.run(
                ["modinfo", modalias],
                check=False,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            return ""
        for line in result.stdout.splitlines():
            match = _MODINFO_NAME_RE.search(line)
            if match:
                return match.group(1)
        return ""

    def run_action(self, device: Device, action: str) -> None:
        if action not in self.actions or not isinstance(device, UsbDevice):
            raise DeviceActionError(f"Unsupported USB action '{action}'")
        cmd = [str(self.settings.sysfs_helper), f"{action}_device", "usb", device.sysfs_busid]
        if action == "start":
            cmd.append(self._module_name(device.sysfs_busid))
        LOGGER.info("Running USB %s on %s", action, device.sysfs_busid)
        run_action_command(
            privileged(cmd, self.settings.privilege_command),
            description=f"USB {action} for {device.sysfs_busid}",
        )
