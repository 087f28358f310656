"""Bluetooth device enumeration and actions through bluetoothctl."""

from __future__ import annotations

import logging
import re
import subprocess
from collections.abc import Sequence

from hwprofilectl.core.errors import DeviceActionError, DeviceDiscoveryError
from hwprofilectl.core.model import BLUETOOTH_SCHEMA, BluetoothDevice, Device
from hwprofilectl.devices.base import run_action_command

UNKNOWN = "Unknown!"
_DEVICE_LINE_RE = re.compile(r"^Device\s+([0-9A-F:]{17})\s*(.*)$", re.IGNORECASE)
_CONTROLLER_LINE_RE = re.compile(r"^Controller\s+([0-9A-F:]{17})\b(.*)$", re.IGNORECASE)
_INFO_LINE_RE = re.compile(r"^\s*([A-Za-z][A-Za-z ]*):\s*(.*)$")
_MODALIAS_RE = re.compile(
    r"^\w+:v([0-9A-F]{4})p([0-9A-F]{4})d([0-9A-F]{4})", re.IGNORECASE
)
LOGGER = logging.getLogger(__name__)


def _run_bluetoothctl(args: Sequence[str]) -> subprocess.CompletedProcess[str]:
    cmd = ["bluetoothctl", *args]
    try:
        result = subprocess.run(
            cmd,
            check=False,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as exc:
        raise DeviceDiscoveryError("bluetoothctl not found. Install BlueZ to manage Bluetooth devices.") from exc
    if result.returncode != 0:
        stderr = (result.stderr or "").strip()
        raise DeviceDiscoveryError(
            f"{' '.join(cmd)} failed. Ensure a working D-Bus/BlueZ session. Details: {stderr}"
        )
    return result


def parse_info(output: str) -> dict[str, str]:
    info: dict[str, str] = {}
    for line in output.splitlines():
        match = _INFO_LINE_RE.match(line)
        if not match:
            continue
        key = match.group(1).strip()
        if key not in info:
            info[key] = match.group(2).strip()
    return info


def _hex_to_decimal(value: str | None) -> str:
    if not value:
        return UNKNOWN
    try:
        return str(int(value, 16))
    except ValueError:
        return UNKNOWN


def _yes(value: str | None) -> bool:
    return (value or "").lower() == "yes"


def device_from_info(address: str, fallback_name: str, adapter: str, info: dict[str, str]) -> BluetoothDevice:
    # Modalias ids are rendered in decimal, the same as the class id.
    modalias = _MODALIAS_RE.match(info.get("Modalias", ""))
    if modalias:
        vendor, product, device_id = (_hex_to_decimal(g) for g in modalias.groups())
    else:
        vendor = product = device_id = UNKNOWN
    return BluetoothDevice(
        alias=info.get("Alias") or UNKNOWN,
        name=info.get("Name") or fallback_name or UNKNOWN,
        class_id=_hex_to_decimal(info.get("Class")),
        modalias_vendor_id=vendor,
        modalias_product_id=product,
        modalias_device_id=device_id,
        adapter=adapter,
        paired=_yes(info.get("Paired")),
        connected=_yes(info.get("Connected")),
        trusted=_yes(info.get("Trusted")),
        blocked=_yes(info.get("Blocked")),
        address=address,
    )


class BluetoothDeviceSource:
    schema = BLUETOOTH_SCHEMA
    actions = ("pair", "connect", "disconnect", "trust", "untrust", "block", "unblock")

    def _default_adapter(self) -> str:
        controllers: list[tuple[str, bool]] = []
        for line in _run_bluetoothctl(["list"]).stdout.splitlines():
            match = _CONTROLLER_LINE_RE.match(line.strip())
            if match:
                controllers.append((match.group(1).upper(), "[default]" in match.group(2)))
        for address, is_default in controllers:
            if is_default:
                return address
        return controllers[0][0] if controllers else UNKNOWN

    def list_devices(self) -> list[Device]:
        adapter = self._default_adapter()
        seen: set[str] = set()
        devices: list[Device] = []
        for line in _run_bluetoothctl(["devices"]).stdout.splitlines():
            match = _DEVICE_LINE_RE.match(line.strip())
            if not match:
                continue
            address, name = match.group(1).upper(), match.group(2).strip()
            if address in seen:
                continue
            seen.add(address)
            try:
                info = parse_info(_run_bluetoothctl(["info", address]).stdout)
            except DeviceDiscoveryError as exc:
                LOGGER.warning("Could not read details for %s: %s", address, exc)
                info = {}
            devices.append(device_from_info(address, name, adapter, info))
        return devices

    def run_action(self, device: Device, action: str) -> None:
        if action not in self.actions or not isinstance(device, BluetoothDevice):
            raise DeviceActionError(f"Unsupported Bluetooth action '{action}'")
        LOGGER.info("Running Bluetooth %s on %s", action, device.address)
        run_action_command(
            ["bluetoothctl", action, device.address],
            description=f"Bluetooth {action} for {device.address}",
        )
