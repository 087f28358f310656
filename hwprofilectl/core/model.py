"""Core data models used across parser, matcher, executor, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Union

WILDCARD = "*"


@dataclass(frozen=True)
class FieldSpec:
    """Binds a device attribute to the catalog keys that whitelist/blacklist it."""

    attribute: str
    whitelist_key: str
    blacklist_key: str


def _field(attribute: str, catalog_key: str) -> FieldSpec:
    return FieldSpec(
        attribute=attribute,
        whitelist_key=catalog_key,
        blacklist_key=f"blacklisted_{catalog_key}",
    )


@dataclass(frozen=True)
class DomainSchema:
    name: str
    cache_file: str
    fields: tuple[FieldSpec, ...]


USB_SCHEMA = DomainSchema(
    name="usb",
    cache_file="usb.json",
    fields=(
        _field("class_code", "class_codes"),
        _field("vendor_id", "vendor_ids"),
        _field("product_id", "product_ids"),
    ),
)

BLUETOOTH_SCHEMA = DomainSchema(
    name="bluetooth",
    cache_file="bt.json",
    fields=(
        _field("class_id", "class_ids"),
        _field("name", "bt_names"),
        _field("modalias_vendor_id", "modalias_vendor_ids"),
        _field("modalias_product_id", "modalias_product_ids"),
        _field("modalias_device_id", "modalias_device_ids"),
    ),
)

DMI_SCHEMA = DomainSchema(
    name="dmi",
    cache_file="dmi.json",
    fields=(
        _field("bios_vendor", "bios_vendors"),
        _field("board_asset_tag", "board_asset_tags"),
        _field("board_name", "board_names"),
        _field("board_vendor", "board_vendors"),
        _field("product_family", "product_families"),
        _field("product_name", "product_names"),
        _field("product_sku", "product_skus"),
        _field("sys_vendor", "sys_vendors"),
    ),
)

DOMAIN_SCHEMAS: dict[str, DomainSchema] = {
    schema.name: schema for schema in (USB_SCHEMA, BLUETOOTH_SCHEMA, DMI_SCHEMA)
}


@dataclass(frozen=True)
class MatchRules:
    # Keyed by device attribute name, not by catalog key.
    whitelist: dict[str, tuple[str, ...]]
    blacklist: dict[str, tuple[str, ...]]


@dataclass(frozen=True)
class Profile:
    codename: str
    domain: str
    i18n_desc: str
    icon_name: str
    license: str
    rules: MatchRules
    packages: tuple[str, ...] | None
    check_script: str
    install_script: str | None
    remove_script: str | None
    experimental: bool = False
    removable: bool = False
    veiled: bool = False
    priority: int = 0


@dataclass(frozen=True)
class UsbDevice:
    manufacturer_string_index: str
    product_string_index: str
    serial_number_string_index: str
    protocol_code: str
    class_code: str
    vendor_id: str
    product_id: str
    usb_version: str
    bus_number: int
    port_number: int
    address: int
    sysfs_busid: str
    kernel_driver: str
    started: bool | None
    enabled: bool
    speed: str

    domain = "usb"

    @property
    def identifier(self) -> str:
        return self.sysfs_busid

    @property
    def group_key(self) -> str:
        return self.class_code


@dataclass(frozen=True)
class BluetoothDevice:
    alias: str
    name: str
    class_id: str
    modalias_vendor_id: str
    modalias_product_id: str
    modalias_device_id: str
    adapter: str
    paired: bool
    connected: bool
    trusted: bool
    blocked: bool
    address: str

    domain = "bluetooth"

    @property
    def identifier(self) -> str:
        return self.address

    @property
    def group_key(self) -> str:
        return self.class_id


@dataclass(frozen=True)
class DmiDevice:
    bios_date: str
    bios_release: str
    bios_vendor: str
    bios_version: str
    board_asset_tag: str
    board_name: str
    board_vendor: str
    board_version: str
    product_family: str
    product_name: str
    product_sku: str
    product_version: str
    sys_vendor: str

    domain = "dmi"

    @property
    def identifier(self) -> str:
        return "dmi"

    @property
    def group_key(self) -> str:
        return "dmi"


Device = Union[UsbDevice, BluetoothDevice, DmiDevice]


def device_to_dict(device: Device) -> dict[str, object]:
    return {f.name: getattr(device, f.name) for f in fields(device)}


@dataclass(frozen=True)
class MatchedDevice:
    """A device paired with the profiles that apply to it.

    An empty ``profiles`` tuple means the device was checked against the
    catalog and nothing applied. A device that was never matched has no
    ``MatchedDevice`` at all.
    """

    device: Device
    profiles: tuple[Profile, ...]

    @property
    def codenames(self) -> list[str]:
        return [profile.codename for profile in self.profiles]


class ExecutionOutcome(str, Enum):
    INSTALLED = "installed"
    REMOVED = "removed"
    ALREADY_INSTALLED = "already_installed"
    NOT_INSTALLED = "not_installed"
    NOTHING_TO_RUN = "nothing_to_run"
