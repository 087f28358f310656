from __future__ import annotations

from dataclasses import replace

import pytest

from hwprofilectl.core.config import Settings
from hwprofilectl.core.errors import (
    DeviceNotFoundError,
    FetchUnavailableError,
    HwProfileError,
    NoProfilesAvailableError,
    ProfileNotFoundError,
)
from hwprofilectl.core.model import BLUETOOTH_SCHEMA, USB_SCHEMA, ExecutionOutcome, Profile
from hwprofilectl.core.service import ProfileService
from hwprofilectl.devices.bluetooth import device_from_info
from tests.factories import usb_device, usb_profile


class FakeFetcher:
    def __init__(self, catalogs: dict[str, tuple[Profile, ...]]) -> None:
        self.catalogs = catalogs

    def fetch(self, schema):
        if schema.name not in self.catalogs:
            raise FetchUnavailableError(f"Could not download the {schema.name} catalog and no cache exists")
        return self.catalogs[schema.name]


class FakeSource:
    schema = USB_SCHEMA
    actions = ("start", "stop")

    def __init__(self, devices) -> None:
        self.devices = devices
        self.actions_run: list[tuple[str, str]] = []

    def list_devices(self):
        return list(self.devices)

    def run_action(self, device, action):
        self.actions_run.append((device.identifier, action))


class FakeExecutor:
    def __init__(self, installed: set[str]) -> None:
        self.installed = installed

    def status(self, profile):
        return profile.codename in self.installed

    def install(self, profile):
        if profile.codename in self.installed:
            return ExecutionOutcome.ALREADY_INSTALLED
        self.installed.add(profile.codename)
        return ExecutionOutcome.INSTALLED

    def uninstall(self, profile):
        if profile.codename not in self.installed:
            return ExecutionOutcome.NOT_INSTALLED
        self.installed.remove(profile.codename)
        return ExecutionOutcome.REMOVED


def _service(devices=None, catalog=None, installed=None) -> tuple[ProfileService, FakeSource]:
    source = FakeSource(devices if devices is not None else [usb_device(class_code="03", busid="1-1")])
    catalog = catalog if catalog is not None else (
        usb_profile("hid-generic", priority=1, whitelist={"class_code": ("03",)}),
        usb_profile("fallback", priority=5),
    )
    service = ProfileService(
        settings=Settings(),
        fetcher=FakeFetcher({"usb": tuple(catalog)}),
        executor=FakeExecutor(set(installed or ())),
        sources={"usb": source},
    )
    return service, source


def test_matched_devices_pairs_each_device() -> None:
    devices = [usb_device(class_code="03", busid="1-1"), usb_device(class_code="09", busid="1-2")]
    service, _ = _service(devices=devices)

    matched = service.matched_devices("usb")

    assert [m.codenames for m in matched] == [["hid-generic", "fallback"], ["fallback"]]


def test_device_profiles_by_identifier_is_case_insensitive() -> None:
    devices = [usb_device(busid="1-1"), usb_device(busid="1-1.2")]
    service, _ = _service(devices=devices)
    assert service.device_profiles("usb", "1-1.2").device.sysfs_busid == "1-1.2"

    bt_device = device_from_info("AA:BB:CC:DD:EE:FF", "Headset", "hci0", {})
    service.sources["bluetooth"] = FakeSource([bt_device])
    assert service.find_device("bt", "aa:bb:cc:dd:ee:ff") is bt_device


def test_single_device_needs_no_identifier() -> None:
    service, _ = _service()
    assert service.device_profiles("usb").device.sysfs_busid == "1-1"


def test_ambiguous_or_missing_device() -> None:
    service, _ = _service(devices=[usb_device(busid="1-1"), usb_device(busid="1-2")])
    with pytest.raises(DeviceNotFoundError, match="Multiple devices"):
        service.find_device("usb")
    with pytest.raises(DeviceNotFoundError, match="'9-9'"):
        service.find_device("usb", "9-9")

    empty, _ = _service(devices=[])
    with pytest.raises(DeviceNotFoundError, match="No usb device found"):
        empty.find_device("usb")


def test_device_without_profiles() -> None:
    service, _ = _service(catalog=[usb_profile("hid", whitelist={"class_code": ("03",)})], devices=[usb_device(class_code="09")])
    with pytest.raises(NoProfilesAvailableError):
        service.device_profiles("usb")


def test_install_and_uninstall_by_codename() -> None:
    service, _ = _service(installed={"fallback"})

    assert service.install_profile("usb", "hid-generic") is ExecutionOutcome.INSTALLED
    assert service.install_profile("usb", "fallback") is ExecutionOutcome.ALREADY_INSTALLED
    assert service.uninstall_profile("usb", "fallback") is ExecutionOutcome.REMOVED
    assert service.profile_status(service.find_profile("usb", "hid-generic")) is True


def test_unknown_codename() -> None:
    service, _ = _service()
    with pytest.raises(ProfileNotFoundError, match="'nvidia'"):
        service.install_profile("usb", "nvidia")


def test_first_duplicate_codename_wins() -> None:
    first = usb_profile("dup", priority=1)
    second = replace(first, priority=2)
    service, _ = _service(catalog=[first, second])
    assert service.find_profile("usb", "dup") is first


def test_fetch_failure_propagates() -> None:
    service, _ = _service()
    with pytest.raises(FetchUnavailableError):
        service.get_profiles("bluetooth")


def test_unknown_domain() -> None:
    service, _ = _service()
    with pytest.raises(HwProfileError, match="Unknown device domain 'floppy'"):
        service.list_devices("floppy")
    assert service.schema("bt") is BLUETOOTH_SCHEMA


def test_device_action_delegates_to_source() -> None:
    service, source = _service()
    device = service.device_action("usb", "1-1", "stop")
    assert device.sysfs_busid == "1-1"
    assert source.actions_run == [("1-1", "stop")]
