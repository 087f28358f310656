"""Service layer used by CLI and the public API."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from hwprofilectl.core.catalog import CatalogFetcher
from hwprofilectl.core.config import Settings, load_settings
from hwprofilectl.core.device_match import available_profiles, match_devices
from hwprofilectl.core.errors import (
    DeviceNotFoundError,
    HwProfileError,
    NoProfilesAvailableError,
    ProfileNotFoundError,
)
from hwprofilectl.core.executor import ProfileExecutor
from hwprofilectl.core.model import DOMAIN_SCHEMAS, Device, DomainSchema, ExecutionOutcome, MatchedDevice, Profile
from hwprofilectl.core.profile_parser import find_profile
from hwprofilectl.devices.base import DeviceSource
from hwprofilectl.devices.bluetooth import BluetoothDeviceSource
from hwprofilectl.devices.dmi import DmiDeviceSource
from hwprofilectl.devices.usb import UsbDeviceSource

DOMAIN_ALIASES = {"bt": "bluetooth"}


def _default_sources(settings: Settings) -> dict[str, DeviceSource]:
    return {
        "usb": UsbDeviceSource(settings),
        "bluetooth": BluetoothDeviceSource(),
        "dmi": DmiDeviceSource(),
    }


class ProfileService:
    def __init__(
        self,
        *,
        settings: Settings | None = None,
        fetcher: CatalogFetcher | None = None,
        executor: ProfileExecutor | None = None,
        sources: Mapping[str, DeviceSource] | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.fetcher = fetcher or CatalogFetcher(self.settings)
        self.executor = executor or ProfileExecutor(self.settings)
        self.sources = dict(sources) if sources is not None else _default_sources(self.settings)

    def schema(self, domain: str) -> DomainSchema:
        name = DOMAIN_ALIASES.get(domain, domain)
        schema = DOMAIN_SCHEMAS.get(name)
        if schema is None:
            raise HwProfileError(f"Unknown device domain '{domain}'. Choose one of: {', '.join(DOMAIN_SCHEMAS)}")
        return schema

    def _source(self, domain: str) -> DeviceSource:
        name = self.schema(domain).name
        source = self.sources.get(name)
        if source is None:
            raise HwProfileError(f"No device source registered for domain '{name}'")
        return source

    def list_devices(self, domain: str) -> list[Device]:
        return self._source(domain).list_devices()

    def get_profiles(self, domain: str) -> tuple[Profile, ...]:
        return self.fetcher.fetch(self.schema(domain))

    def match(self, device: Device, catalog: Sequence[Profile]) -> tuple[Profile, ...]:
        return available_profiles(device, catalog)

    def matched_devices(self, domain: str) -> list[MatchedDevice]:
        devices = self.list_devices(domain)
        catalog = self.get_profiles(domain)
        return match_devices(devices, catalog)

    def find_device(self, domain: str, identifier: str | None = None) -> Device:
        devices = self.list_devices(domain)
        if identifier is None:
            if len(devices) == 1:
                return devices[0]
            if not devices:
                raise DeviceNotFoundError(f"No {self.schema(domain).name} device found")
            raise DeviceNotFoundError("Multiple devices found. Pass a device identifier to choose one.")

        wanted = identifier.lower()
        for device in devices:
            if device.identifier.lower() == wanted:
                return device
        raise DeviceNotFoundError(f"No {self.schema(domain).name} device matching '{identifier}'")

    def device_profiles(self, domain: str, identifier: str | None = None) -> MatchedDevice:
        device = self.find_device(domain, identifier)
        profiles = self.match(device, self.get_profiles(domain))
        if not profiles:
            raise NoProfilesAvailableError(f"No profiles available for device {device.identifier}")
        return MatchedDevice(device=device, profiles=profiles)

    def find_profile(self, domain: str, codename: str) -> Profile:
        profile = find_profile(codename, self.get_profiles(domain))
        if profile is None:
            raise ProfileNotFoundError(
                f"No {self.schema(domain).name} profile with codename '{codename}'"
            )
        return profile

    def profile_status(self, profile: Profile) -> bool:
        return self.executor.status(profile)

    def install_profile(self, domain: str, codename: str) -> ExecutionOutcome:
        return self.executor.install(self.find_profile(domain, codename))

    def uninstall_profile(self, domain: str, codename: str) -> ExecutionOutcome:
        return self.executor.uninstall(self.find_profile(domain, codename))

    def device_action(self, domain: str, identifier: str, action: str) -> Device:
        device = self.find_device(domain, identifier)
        self._source(domain).run_action(device, action)
        return device
