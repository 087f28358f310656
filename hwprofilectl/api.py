"""Stable public API for building tooling on top of hwprofilectl.

This module is the supported integration surface for third-party callers
(GUIs, installers, scripts). Avoid importing from private/internal modules
unless intentionally depending on non-stable internals.
"""

from __future__ import annotations

from collections.abc import Mapping

from hwprofilectl.core.catalog import CatalogFetcher
from hwprofilectl.core.config import Settings
from hwprofilectl.core.errors import (
    CatalogCorruptError,
    ConfigError,
    DeviceActionError,
    DeviceDiscoveryError,
    DeviceNotFoundError,
    ExecutionFailureError,
    FetchUnavailableError,
    HwProfileError,
    NoProfilesAvailableError,
    ProfileNotFoundError,
)
from hwprofilectl.core.executor import ProfileExecutor
from hwprofilectl.core.model import (
    BluetoothDevice,
    Device,
    DmiDevice,
    ExecutionOutcome,
    MatchedDevice,
    MatchRules,
    Profile,
    UsbDevice,
)
from hwprofilectl.core.service import ProfileService
from hwprofilectl.devices.base import DeviceSource

__all__ = [
    "HwProfileError",
    "CatalogCorruptError",
    "ConfigError",
    "DeviceActionError",
    "DeviceDiscoveryError",
    "DeviceNotFoundError",
    "ExecutionFailureError",
    "FetchUnavailableError",
    "NoProfilesAvailableError",
    "ProfileNotFoundError",
    "BluetoothDevice",
    "Device",
    "DmiDevice",
    "ExecutionOutcome",
    "MatchedDevice",
    "MatchRules",
    "Profile",
    "UsbDevice",
    "DeviceSource",
    "Settings",
    "Client",
]


class Client:
    """Public client for hwprofilectl core capabilities.

    A `Client` wraps catalog retrieval, device enumeration/matching, and
    profile status/install/uninstall behind a stable API. Domains are named
    ``"usb"``, ``"bluetooth"`` (or ``"bt"``) and ``"dmi"``.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        fetcher: CatalogFetcher | None = None,
        executor: ProfileExecutor | None = None,
        sources: Mapping[str, DeviceSource] | None = None,
    ) -> None:
        self._service = ProfileService(
            settings=settings,
            fetcher=fetcher,
            executor=executor,
            sources=sources,
        )

    @property
    def settings(self) -> Settings:
        return self._service.settings

    def list_devices(self, domain: str) -> list[Device]:
        return self._service.list_devices(domain)

    def get_profiles(self, domain: str) -> tuple[Profile, ...]:
        return self._service.get_profiles(domain)

    def match(self, device: Device, catalog: tuple[Profile, ...]) -> tuple[Profile, ...]:
        return self._service.match(device, catalog)

    def matched_devices(self, domain: str) -> list[MatchedDevice]:
        return self._service.matched_devices(domain)

    def device_profiles(self, domain: str, identifier: str | None = None) -> MatchedDevice:
        return self._service.device_profiles(domain, identifier)

    def profile_status(self, domain: str, codename: str) -> bool:
        return self._service.profile_status(self._service.find_profile(domain, codename))

    def install(self, domain: str, codename: str) -> ExecutionOutcome:
        return self._service.install_profile(domain, codename)

    def uninstall(self, domain: str, codename: str) -> ExecutionOutcome:
        return self._service.uninstall_profile(domain, codename)

    def device_action(self, domain: str, identifier: str, action: str) -> Device:
        return self._service.device_action(domain, identifier, action)
