from __future__ import annotations

import json

from typer.testing import CliRunner

from hwprofilectl import cli
from hwprofilectl.core.errors import FetchUnavailableError, ProfileNotFoundError
from hwprofilectl.core.model import ExecutionOutcome, MatchedDevice
from hwprofilectl.devices.bluetooth import device_from_info
from tests.factories import usb_device, usb_profile


class FakeService:
    def __init__(self) -> None:
        self.profiles = (
            usb_profile("logitech-unifying", priority=1, whitelist={"vendor_id": ("046d",)}),
            usb_profile("hidden-tools", priority=2, veiled=True),
            usb_profile("generic-hid", priority=3),
        )
        self.receiver = usb_device(class_code="03", vendor_id="046d", busid="1-1")
        self.hub = usb_device(class_code="09", busid="1-2")
        self.actions: list[tuple[str, str, str]] = []

    def matched_devices(self, domain):
        return [
            MatchedDevice(device=self.receiver, profiles=(self.profiles[0], self.profiles[2])),
            MatchedDevice(device=self.hub, profiles=()),
        ]

    def device_profiles(self, domain, identifier=None):
        if domain == "bluetooth":
            return MatchedDevice(device=device_from_info(identifier, "Headset", "hci0", {}), profiles=self.profiles)
        return MatchedDevice(device=self.receiver, profiles=self.profiles)

    def find_profile(self, domain, codename):
        for profile in self.profiles:
            if profile.codename == codename:
                return profile
        raise ProfileNotFoundError(f"No {domain} profile with codename '{codename}'")

    def profile_status(self, profile):
        return profile.codename == "generic-hid"

    def install_profile(self, domain, codename):
        profile = self.find_profile(domain, codename)
        return ExecutionOutcome.ALREADY_INSTALLED if self.profile_status(profile) else ExecutionOutcome.INSTALLED

    def uninstall_profile(self, domain, codename):
        self.find_profile(domain, codename)
        return ExecutionOutcome.NOT_INSTALLED

    def device_action(self, domain, identifier, action):
        self.actions.append((domain, identifier, action))
        return self.receiver


runner = CliRunner()


def test_usb_devices_grouped_by_class(monkeypatch):
    monkeypatch.setattr(cli, "ProfileService", FakeService)
    result = runner.invoke(cli.app, ["usb", "devices"])
    assert result.exit_code == 0
    assert "Class 03:" in result.stdout
    assert "Class 09:" in result.stdout
    assert "-> logitech-unifying, generic-hid" in result.stdout
    assert "-> <no-profiles>" in result.stdout


def test_usb_devices_json(monkeypatch):
    monkeypatch.setattr(cli, "ProfileService", FakeService)
    result = runner.invoke(cli.app, ["usb", "devices", "--json"])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["03"][0]["sysfs_busid"] == "1-1"
    assert payload["03"][0]["available_profiles"] == ["logitech-unifying", "generic-hid"]
    assert payload["09"][0]["available_profiles"] == []


def test_profiles_hide_veiled_unless_all(monkeypatch):
    monkeypatch.setattr(cli, "ProfileService", FakeService)
    result = runner.invoke(cli.app, ["usb", "profiles", "1-1"])
    assert result.exit_code == 0
    assert "Profiles for 1-1:" in result.stdout
    assert "hidden-tools" not in result.stdout
    assert "generic-hid" in result.stdout
    assert "installed=yes" in result.stdout

    result = runner.invoke(cli.app, ["usb", "profiles", "1-1", "--all", "--json"])
    assert json.loads(result.stdout) == ["logitech-unifying", "hidden-tools", "generic-hid"]


def test_bt_profiles_use_address(monkeypatch):
    monkeypatch.setattr(cli, "ProfileService", FakeService)
    result = runner.invoke(cli.app, ["bt", "profiles", "AA:BB:CC:DD:EE:FF"])
    assert result.exit_code == 0
    assert "Profiles for AA:BB:CC:DD:EE:FF:" in result.stdout


def test_install_outcomes(monkeypatch):
    monkeypatch.setattr(cli, "ProfileService", FakeService)

    result = runner.invoke(cli.app, ["usb", "install", "logitech-unifying"])
    assert result.exit_code == 0
    assert "Profile 'logitech-unifying' installed" in result.stdout

    result = runner.invoke(cli.app, ["usb", "install", "generic-hid"])
    assert result.exit_code == 0
    assert "Profile 'generic-hid' is already installed" in result.stdout

    result = runner.invoke(cli.app, ["dmi", "uninstall", "generic-hid"])
    assert result.exit_code == 0
    assert "is not installed" in result.stdout


def test_status_command(monkeypatch):
    monkeypatch.setattr(cli, "ProfileService", FakeService)
    result = runner.invoke(cli.app, ["usb", "status", "generic-hid"])
    assert result.exit_code == 0
    assert "generic-hid: installed" in result.stdout


def test_device_action(monkeypatch):
    monkeypatch.setattr(cli, "ProfileService", FakeService)
    result = runner.invoke(cli.app, ["usb", "stop", "1-1"])
    assert result.exit_code == 0
    assert "Stop succeeded for 1-1" in result.stdout


def test_unknown_codename_error_is_clean(monkeypatch):
    monkeypatch.setattr(cli, "ProfileService", FakeService)
    result = runner.invoke(cli.app, ["usb", "install", "nvidia"])
    assert result.exit_code == 1
    assert "Error: No usb profile with codename 'nvidia'" in result.stderr
    assert "Traceback" not in result.stdout
    assert "Traceback" not in result.stderr


def test_fetch_failure_error_is_clean(monkeypatch):
    class OfflineService(FakeService):
        def matched_devices(self, domain):
            raise FetchUnavailableError("Could not download the dmi catalog and no cache exists at /var/cache/hwprofilectl/dmi.json")

    monkeypatch.setattr(cli, "ProfileService", OfflineService)
    result = runner.invoke(cli.app, ["dmi", "info"])
    assert result.exit_code == 1
    assert "Error: Could not download the dmi catalog" in result.stderr
