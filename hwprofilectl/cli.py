"""Typer CLI entrypoint."""

from __future__ import annotations

import json
import logging

import typer

from hwprofilectl.core.device_match import group_by_class
from hwprofilectl.core.errors import HwProfileError
from hwprofilectl.core.model import ExecutionOutcome, MatchedDevice, Profile, device_to_dict
from hwprofilectl.core.service import ProfileService

app = typer.Typer(help="Hardware profile detection and driver installation")
usb_app = typer.Typer(help="USB devices and profiles")
bt_app = typer.Typer(help="Bluetooth devices and profiles")
dmi_app = typer.Typer(help="DMI (BIOS/board) information and profiles")
app.add_typer(usb_app, name="usb")
app.add_typer(bt_app, name="bt")
app.add_typer(dmi_app, name="dmi")

_OUTCOME_MESSAGES = {
    ExecutionOutcome.INSTALLED: "Profile '{codename}' installed",
    ExecutionOutcome.REMOVED: "Profile '{codename}' removed",
    ExecutionOutcome.ALREADY_INSTALLED: "Profile '{codename}' is already installed",
    ExecutionOutcome.NOT_INSTALLED: "Profile '{codename}' is not installed",
    ExecutionOutcome.NOTHING_TO_RUN: "Profile '{codename}' has no packages or scripts to run",
}


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Show progress logging")) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="[%(levelname)s] %(message)s",
    )


def _build_service() -> ProfileService:
    return ProfileService()


def _fail(exc: HwProfileError) -> typer.Exit:
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(code=1)


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def _yes_no(value: bool | None) -> str:
    if value is None:
        return "n/a"
    return "yes" if value else "no"


def _visible(profiles: tuple[Profile, ...], show_all: bool) -> list[Profile]:
    return [p for p in profiles if show_all or not p.veiled]


def _matched_to_json(item: MatchedDevice) -> dict[str, object]:
    payload = device_to_dict(item.device)
    payload["available_profiles"] = item.codenames
    return payload


def _echo_devices(matched: list[MatchedDevice], as_json: bool) -> None:
    groups = group_by_class(matched)
    if as_json:
        payload = {key: [_matched_to_json(item) for item in items] for key, items in groups.items()}
        typer.echo(json.dumps(payload, indent=2))
        return
    if not matched:
        typer.echo("No devices found")
        return
    for key, items in groups.items():
        typer.echo(f"Class {key}:")
        for item in items:
            profiles = ", ".join(item.codenames) or "<no-profiles>"
            typer.echo(f"  {_describe_device(item)} -> {profiles}")


def _describe_device(item: MatchedDevice) -> str:
    device = item.device
    if device.domain == "usb":
        return (
            f"{device.sysfs_busid} {_truncate(device.manufacturer_string_index, 18)} "
            f"{_truncate(device.product_string_index, 36)} speed={device.speed} "
            f"driver={device.kernel_driver} started={_yes_no(device.started)} "
            f"enabled={_yes_no(device.enabled)}"
        )
    if device.domain == "bluetooth":
        return (
            f"{device.address} {_truncate(device.alias, 18)} ({_truncate(device.name, 36)}) "
            f"paired={_yes_no(device.paired)} connected={_yes_no(device.connected)} "
            f"trusted={_yes_no(device.trusted)} blocked={_yes_no(device.blocked)}"
        )
    return device.identifier


def _echo_profiles(service: ProfileService, matched: MatchedDevice, as_json: bool, show_all: bool) -> None:
    profiles = _visible(matched.profiles, show_all)
    if as_json:
        typer.echo(json.dumps([p.codename for p in profiles], indent=2))
        return
    typer.echo(f"Profiles for {matched.device.identifier}:")
    for profile in profiles:
        installed = service.profile_status(profile)
        typer.echo(
            f"  {profile.codename}: {_truncate(profile.i18n_desc, 36)} "
            f"license={profile.license} priority={profile.priority} "
            f"experimental={_yes_no(profile.experimental)} installed={_yes_no(installed)}"
        )


def _run_install(domain: str, codename: str, *, remove: bool) -> None:
    try:
        service = _build_service()
        if remove:
            outcome = service.uninstall_profile(domain, codename)
        else:
            outcome = service.install_profile(domain, codename)
        typer.echo(_OUTCOME_MESSAGES[outcome].format(codename=codename))
    except HwProfileError as exc:
        raise _fail(exc) from None


def _run_status(domain: str, codename: str) -> None:
    try:
        service = _build_service()
        installed = service.profile_status(service.find_profile(domain, codename))
        typer.echo(f"{codename}: {'installed' if installed else 'not installed'}")
    except HwProfileError as exc:
        raise _fail(exc) from None


def _run_action(domain: str, identifier: str, action: str) -> None:
    try:
        device = _build_service().device_action(domain, identifier, action)
        typer.echo(f"{action.capitalize()} succeeded for {device.identifier}")
    except HwProfileError as exc:
        raise _fail(exc) from None


def _register_common_commands(sub_app: typer.Typer, domain: str, id_help: str) -> None:
    @sub_app.command("devices")
    def list_devices(as_json: bool = typer.Option(False, "--json", help="Print JSON")) -> None:
        """List devices grouped by class, with their matching profiles."""
        try:
            _echo_devices(_build_service().matched_devices(domain), as_json)
        except HwProfileError as exc:
            raise _fail(exc) from None

    @sub_app.command("profiles")
    def list_profiles(
        identifier: str = typer.Argument(..., help=id_help),
        as_json: bool = typer.Option(False, "--json", help="Print JSON"),
        show_all: bool = typer.Option(False, "--all", help="Include veiled profiles"),
    ) -> None:
        """List profiles available for a device, highest priority first."""
        try:
            service = _build_service()
            _echo_profiles(service, service.device_profiles(domain, identifier), as_json, show_all)
        except HwProfileError as exc:
            raise _fail(exc) from None


def _register_profile_commands(sub_app: typer.Typer, domain: str) -> None:
    @sub_app.command("install")
    def install(codename: str) -> None:
        """Install a profile unless its check script reports it installed."""
        _run_install(domain, codename, remove=False)

    @sub_app.command("uninstall")
    def uninstall(codename: str) -> None:
        """Remove a profile if its check script reports it installed."""
        _run_install(domain, codename, remove=True)

    @sub_app.command("status")
    def status(codename: str) -> None:
        """Show whether a profile is installed."""
        _run_status(domain, codename)


def _register_action(sub_app: typer.Typer, domain: str, action: str, id_help: str) -> None:
    def command(identifier: str = typer.Argument(..., help=id_help)) -> None:
        _run_action(domain, identifier, action)

    command.__doc__ = f"{action.capitalize()} a device."
    sub_app.command(action)(command)


_register_common_commands(usb_app, "usb", "sysfs bus id, e.g. 3-1.2")
_register_profile_commands(usb_app, "usb")
for _action in ("start", "stop", "enable", "disable"):
    _register_action(usb_app, "usb", _action, "sysfs bus id, e.g. 3-1.2")

_register_common_commands(bt_app, "bluetooth", "Bluetooth address")
_register_profile_commands(bt_app, "bluetooth")
for _action in ("pair", "connect", "disconnect", "trust", "untrust", "block", "unblock"):
    _register_action(bt_app, "bluetooth", _action, "Bluetooth address")

_register_profile_commands(dmi_app, "dmi")


@dmi_app.command("info")
def dmi_info(as_json: bool = typer.Option(False, "--json", help="Print JSON")) -> None:
    """Show DMI information and the profiles that apply to this machine."""
    try:
        matched = _build_service().matched_devices("dmi")
        if as_json:
            typer.echo(json.dumps([_matched_to_json(item) for item in matched], indent=2))
            return
        for item in matched:
            for key, value in device_to_dict(item.device).items():
                typer.echo(f"{key}: {value}")
            typer.echo(f"profiles: {', '.join(item.codenames) or '<no-profiles>'}")
    except HwProfileError as exc:
        raise _fail(exc) from None


@dmi_app.command("profiles")
def dmi_profiles(
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
    show_all: bool = typer.Option(False, "--all", help="Include veiled profiles"),
) -> None:
    """List profiles available for this machine, highest priority first."""
    try:
        service = _build_service()
        _echo_profiles(service, service.device_profiles("dmi"), as_json, show_all)
    except HwProfileError as exc:
        raise _fail(exc) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
