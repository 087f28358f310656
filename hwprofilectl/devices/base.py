"""Device source interfaces and shared helpers."""

from __future__ import annotations

import os
import shlex
import subprocess
from collections.abc import Sequence
from typing import Protocol

from hwprofilectl.core.errors import DeviceActionError
from hwprofilectl.core.model import Device, DomainSchema


class DeviceSource(Protocol):
    schema: DomainSchema
    actions: tuple[str, ...]

    def list_devices(self) -> list[Device]:
        """Enumerate the devices of this domain currently present."""

    def run_action(self, device: Device, action: str) -> None:
        """Apply a domain-specific lifecycle action (pair, start, ...)."""


def privileged(cmd: Sequence[str], privilege_command: str) -> list[str]:
    if os.geteuid() == 0 or not privilege_command:
        return list(cmd)
    return [*shlex.split(privilege_command), *cmd]


def run_action_command(cmd: Sequence[str], *, description: str) -> None:
    try:
        result = subprocess.run(
            list(cmd),
            check=False,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as exc:
        raise DeviceActionError(f"{description} failed: {cmd[0]} not found") from exc
    if result.returncode != 0:
        stderr = (result.stderr or "").strip()
        detail = f": {stderr}" if stderr else ""
        raise DeviceActionError(f"{description} failed with status {result.returncode}{detail}")
