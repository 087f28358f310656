"""Status checks and install/remove execution for catalog profiles."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import tempfile
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path

from hwprofilectl.core.config import Settings
from hwprofilectl.core.errors import ExecutionFailureError
from hwprofilectl.core.model import ExecutionOutcome, Profile

SCRIPT_HEADER = "#! /bin/bash\nset -e\n"
LOGGER = logging.getLogger(__name__)


def build_script(fragments: Sequence[str]) -> str:
    return SCRIPT_HEADER + "\n".join(fragments) + "\n"


def package_command(base_command: str, packages: tuple[str, ...] | None) -> str | None:
    if not packages:
        return None
    # An entry may list several whitespace-separated names.
    names = [name for package in packages for name in package.split()]
    if not names:
        return None
    quoted = " ".join(shlex.quote(name) for name in names)
    return f"{base_command} {quoted}"


def install_fragments(profile: Profile, settings: Settings) -> list[str]:
    fragments = [
        package_command(settings.package_manager.install, profile.packages),
        profile.install_script,
    ]
    return [fragment for fragment in fragments if fragment]


def remove_fragments(profile: Profile, settings: Settings) -> list[str]:
    fragments = [
        package_command(settings.package_manager.remove, profile.packages),
        profile.remove_script,
    ]
    return [fragment for fragment in fragments if fragment]


class ProfileExecutor:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _script_dir(self) -> Path | None:
        cache_dir = self.settings.cache_dir
        if cache_dir.is_dir() and os.access(cache_dir, os.W_OK | os.X_OK):
            return cache_dir
        return None

    @contextmanager
    def _materialized(self, body: str) -> Iterator[Path]:
        try:
            fd, name = tempfile.mkstemp(prefix="hwprofilectl-", suffix=".sh", dir=self._script_dir())
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(body)
            os.chmod(name, 0o700)
        except OSError as exc:
            raise ExecutionFailureError(f"Could not write script file: {exc}") from exc

        path = Path(name)
        try:
            yield path
        finally:
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as exc:
                LOGGER.warning("Could not remove script file %s: %s", path, exc)

    def _privilege_prefix(self) -> list[str]:
        if os.geteuid() == 0 or not self.settings.privilege_command:
            return []
        return shlex.split(self.settings.privilege_command)

    def _run(self, cmd: list[str], *, quiet: bool) -> int:
        output = subprocess.DEVNULL if quiet else None
        try:
            result = subprocess.run(
                cmd,
                check=False,
                stdout=output,
                stderr=output,
                timeout=self.settings.script_timeout_s,
            )
        except subprocess.TimeoutExpired as exc:
            raise ExecutionFailureError(
                f"Script timed out after {self.settings.script_timeout_s}s"
            ) from exc
        except OSError as exc:
            raise ExecutionFailureError(f"Could not spawn {cmd[0]}: {exc}") from exc
        return result.returncode

    def status(self, profile: Profile) -> bool:
        """Return True when the profile's check script exits with status 0."""
        with self._materialized(build_script([profile.check_script])) as path:
            returncode = self._run(["bash", str(path)], quiet=True)
        LOGGER.debug("Check script for %s exited with %d", profile.codename, returncode)
        return returncode == 0

    def _run_privileged(self, profile: Profile, fragments: list[str], action: str) -> None:
        with self._materialized(build_script(fragments)) as path:
            returncode = self._run([*self._privilege_prefix(), "bash", str(path)], quiet=False)
        if returncode != 0:
            raise ExecutionFailureError(
                f"{action.capitalize()} script for profile '{profile.codename}' exited with status {returncode}"
            )

    def install(self, profile: Profile) -> ExecutionOutcome:
        if self.status(profile):
            return ExecutionOutcome.ALREADY_INSTALLED
        fragments = install_fragments(profile, self.settings)
        if not fragments:
            return ExecutionOutcome.NOTHING_TO_RUN
        LOGGER.info("Installing profile %s", profile.codename)
        self._run_privileged(profile, fragments, "install")
        return ExecutionOutcome.INSTALLED

    def uninstall(self, profile: Profile) -> ExecutionOutcome:
        if not self.status(profile):
            return ExecutionOutcome.NOT_INSTALLED
        fragments = remove_fragments(profile, self.settings)
        if not fragments:
            return ExecutionOutcome.NOTHING_TO_RUN
        LOGGER.info("Removing profile %s", profile.codename)
        self._run_privileged(profile, fragments, "remove")
        return ExecutionOutcome.REMOVED
