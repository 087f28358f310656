"""Settings loading for hwprofilectl from YAML config files."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from hwprofilectl.core.errors import ConfigError

CONFIG_ENV_VAR = "HWPROFILECTL_CONFIG"
SYSTEM_CONFIG_PATH = Path("/etc/hwprofilectl/config.yaml")
DEFAULT_LOCALE = "en_US"
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class PackageManager:
    install: str = "apt-get install -y"
    remove: str = "apt-get remove -y"


@dataclass(frozen=True)
class Settings:
    catalog_urls: dict[str, str] = field(default_factory=dict)
    cache_dir: Path = Path("/var/cache/hwprofilectl")
    locale: str = DEFAULT_LOCALE
    fetch_timeout_s: float = 5.0
    script_timeout_s: float | None = None
    package_manager: PackageManager = field(default_factory=PackageManager)
    privilege_command: str = "pkexec"
    sysfs_helper: Path = Path("/usr/lib/hwprofilectl/scripts/sysfs_helper.sh")
    usb_blacklist: Path = Path("/etc/hwprofilectl/usb_blacklist")

    def catalog_url(self, domain: str) -> str | None:
        return self.catalog_urls.get(domain)


def _load_schema_validator() -> Any:
    schema_text = resources.files("hwprofilectl.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _config_candidates() -> list[Path]:
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        return [Path(explicit)]
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return [xdg_config / "hwprofilectl/config.yaml", SYSTEM_CONFIG_PATH]


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at root")
    return loaded


def locale_from_environment() -> str:
    for var in ("LC_ALL", "LC_MESSAGES", "LANG"):
        value = os.environ.get(var, "").strip()
        if not value or value in {"C", "POSIX"}:
            continue
        # fr_FR.UTF-8@euro -> fr_FR
        return value.split(".", 1)[0].split("@", 1)[0]
    return DEFAULT_LOCALE


def build_settings(doc: dict[str, Any], source: Path | str = "<config>") -> Settings:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    defaults = Settings()
    pm_doc = doc.get("package_manager", {})
    script_timeout = doc.get("script_timeout_s", defaults.script_timeout_s)
    return Settings(
        catalog_urls=dict(doc.get("catalog_urls", {})),
        cache_dir=Path(doc.get("cache_dir", defaults.cache_dir)),
        locale=doc.get("locale") or locale_from_environment(),
        fetch_timeout_s=float(doc.get("fetch_timeout_s", defaults.fetch_timeout_s)),
        script_timeout_s=float(script_timeout) if script_timeout is not None else None,
        package_manager=PackageManager(
            install=pm_doc.get("install", defaults.package_manager.install),
            remove=pm_doc.get("remove", defaults.package_manager.remove),
        ),
        privilege_command=doc.get("privilege_command", defaults.privilege_command),
        sysfs_helper=Path(doc.get("sysfs_helper", defaults.sysfs_helper)),
        usb_blacklist=Path(doc.get("usb_blacklist", defaults.usb_blacklist)),
    )


def load_settings() -> Settings:
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit and not Path(explicit).is_file():
        raise ConfigError(f"Config file {explicit} set via {CONFIG_ENV_VAR} does not exist")

    for path in _config_candidates():
        if not path.is_file():
            continue
        LOGGER.info("Loading configuration from %s", path)
        return build_settings(_read_yaml(path), path)
    LOGGER.info("No configuration file found, using defaults")
    return build_settings({})
