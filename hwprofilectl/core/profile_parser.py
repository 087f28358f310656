"""Normalization of raw catalog JSON into ordered, strictly-typed profiles."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from importlib import resources
from typing import Any

from jsonschema import ValidationError, validators

from hwprofilectl.core.errors import CatalogCorruptError
from hwprofilectl.core.model import DomainSchema, MatchRules, Profile

# Catalog marker for "no script"; existing catalogs depend on this exact string.
NO_SCRIPT_SENTINEL = "Option::is_none"
DEFAULT_CHECK_SCRIPT = "false"
DEFAULT_ICON_NAME = "package-x-generic"
DEFAULT_LICENSE = "Unknown"
LOGGER = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _load_schema_validator() -> Any:
    schema_text = resources.files("hwprofilectl.schemas").joinpath("profile.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _as_str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _as_bool(value: Any) -> bool:
    return value if isinstance(value, bool) else False


def _as_str_tuple(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(_as_str(item) for item in value)


def _as_i32(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return (value + 2**31) % 2**32 - 2**31


def _optional_script(value: Any) -> str | None:
    if not isinstance(value, str) or value in {"", NO_SCRIPT_SENTINEL}:
        return None
    return value


def locale_candidates(locale: str) -> list[str]:
    """Return locale keys to try, most specific first (``fr_FR`` then ``fr``)."""
    candidates: list[str] = []
    if locale:
        candidates.append(locale)
        language = locale.split("_", 1)[0].split("-", 1)[0]
        if language and language != locale:
            candidates.append(language)
    return candidates


def localized_description(entry: dict[str, Any], locale: str) -> str:
    for candidate in locale_candidates(locale):
        value = entry.get(f"i18n_desc[{candidate}]")
        if isinstance(value, str) and value:
            return value
    return _as_str(entry.get("i18n_desc"))


def _validate_entry(entry: Any, index: int, schema: DomainSchema) -> None:
    validator = _load_schema_validator()
    try:
        validator.validate(entry)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise CatalogCorruptError(
            f"Invalid {schema.name} profile at index {index}{where}: {exc.message}"
        ) from exc


def parse_profile(entry: dict[str, Any], schema: DomainSchema, locale: str) -> Profile:
    # A string or a missing key means the scripts handle packages themselves.
    raw_packages = entry.get("packages")
    packages = None if raw_packages is None or isinstance(raw_packages, str) else _as_str_tuple(raw_packages)

    whitelist: dict[str, tuple[str, ...]] = {}
    blacklist: dict[str, tuple[str, ...]] = {}
    for spec in schema.fields:
        whitelist[spec.attribute] = _as_str_tuple(entry.get(spec.whitelist_key))
        blacklist[spec.attribute] = _as_str_tuple(entry.get(spec.blacklist_key))

    return Profile(
        codename=_as_str(entry.get("codename")),
        domain=schema.name,
        i18n_desc=localized_description(entry, locale),
        icon_name=_as_str(entry.get("icon_name"), DEFAULT_ICON_NAME),
        license=_as_str(entry.get("license"), DEFAULT_LICENSE),
        rules=MatchRules(whitelist=whitelist, blacklist=blacklist),
        packages=packages,
        check_script=_as_str(entry.get("check_script"), DEFAULT_CHECK_SCRIPT),
        install_script=_optional_script(entry.get("install_script")),
        remove_script=_optional_script(entry.get("remove_script")),
        experimental=_as_bool(entry.get("experimental")),
        removable=_as_bool(entry.get("removable")),
        veiled=_as_bool(entry.get("veiled")),
        priority=_as_i32(entry.get("priority")),
    )


def parse_catalog(document: Any, schema: DomainSchema, locale: str) -> tuple[Profile, ...]:
    """Build the priority-ordered catalog for one domain from decoded JSON.

    A document without a ``profiles`` array yields an empty catalog. A single
    entry that breaks a structural invariant (not an object, or a ``packages``
    value that is neither string nor array) aborts the whole parse with
    :class:`CatalogCorruptError`.
    """
    if not isinstance(document, dict):
        return ()
    entries = document.get("profiles")
    if not isinstance(entries, list):
        return ()

    profiles: list[Profile] = []
    for index, entry in enumerate(entries):
        _validate_entry(entry, index, schema)
        profiles.append(parse_profile(entry, schema, locale))
        profiles.sort(key=lambda p: p.priority)

    LOGGER.debug("Parsed %d %s profiles", len(profiles), schema.name)
    return tuple(profiles)


def parse_catalog_text(raw: str, schema: DomainSchema, locale: str) -> tuple[Profile, ...]:
    try:
        document = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CatalogCorruptError(f"{schema.name} catalog is not valid JSON: {exc}") from exc
    return parse_catalog(document, schema, locale)


def find_profile(codename: str, profiles: tuple[Profile, ...] | list[Profile]) -> Profile | None:
    return next((profile for profile in profiles if profile.codename == codename), None)
