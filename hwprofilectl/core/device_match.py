"""Device-to-profile matching logic shared by every device domain."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from hwprofilectl.core.model import DOMAIN_SCHEMAS, WILDCARD, Device, DomainSchema, MatchedDevice, Profile

FieldTriple = tuple[str, Sequence[str], Sequence[str]]


def _listed(values: Sequence[str], device_value: str) -> bool:
    return WILDCARD in values or device_value in values


def profile_matches(triples: Iterable[FieldTriple]) -> bool:
    """Apply the wildcard/blacklist rules to ``(device value, whitelist, blacklist)`` triples.

    Any blacklist hit rejects the profile outright. Otherwise every whitelist
    must list the device value or the wildcard; an empty whitelist never does.
    """
    triples = list(triples)
    if not triples:
        return False
    if any(_listed(blacklist, value) for value, _, blacklist in triples):
        return False
    return all(_listed(whitelist, value) for value, whitelist, _ in triples)


def field_triples(device: Device, profile: Profile, schema: DomainSchema | None = None) -> list[FieldTriple]:
    schema = schema or DOMAIN_SCHEMAS[device.domain]
    return [
        (
            str(getattr(device, spec.attribute)),
            profile.rules.whitelist.get(spec.attribute, ()),
            profile.rules.blacklist.get(spec.attribute, ()),
        )
        for spec in schema.fields
    ]


def is_available(device: Device, profile: Profile, schema: DomainSchema | None = None) -> bool:
    if profile.domain != device.domain:
        return False
    return profile_matches(field_triples(device, profile, schema))


def available_profiles(
    device: Device,
    catalog: Iterable[Profile],
    schema: DomainSchema | None = None,
) -> tuple[Profile, ...]:
    return tuple(profile for profile in catalog if is_available(device, profile, schema))


def match_devices(devices: Iterable[Device], catalog: Sequence[Profile]) -> list[MatchedDevice]:
    return [
        MatchedDevice(device=device, profiles=available_profiles(device, catalog))
        for device in devices
    ]


def group_by_class(matched: Iterable[MatchedDevice]) -> dict[str, list[MatchedDevice]]:
    groups: dict[str, list[MatchedDevice]] = {}
    for item in matched:
        groups.setdefault(item.device.group_key, []).append(item)
    return groups
