from dataclasses import dataclass, replace

from hwprofilectl.core.device_match import available_profiles, group_by_class, match_devices, profile_matches
from hwprofilectl.core.model import DomainSchema, FieldSpec, MatchRules, Profile
from tests.factories import usb_device, usb_profile


def test_wildcard_profile_matches_any_device() -> None:
    assert available_profiles(usb_device(), [usb_profile("any")])


def test_blacklist_wins_over_whitelist() -> None:
    device = usb_device(vendor_id="046d")
    listed = usb_profile("listed", blacklist={"vendor_id": ("046d",)})
    wildcard = usb_profile("wildcard", blacklist={"product_id": ("*",)})
    assert available_profiles(device, [listed, wildcard]) == ()


def test_whitelist_is_conjunction_across_fields() -> None:
    device = usb_device(class_code="03", vendor_id="046d", product_id="c52b")
    both = usb_profile("both", whitelist={"vendor_id": ("046d",), "product_id": ("c52b", "c534")})
    wrong_product = usb_profile("wrong", whitelist={"vendor_id": ("046d",), "product_id": ("c534",)})
    result = available_profiles(device, [both, wrong_product])
    assert [p.codename for p in result] == ["both"]


def test_empty_whitelist_never_matches() -> None:
    profile = usb_profile("empty", whitelist={"class_code": ()})
    assert available_profiles(usb_device(), [profile]) == ()


def test_result_preserves_catalog_order() -> None:
    catalog = [usb_profile("first", priority=1), usb_profile("second", priority=2), usb_profile("third", priority=2)]
    result = available_profiles(usb_device(), catalog)
    assert [p.codename for p in result] == ["first", "second", "third"]


def test_profile_from_other_domain_is_ignored() -> None:
    profile = usb_profile("other")
    bt_profile = replace(profile, domain="bluetooth")
    assert available_profiles(usb_device(), [bt_profile]) == ()


def test_profile_matches_without_fields_is_false() -> None:
    assert profile_matches([]) is False


def test_match_devices_records_empty_result() -> None:
    matching = usb_device(class_code="03", busid="1-1")
    other = usb_device(class_code="09", busid="1-2")
    catalog = [usb_profile("hid", whitelist={"class_code": ("03",)})]

    matched = match_devices([matching, other], catalog)

    assert matched[0].codenames == ["hid"]
    assert matched[1].device is other
    assert matched[1].profiles == ()


def test_group_by_class() -> None:
    devices = [usb_device(class_code="03", busid="1-1"), usb_device(class_code="09", busid="1-2"), usb_device(class_code="03", busid="1-3")]
    groups = group_by_class(match_devices(devices, []))
    assert sorted(groups) == ["03", "09"]
    assert [m.device.sysfs_busid for m in groups["03"]] == ["1-1", "1-3"]


@dataclass(frozen=True)
class _ClassOnlyDevice:
    class_id: str
    domain = "classonly"


def test_engine_is_generic_over_schema() -> None:
    schema = DomainSchema(
        name="classonly",
        cache_file="classonly.json",
        fields=(FieldSpec("class_id", "class_ids", "blacklisted_class_ids"),),
    )
    profile = Profile(
        codename="p",
        domain="classonly",
        i18n_desc="",
        icon_name="",
        license="",
        rules=MatchRules(whitelist={"class_id": ("0102",)}, blacklist={"class_id": ()}),
        packages=None,
        check_script="false",
        install_script=None,
        remove_script=None,
    )
    assert available_profiles(_ClassOnlyDevice("0102"), [profile], schema) == (profile,)
    assert available_profiles(_ClassOnlyDevice("0300"), [profile], schema) == ()
