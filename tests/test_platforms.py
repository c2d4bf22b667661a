import dataclasses

import pytest

from spm_publish.errors import ConfigurationError, UnsupportedTargetError
from spm_publish.platforms import (
    DEFAULT_PLATFORMS,
    AppleFamily,
    PlatformTargetSet,
    TargetGroup,
    framework_base_name,
    preset_resolver,
    target_family,
)


def test_default_platform_tags() -> None:
    assert DEFAULT_PLATFORMS.render_platform_version_tags() == [
        ".iOS(.v17)",
        ".watchOS(.v10)",
        ".macOS(.v14)",
        ".tvOS(.v17)",
    ]


def test_validate_accepts_consistent_groups() -> None:
    targets = PlatformTargetSet(ios=TargetGroup(("ios_arm64", "ios_simulator_arm64"), "16"))
    targets.validate()


def test_validate_names_every_offending_target() -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        PlatformTargetSet(
            ios=TargetGroup(("ios_arm64", "macos_x64", "tvos_arm64"), "17"),
            watchos=TargetGroup(("ios_x64",), "10"),
        )
    message = str(excinfo.value)
    assert "macos_x64" in message
    assert "tvos_arm64" in message
    assert "ios_x64" in message
    assert "Expected family: iOS" in message
    assert "Expected family: watchOS" in message


def test_validate_rejects_unknown_target() -> None:
    with pytest.raises(ConfigurationError, match="linux_x64"):
        PlatformTargetSet(macos=TargetGroup(("macos_arm64", "linux_x64"), "14"))


def test_validate_rejects_all_empty_groups() -> None:
    with pytest.raises(ConfigurationError, match="At least one"):
        PlatformTargetSet()


def test_tags_follow_fixed_order_and_skip_empty_groups() -> None:
    targets = PlatformTargetSet(
        tvos=TargetGroup(("tvos_arm64",), "16"),
        macos=TargetGroup(("macos_x64",), "13"),
        ios=TargetGroup(("ios_arm64",), "15"),
    )
    assert targets.render_platform_version_tags() == [".iOS(.v15)", ".macOS(.v13)", ".tvOS(.v16)"]


def test_resolve_native_targets_keeps_group_order() -> None:
    assert DEFAULT_PLATFORMS.resolve_native_targets(preset_resolver) == [
        "iosX64",
        "iosArm64",
        "iosSimulatorArm64",
        "watchosArm32",
        "watchosArm64",
        "watchosSimulatorArm64",
        "macosArm64",
        "macosX64",
        "tvosX64",
        "tvosArm64",
        "tvosSimulatorArm64",
    ]


def test_resolve_native_targets_reports_unmapped_target() -> None:
    def resolver(target: str) -> str | None:
        return None if target == "macos_x64" else target.upper()

    with pytest.raises(UnsupportedTargetError) as excinfo:
        DEFAULT_PLATFORMS.resolve_native_targets(resolver)
    assert excinfo.value.target == "macos_x64"
    assert "macos_x64" in str(excinfo.value)


def test_target_family_lookup() -> None:
    assert target_family("watchos_device_arm64") is AppleFamily.WATCHOS
    assert target_family("android_arm64") is None


def test_platform_set_is_immutable() -> None:
    with pytest.raises(dataclasses.FrozenInstanceError):
        DEFAULT_PLATFORMS.ios = TargetGroup()  # type: ignore[misc]


def test_from_dict_fills_missing_groups() -> None:
    targets = PlatformTargetSet.from_dict({"macos": {"targets": ["macos_arm64"], "version": "14"}})
    assert targets.ios.is_empty()
    assert targets.macos.targets == ("macos_arm64",)
    assert targets.render_platform_version_tags() == [".macOS(.v14)"]


def test_from_dict_uses_family_default_version() -> None:
    targets = PlatformTargetSet.from_dict({"ios": {"targets": ["ios_arm64"]}, "tvos": {"targets": ["tvos_arm64"]}})
    assert targets.render_platform_version_tags() == [".iOS(.v17)", ".tvOS(.v17)"]


def test_targets_without_version_are_rejected() -> None:
    with pytest.raises(ConfigurationError, match="minimum watchOS version"):
        PlatformTargetSet(watchos=TargetGroup(("watchos_arm64",), " "))


def test_from_dict_round_trips_default() -> None:
    assert PlatformTargetSet.from_dict(DEFAULT_PLATFORMS.to_dict()) == DEFAULT_PLATFORMS


@pytest.mark.parametrize(
    "data",
    [
        {"android": {"targets": ["android_arm64"], "version": "21"}},
        {"ios": ["ios_arm64"]},
        {"ios": {"targets": "ios_arm64", "version": "17"}},
        {"ios": {"targets": ["ios_arm64"], "version": ""}},
        5,
        ["ios"],
    ],
)
def test_from_dict_rejects_malformed_entries(data: object) -> None:
    with pytest.raises(ConfigurationError):
        PlatformTargetSet.from_dict(data)


def test_framework_base_name_is_lowercase() -> None:
    assert framework_base_name("MyLibrary") == "mylibrary"
