"""
Apple platform targets for the multiplatform library build.

A PlatformTargetSet holds four groups (iOS, watchOS, macOS, tvOS). Each group is a
list of Kotlin/Native compile targets plus the minimum OS version declared in the
generated Package.swift. The set is validated when it is built and never changes.
"""

import enum
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .errors import ConfigurationError, UnsupportedTargetError


class AppleFamily(enum.Enum):
    """OS families, in the order they are rendered."""

    IOS = "iOS"
    WATCHOS = "watchOS"
    MACOS = "macOS"
    TVOS = "tvOS"

    @property
    def key(self) -> str:
        return self.name.lower()


# Compile target -> (family, Kotlin preset function used to declare it)
KNOWN_TARGETS: dict[str, tuple[AppleFamily, str]] = {
    "ios_arm64": (AppleFamily.IOS, "iosArm64"),
    "ios_x64": (AppleFamily.IOS, "iosX64"),
    "ios_simulator_arm64": (AppleFamily.IOS, "iosSimulatorArm64"),
    "watchos_arm32": (AppleFamily.WATCHOS, "watchosArm32"),
    "watchos_arm64": (AppleFamily.WATCHOS, "watchosArm64"),
    "watchos_device_arm64": (AppleFamily.WATCHOS, "watchosDeviceArm64"),
    "watchos_simulator_arm64": (AppleFamily.WATCHOS, "watchosSimulatorArm64"),
    "watchos_x64": (AppleFamily.WATCHOS, "watchosX64"),
    "macos_arm64": (AppleFamily.MACOS, "macosArm64"),
    "macos_x64": (AppleFamily.MACOS, "macosX64"),
    "tvos_arm64": (AppleFamily.TVOS, "tvosArm64"),
    "tvos_simulator_arm64": (AppleFamily.TVOS, "tvosSimulatorArm64"),
    "tvos_x64": (AppleFamily.TVOS, "tvosX64"),
}


def target_family(target: str) -> AppleFamily | None:
    """Return the OS family of a compile target, or None if the target is unknown."""
    entry = KNOWN_TARGETS.get(target)
    return entry[0] if entry else None


def preset_resolver(target: str) -> str | None:
    """Default resolver: compile target -> Kotlin preset function name."""
    entry = KNOWN_TARGETS.get(target)
    return entry[1] if entry else None


@dataclass(frozen=True)
class TargetGroup:
    """Compile targets of one OS family and the minimum version they support."""

    targets: tuple[str, ...] = ()
    version: str = ""

    def __post_init__(self) -> None:
        # Accept any iterable (lists from JSON) but store a tuple
        object.__setattr__(self, "targets", tuple(self.targets))

    def is_empty(self) -> bool:
        return not self.targets


@dataclass(frozen=True)
class PlatformTargetSet:
    """Validated set of Apple targets grouped by OS family."""

    ios: TargetGroup = field(default_factory=TargetGroup)
    watchos: TargetGroup = field(default_factory=TargetGroup)
    macos: TargetGroup = field(default_factory=TargetGroup)
    tvos: TargetGroup = field(default_factory=TargetGroup)

    def __post_init__(self) -> None:
        self.validate()

    def groups(self) -> list[tuple[AppleFamily, TargetGroup]]:
        """Groups in fixed render order: iOS, watchOS, macOS, tvOS."""
        return [
            (AppleFamily.IOS, self.ios),
            (AppleFamily.WATCHOS, self.watchos),
            (AppleFamily.MACOS, self.macos),
            (AppleFamily.TVOS, self.tvos),
        ]

    def validate(self) -> None:
        """
        Check family membership of every group, then that at least one group is set.

        Raises:
            ConfigurationError: listing the offending targets and the expected family,
                or when every group is empty
        """
        problems = []
        for family, group in self.groups():
            invalid = [target for target in group.targets if target_family(target) is not family]
            if invalid:
                problems.append(
                    f"{family.key} targets {list(group.targets)} contain invalid targets: "
                    f"{', '.join(invalid)}. Expected family: {family.value}."
                )
            if group.targets and not group.version.strip():
                problems.append(f"{family.key} targets {list(group.targets)} need a minimum {family.value} version.")
        if problems:
            raise ConfigurationError(" ".join(problems))

        if all(group.is_empty() for _family, group in self.groups()):
            raise ConfigurationError(
                "At least one of the target lists (ios, watchos, macos, tvos) should have an item."
            )

    def resolve_native_targets(self, resolver: Callable[[str], Any | None] = preset_resolver) -> list[Any]:
        """
        Map every compile target to a concrete toolchain target.

        Args:
            resolver: Lookup returning the concrete target, or None when unsupported

        Returns:
            Concrete targets for iOS, watchOS, macOS and tvOS, concatenated in that order

        Raises:
            UnsupportedTargetError: for the first target the resolver cannot map
        """
        resolved = []
        for _family, group in self.groups():
            for target in group.targets:
                native = resolver(target)
                if native is None:
                    raise UnsupportedTargetError(target)
                resolved.append(native)
        return resolved

    def render_platform_version_tags(self) -> list[str]:
        """Platform declarations for Package.swift, e.g. ['.iOS(.v17)', '.macOS(.v14)']."""
        return [f".{family.value}(.v{group.version})" for family, group in self.groups() if not group.is_empty()]

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {
            family.key: {"targets": list(group.targets), "version": group.version} for family, group in self.groups()
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PlatformTargetSet":
        """
        Build a set from a JSON-style mapping.

        Keys are family names (ios, watchos, macos, tvos); each value holds "targets"
        and "version". Missing families are empty; a missing version falls back to
        the family's default from DEFAULT_PLATFORMS.
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError("'platforms' must be an object keyed by family (ios, watchos, macos, tvos)")
        defaults = dict(DEFAULT_PLATFORMS.groups())
        known = {family.key for family in AppleFamily}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown platform families: {', '.join(unknown)}")

        groups = {}
        for key, value in data.items():
            if not isinstance(value, Mapping):
                raise ConfigurationError(f"Platform entry '{key}' must be an object with 'targets' and 'version'")
            targets = value.get("targets", [])
            if isinstance(targets, str) or not isinstance(targets, Iterable):
                raise ConfigurationError(f"Platform entry '{key}': 'targets' must be a list")
            version = value.get("version")
            if version is None:
                version = defaults[AppleFamily[key.upper()]].version
            groups[key] = TargetGroup(tuple(targets), str(version))
        return cls(**groups)


def framework_base_name(project_name: str) -> str:
    """Base name of the framework inside the XCFramework (lowercased project name)."""
    return project_name.lower()


DEFAULT_PLATFORMS = PlatformTargetSet(
    ios=TargetGroup(("ios_x64", "ios_arm64", "ios_simulator_arm64"), "17"),
    watchos=TargetGroup(("watchos_arm32", "watchos_arm64", "watchos_simulator_arm64"), "10"),
    macos=TargetGroup(("macos_arm64", "macos_x64"), "14"),
    tvos=TargetGroup(("tvos_x64", "tvos_arm64", "tvos_simulator_arm64"), "17"),
)
