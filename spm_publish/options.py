"""
Publication options and the project directory layout.

Options are resolved once at start-up (command line, then config file, then
environment) and passed down; nothing below this module reads the environment.
"""

import enum
import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .archive import derive_archive_file_name
from .checksum import CHECKSUM_BACKENDS, DEFAULT_TIMEOUT_SECONDS
from .errors import ConfigurationError
from .platforms import DEFAULT_PLATFORMS, PlatformTargetSet

ENV_SWIFT_PACKAGE_DISTRIBUTION_URL = "SWIFT_PACKAGE_DISTRIBUTION_URL"
DISTRIBUTION_URL_NOT_SET = "distribution_url_not_set"
DEFAULT_SWIFT_VERSION = "5.9"

SWIFT_PACKAGE_BUILD_PATH = "swiftpackages"
XCFRAMEWORK_BUILD_PATH = "XCFrameworks"

CONFIG_KEYS = {"name", "version", "buildDir", "swiftVersion", "distributionUrl", "checksumBackend", "platforms"}


class BuildVariant(enum.Enum):
    """Native build types; every variant gets its own set of tasks."""

    DEBUG = "debug"
    RELEASE = "release"

    @property
    def title(self) -> str:
        return capitalized(self.value)

    @classmethod
    def parse(cls, name: str) -> "BuildVariant":
        try:
            return cls(name.lower())
        except ValueError:
            choices = ", ".join(v.value for v in cls)
            raise ConfigurationError(f"Unknown build variant '{name}' (expected one of: {choices})") from None


def capitalized(name: str) -> str:
    """Uppercase the first character only: "myLib" -> "MyLib"."""
    return name[:1].upper() + name[1:]


def resolve_distribution_url(explicit: str | None = None, environ: Mapping[str, str] | None = None) -> str:
    """
    Distribution base URL for remote packages.

    An explicit value wins, then $SWIFT_PACKAGE_DISTRIBUTION_URL. When neither is set
    the sentinel "distribution_url_not_set" is returned so the misconfiguration shows
    up in the generated Package.swift instead of failing the build. An empty variable
    counts as unset and also yields the sentinel, since an empty base URL would
    produce a relative "/<zip>" url.
    """
    if explicit:
        return explicit
    if environ is None:
        environ = os.environ
    return environ.get(ENV_SWIFT_PACKAGE_DISTRIBUTION_URL) or DISTRIBUTION_URL_NOT_SET


@dataclass(frozen=True)
class PublicationOptions:
    platforms: PlatformTargetSet = DEFAULT_PLATFORMS
    swift_version: str = DEFAULT_SWIFT_VERSION
    distribution_url: str = DISTRIBUTION_URL_NOT_SET
    checksum_backend: str = "swift"
    checksum_timeout: float | None = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if self.checksum_backend not in CHECKSUM_BACKENDS:
            raise ConfigurationError(
                f"Unknown checksum backend '{self.checksum_backend}' (expected one of: {', '.join(CHECKSUM_BACKENDS)})"
            )
        if not self.swift_version:
            raise ConfigurationError("Swift tools version must not be empty")

    @property
    def platform_tags(self) -> list[str]:
        return self.platforms.render_platform_version_tags()


@dataclass(frozen=True)
class ProjectLayout:
    """Where the build puts XCFrameworks and where Swift packages are written."""

    name: str
    version: str
    project_dir: Path = field(default_factory=Path.cwd)
    build_dir: Path | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("Project name must not be empty")
        if not self.version:
            raise ConfigurationError("Project version must not be empty")
        project_dir = Path(self.project_dir)
        object.__setattr__(self, "project_dir", project_dir)
        build_dir = Path(self.build_dir) if self.build_dir is not None else Path("build")
        if not build_dir.is_absolute():
            build_dir = project_dir / build_dir
        object.__setattr__(self, "build_dir", build_dir)

    @property
    def swift_package_build_dir(self) -> Path:
        """<build>/swiftpackages: archives and generated Package.swift."""
        return self.build_dir / SWIFT_PACKAGE_BUILD_PATH

    @property
    def consumer_dir(self) -> Path:
        """<project>/swiftpackages: copy used by local, unpublished consumers."""
        return self.project_dir / SWIFT_PACKAGE_BUILD_PATH

    def xcframework_output_dir(self, variant: BuildVariant) -> Path:
        """<build>/XCFrameworks/<variant>, e.g. build/XCFrameworks/debug."""
        return self.build_dir / XCFRAMEWORK_BUILD_PATH / variant.value

    def assemble_task_name(self, variant: BuildVariant) -> str:
        """Host build task producing the XCFramework, e.g. assembleMyLibraryDebugXCFramework."""
        return f"assemble{capitalized(self.name)}{variant.title}XCFramework"

    def archive_file_name(self, variant: BuildVariant) -> str:
        return derive_archive_file_name(self.name, variant, self.version)

    def archive_path(self, variant: BuildVariant) -> Path:
        return self.swift_package_build_dir / self.archive_file_name(variant)


def load_config_file(path: Path | str) -> dict[str, Any]:
    """
    Read a JSON config file.

    Recognized keys: name, version, buildDir, swiftVersion, distributionUrl,
    checksumBackend, platforms (see PlatformTargetSet.from_dict).
    """
    path = Path(path)
    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")
    unknown = sorted(set(data) - CONFIG_KEYS)
    if unknown:
        raise ConfigurationError(f"Unknown keys in config file {path}: {', '.join(unknown)}")
    return data
