"""
Swift Package Manager publication for multiplatform library builds.

This package provides tools for:
- Declaring the Apple targets a library is built for
- Zipping the XCFramework of each build variant
- Computing the checksum SwiftPM verifies for remote binary targets
- Generating local and remote Package.swift files
- Running these steps per build variant as a small task graph

Main modules:
- platforms: Apple target groups, validation and platform versions
- archive: Archive naming, packaging and the local consumer copy
- checksum: `swift package compute-checksum` and SHA-256 checksums
- manifest: Package.swift descriptors and template rendering
- pipeline: Per-variant tasks and multi-variant runs
- cli: The spm-publish command
"""

from .cli import main
from .errors import (
    ConfigurationError,
    EmptyResultError,
    ExternalCommandError,
    PublishError,
    TemplateRenderError,
    UnsupportedTargetError,
)
from .options import BuildVariant, ProjectLayout, PublicationOptions
from .platforms import DEFAULT_PLATFORMS, PlatformTargetSet, TargetGroup

__all__ = [
    "main",
    "BuildVariant",
    "ConfigurationError",
    "DEFAULT_PLATFORMS",
    "EmptyResultError",
    "ExternalCommandError",
    "PlatformTargetSet",
    "ProjectLayout",
    "PublicationOptions",
    "PublishError",
    "TargetGroup",
    "TemplateRenderError",
    "UnsupportedTargetError",
]
