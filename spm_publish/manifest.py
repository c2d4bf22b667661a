"""
Package.swift generation.

A PackageDescriptor is either LOCAL (the binary target points at the zip next to
Package.swift) or REMOTE (it points at the distribution URL and carries the zip
checksum). Both kinds render the same template; the descriptor only decides which
fields the template receives.

Template syntax:
    ${field}          replaced with the field value (string.Template)
    %if field         keep the following lines only when the field is truthy
    %else / %end      close or invert the current %if block
"""

import enum
from dataclasses import dataclass
from pathlib import Path
from string import Template
from typing import Any, TextIO

from .archive import atomic_output, output_lock
from .errors import ConfigurationError, TemplateRenderError

PACKAGE_FILE_NAME = "Package.swift"
DEFAULT_TEMPLATE = Path(__file__).parent / "templates" / f"{PACKAGE_FILE_NAME}.template"


class DescriptorKind(enum.Enum):
    LOCAL = "local"
    REMOTE = "remote"


@dataclass(frozen=True)
class PackageDescriptor:
    """Everything needed to render one Package.swift."""

    kind: DescriptorKind
    package_name: str
    zip_file_name: str
    platforms: tuple[str, ...]
    swift_version: str
    checksum: str | None = None
    distribution_url: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "platforms", tuple(self.platforms))
        remote_fields = (self.checksum, self.distribution_url)
        if self.kind is DescriptorKind.REMOTE and None in remote_fields:
            raise ConfigurationError("Remote Swift package descriptors need a checksum and a distribution URL")
        if self.kind is DescriptorKind.LOCAL and remote_fields != (None, None):
            raise ConfigurationError("Local Swift package descriptors cannot carry a checksum or distribution URL")

    @property
    def is_local(self) -> bool:
        return self.kind is DescriptorKind.LOCAL

    @property
    def url(self) -> str | None:
        if self.distribution_url is None:
            return None
        return f"{self.distribution_url}/{self.zip_file_name}"

    def template_fields(self) -> dict[str, Any]:
        """Field values handed to the template."""
        fields: dict[str, Any] = {
            "toolsVersion": self.swift_version,
            "name": self.package_name,
            "zipName": self.zip_file_name,
            "platforms": ", ".join(self.platforms),
            "isLocal": self.is_local,
        }
        if self.kind is DescriptorKind.REMOTE:
            fields["checksum"] = self.checksum
            fields["url"] = self.url
        return fields

    def render(self, template_source: Path | str = DEFAULT_TEMPLATE) -> str:
        """Render Package.swift content from the template file."""
        template_path = Path(template_source)
        try:
            text = template_path.read_text(encoding="utf-8")
        except OSError as e:
            raise TemplateRenderError(template_path, f"cannot read template ({e})") from e
        return render_template(text, self.template_fields(), template_path)

    def write_to(self, sink: TextIO, template_source: Path | str = DEFAULT_TEMPLATE) -> None:
        """Render, then write the whole content to `sink` in one call."""
        content = self.render(template_source)
        sink.write(content)


def local_descriptor(
    *, package_name: str, zip_file_name: str, platforms: list[str], swift_version: str
) -> PackageDescriptor:
    """Descriptor for a package consumed from the local file system."""
    return PackageDescriptor(
        kind=DescriptorKind.LOCAL,
        package_name=package_name,
        zip_file_name=zip_file_name,
        platforms=tuple(platforms),
        swift_version=swift_version,
    )


def remote_descriptor(
    *,
    package_name: str,
    zip_file_name: str,
    platforms: list[str],
    swift_version: str,
    checksum: str,
    distribution_url: str,
) -> PackageDescriptor:
    """Descriptor for a package downloaded from `distribution_url`."""
    return PackageDescriptor(
        kind=DescriptorKind.REMOTE,
        package_name=package_name,
        zip_file_name=zip_file_name,
        platforms=tuple(platforms),
        swift_version=swift_version,
        checksum=checksum,
        distribution_url=distribution_url,
    )


def _format_value(value: Any) -> str:
    # Swift spells booleans in lowercase
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def render_template(text: str, fields: dict[str, Any], template_path: object = "<string>") -> str:
    """
    Render template text with the given fields.

    Raises:
        TemplateRenderError: on malformed directives, unknown or missing fields, or
            when nothing is rendered
    """
    lines = []
    active = True
    # (active before the block, condition value, %else seen)
    blocks: list[tuple[bool, bool, bool]] = []

    for lineno, line in enumerate(text.splitlines(keepends=True), 1):
        stripped = line.strip()
        if not stripped.startswith("%"):
            if active:
                lines.append(line)
            continue

        parts = stripped[1:].split()
        directive = parts[0] if parts else ""
        if directive == "if" and len(parts) == 2:
            name = parts[1]
            if name not in fields:
                raise TemplateRenderError(template_path, f"line {lineno}: unknown field '{name}' in %if")
            condition = bool(fields[name])
            blocks.append((active, condition, False))
            active = active and condition
        elif directive == "else" and len(parts) == 1 and blocks and not blocks[-1][2]:
            parent, condition, _ = blocks.pop()
            blocks.append((parent, condition, True))
            active = parent and not condition
        elif directive == "end" and len(parts) == 1 and blocks:
            active = blocks.pop()[0]
        else:
            raise TemplateRenderError(template_path, f"line {lineno}: unexpected directive '{stripped}'")

    if blocks:
        raise TemplateRenderError(template_path, "unterminated %if block")

    values = {name: _format_value(value) for name, value in fields.items()}
    try:
        rendered = Template("".join(lines)).substitute(values)
    except KeyError as e:
        raise TemplateRenderError(template_path, f"no value for field '{e.args[0]}'") from e
    except ValueError as e:
        raise TemplateRenderError(template_path, str(e)) from e

    if not rendered.strip():
        raise TemplateRenderError(template_path, "template rendered no content")
    return rendered


def write_package_file(
    descriptor: PackageDescriptor, directory: Path | str, template_source: Path | str = DEFAULT_TEMPLATE
) -> Path:
    """
    Render `descriptor` and write it to `directory/Package.swift`.

    The file is replaced atomically, so an I/O failure leaves the previous content.
    """
    if not descriptor.platforms:
        print(f"  ⚠️  Warning: {descriptor.package_name} declares no platforms; SwiftPM cannot use this package")

    content = descriptor.render(template_source)
    package_file = Path(directory) / PACKAGE_FILE_NAME
    with output_lock(package_file), atomic_output(package_file) as tmp_path:
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(content)
    return package_file
