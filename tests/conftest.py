from pathlib import Path

import pytest

from spm_publish.options import BuildVariant, ProjectLayout


class FakeRunner:
    """CommandRunner that records calls instead of spawning processes."""

    def __init__(self, output: str = "", error: Exception | None = None, side_effect=None):
        self.output = output
        self.error = error
        self.side_effect = side_effect
        self.calls: list[tuple[list[str], Path]] = []

    def run(self, args: list[str], cwd: Path) -> str:
        self.calls.append((list(args), Path(cwd)))
        if self.side_effect is not None:
            self.side_effect(args, cwd)
        if self.error is not None:
            raise self.error
        return self.output


def write_file(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def make_xcframework(layout: ProjectLayout, variant: BuildVariant) -> Path:
    """Lay out a small XCFramework where the host build would put it."""
    root = layout.xcframework_output_dir(variant) / f"{layout.name}.xcframework"
    write_file(root / "Info.plist", f"<plist>{variant.value}</plist>\n")
    write_file(root / "ios-arm64" / f"{layout.name}.framework" / layout.name, f"binary {variant.value}\n")
    write_file(root / "macos-arm64_x86_64" / f"{layout.name}.framework" / "Headers" / f"{layout.name}.h", "// h\n")
    return layout.xcframework_output_dir(variant)


@pytest.fixture
def layout(tmp_path: Path) -> ProjectLayout:
    return ProjectLayout(name="mylib", version="2.0", project_dir=tmp_path)


@pytest.fixture
def assembled(layout: ProjectLayout) -> ProjectLayout:
    for variant in BuildVariant:
        make_xcframework(layout, variant)
    return layout
