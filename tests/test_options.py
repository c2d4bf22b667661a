import json
from pathlib import Path

import pytest
from conftest import write_file

from spm_publish.errors import ConfigurationError
from spm_publish.options import (
    DISTRIBUTION_URL_NOT_SET,
    ENV_SWIFT_PACKAGE_DISTRIBUTION_URL,
    BuildVariant,
    ProjectLayout,
    PublicationOptions,
    capitalized,
    load_config_file,
    resolve_distribution_url,
)


def test_distribution_url_defaults_to_sentinel() -> None:
    assert resolve_distribution_url(None, {}) == DISTRIBUTION_URL_NOT_SET == "distribution_url_not_set"
    assert resolve_distribution_url(None, {ENV_SWIFT_PACKAGE_DISTRIBUTION_URL: ""}) == DISTRIBUTION_URL_NOT_SET


def test_distribution_url_from_environment_and_explicit_value() -> None:
    environ = {ENV_SWIFT_PACKAGE_DISTRIBUTION_URL: "https://env.example.com"}
    assert resolve_distribution_url(None, environ) == "https://env.example.com"
    assert resolve_distribution_url("https://cli.example.com", environ) == "https://cli.example.com"


def test_distribution_url_reads_process_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(ENV_SWIFT_PACKAGE_DISTRIBUTION_URL, "https://process.example.com")
    assert resolve_distribution_url() == "https://process.example.com"


def test_build_variant_parse() -> None:
    assert BuildVariant.parse("Release") is BuildVariant.RELEASE
    assert BuildVariant.DEBUG.title == "Debug"
    with pytest.raises(ConfigurationError, match="profile"):
        BuildVariant.parse("profile")


def test_capitalized_only_touches_first_character() -> None:
    assert capitalized("myLib") == "MyLib"
    assert capitalized("") == ""


def test_project_layout_directories(tmp_path: Path) -> None:
    layout = ProjectLayout(name="library", version="0.1", project_dir=tmp_path)

    assert layout.build_dir == tmp_path / "build"
    assert layout.swift_package_build_dir == tmp_path / "build" / "swiftpackages"
    assert layout.consumer_dir == tmp_path / "swiftpackages"
    assert layout.xcframework_output_dir(BuildVariant.DEBUG) == tmp_path / "build" / "XCFrameworks" / "debug"
    assert layout.assemble_task_name(BuildVariant.DEBUG) == "assembleLibraryDebugXCFramework"
    assert layout.archive_path(BuildVariant.RELEASE) == tmp_path / "build" / "swiftpackages" / "library-release-0.1.zip"


def test_project_layout_custom_build_dir(tmp_path: Path) -> None:
    relative = ProjectLayout(name="library", version="0.1", project_dir=tmp_path, build_dir=Path("out"))
    absolute = ProjectLayout(name="library", version="0.1", project_dir=tmp_path, build_dir=tmp_path / "abs")
    assert relative.build_dir == tmp_path / "out"
    assert absolute.build_dir == tmp_path / "abs"


def test_project_layout_requires_name_and_version(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        ProjectLayout(name="", version="0.1", project_dir=tmp_path)
    with pytest.raises(ConfigurationError):
        ProjectLayout(name="library", version="", project_dir=tmp_path)


def test_publication_options_validation() -> None:
    options = PublicationOptions()
    assert options.swift_version == "5.9"
    assert options.distribution_url == DISTRIBUTION_URL_NOT_SET
    assert options.platform_tags[0] == ".iOS(.v17)"
    with pytest.raises(ConfigurationError, match="checksum backend"):
        PublicationOptions(checksum_backend="md5")
    with pytest.raises(ConfigurationError):
        PublicationOptions(swift_version="")


def test_load_config_file(tmp_path: Path) -> None:
    config = {"name": "mylib", "version": "2.0", "platforms": {"ios": {"targets": ["ios_arm64"], "version": "16"}}}
    path = write_file(tmp_path / "spm-publish.json", json.dumps(config))
    assert load_config_file(path) == config


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"nmae": "typo"}'])
def test_load_config_file_rejects_bad_content(tmp_path: Path, content: str) -> None:
    path = write_file(tmp_path / "spm-publish.json", content)
    with pytest.raises(ConfigurationError):
        load_config_file(path)
