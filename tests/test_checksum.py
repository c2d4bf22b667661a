import hashlib
import sys
from pathlib import Path

import pytest
from conftest import FakeRunner, write_file

from spm_publish.checksum import (
    ChecksumComputer,
    Sha256Checksum,
    SubprocessRunner,
    make_checksum_computer,
    write_checksum_file,
)
from spm_publish.errors import ConfigurationError, EmptyResultError, ExternalCommandError


@pytest.fixture
def archive(tmp_path: Path) -> Path:
    return write_file(tmp_path / "swiftpackages" / "mylib-release-2.0.zip", "zip bytes")


def test_compute_checksum_runs_swift_in_archive_directory(archive: Path) -> None:
    runner = FakeRunner(output="  3f1a9c\n")
    checksum = ChecksumComputer(runner).compute_checksum(archive)

    assert checksum == "3f1a9c"
    assert runner.calls == [(["swift", "package", "compute-checksum", "mylib-release-2.0.zip"], archive.parent)]


def test_missing_archive_fails_before_spawning(tmp_path: Path) -> None:
    runner = FakeRunner(output="abc")
    with pytest.raises(FileNotFoundError):
        ChecksumComputer(runner).compute_checksum(tmp_path / "missing.zip")
    assert runner.calls == []


def test_blank_output_is_an_error(archive: Path) -> None:
    with pytest.raises(EmptyResultError):
        ChecksumComputer(FakeRunner(output=" \n\t")).compute_checksum(archive)


def test_tool_failure_propagates(archive: Path) -> None:
    error = ExternalCommandError(["swift"], "exited with 1")
    with pytest.raises(ExternalCommandError):
        ChecksumComputer(FakeRunner(error=error)).compute_checksum(archive)


def test_sha256_backend_matches_hashlib(archive: Path) -> None:
    assert Sha256Checksum().compute_checksum(archive) == hashlib.sha256(b"zip bytes").hexdigest()


def test_sha256_backend_requires_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        Sha256Checksum().compute_checksum(tmp_path / "missing.zip")


def test_make_checksum_computer() -> None:
    assert isinstance(make_checksum_computer("sha256"), Sha256Checksum)
    swift = make_checksum_computer("swift", timeout=12)
    assert isinstance(swift, ChecksumComputer)
    assert swift.runner.timeout == 12
    with pytest.raises(ConfigurationError):
        make_checksum_computer("md5")


def test_write_checksum_file(archive: Path) -> None:
    checksum_file = write_checksum_file(archive, "abc123")
    assert checksum_file.name == "mylib-release-2.0.zip.sha256"
    assert checksum_file.read_text() == "abc123  mylib-release-2.0.zip\n"


def test_write_checksum_file_replaces_previous_digest(archive: Path) -> None:
    write_checksum_file(archive, "old")
    checksum_file = write_checksum_file(archive, "new")

    assert checksum_file.read_text() == "new  mylib-release-2.0.zip\n"
    assert sorted(p.name for p in archive.parent.iterdir()) == [archive.name, checksum_file.name]


def test_subprocess_runner_captures_stdout(tmp_path: Path) -> None:
    output = SubprocessRunner().run([sys.executable, "-c", "import os; print(os.getcwd())"], cwd=tmp_path)
    assert Path(output.strip()).resolve() == tmp_path.resolve()


def test_subprocess_runner_reports_exit_status(tmp_path: Path) -> None:
    args = [sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(3)"]
    with pytest.raises(ExternalCommandError, match="exited with 3: boom"):
        SubprocessRunner().run(args, cwd=tmp_path)


def test_subprocess_runner_times_out(tmp_path: Path) -> None:
    with pytest.raises(ExternalCommandError, match="timed out"):
        SubprocessRunner(timeout=0.2).run([sys.executable, "-c", "import time; time.sleep(10)"], cwd=tmp_path)


def test_subprocess_runner_missing_executable(tmp_path: Path) -> None:
    with pytest.raises(ExternalCommandError, match="not found"):
        SubprocessRunner().run(["definitely-not-a-real-tool-xyz"], cwd=tmp_path)
