"""
Checksums for packaged Swift package archives.

SwiftPM verifies a remote binary target against the SHA-256 reported by
`swift package compute-checksum`. ChecksumComputer runs that command through a
CommandRunner so tests can substitute the process boundary. Sha256Checksum computes
the same digest in-process for hosts without a Swift toolchain.
"""

import hashlib
import subprocess
from pathlib import Path
from typing import Protocol

from .archive import atomic_output, output_lock
from .errors import ConfigurationError, EmptyResultError, ExternalCommandError

DEFAULT_TIMEOUT_SECONDS = 300.0


class CommandRunner(Protocol):
    def run(self, args: list[str], cwd: Path) -> str: ...


class SubprocessRunner:
    """Run external commands, capturing stdout."""

    def __init__(self, timeout: float | None = DEFAULT_TIMEOUT_SECONDS):
        self.timeout = timeout

    def run(self, args: list[str], cwd: Path) -> str:
        try:
            result = subprocess.run(
                args,
                cwd=cwd,
                check=True,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise ExternalCommandError(args, f"exited with {e.returncode}: {stderr}") from e
        except subprocess.TimeoutExpired as e:
            raise ExternalCommandError(args, f"timed out after {self.timeout}s") from e
        except FileNotFoundError as e:
            raise ExternalCommandError(args, f"executable not found ({e.filename})") from e
        return result.stdout


class ChecksumComputer:
    """Compute archive checksums with `swift package compute-checksum`."""

    def __init__(self, runner: CommandRunner | None = None, executable: str = "swift"):
        self.runner = runner if runner is not None else SubprocessRunner()
        self.executable = executable

    def compute_checksum(self, archive_path: Path | str) -> str:
        """
        Compute the checksum of an archive.

        Args:
            archive_path: Path to the packaged .zip

        Returns:
            The digest printed by the tool, without surrounding whitespace

        Raises:
            FileNotFoundError: If the archive does not exist (nothing is spawned)
            EmptyResultError: If the tool printed nothing
        """
        archive_path = Path(archive_path)
        if not archive_path.is_file():
            raise FileNotFoundError(f"XCFramework zip file not found: {archive_path}")

        # The archive file name, not the package name: the tool resolves it against cwd
        # and the zip is named <name>-<variant>-<version>.zip
        args = [self.executable, "package", "compute-checksum", archive_path.name]
        output = self.runner.run(args, cwd=archive_path.parent).strip()
        if not output:
            raise EmptyResultError(f"{' '.join(args)} produced no checksum for {archive_path}")
        return output


class Sha256Checksum:
    """SHA-256 of the archive computed with hashlib, matching SwiftPM's digest."""

    def compute_checksum(self, archive_path: Path | str) -> str:
        archive_path = Path(archive_path)
        if not archive_path.is_file():
            raise FileNotFoundError(f"XCFramework zip file not found: {archive_path}")

        sha256_hash = hashlib.sha256()
        with open(archive_path, "rb") as f:
            for byte_block in iter(lambda: f.read(4096 * 1024), b""):
                sha256_hash.update(byte_block)
        return sha256_hash.hexdigest()


CHECKSUM_BACKENDS = ("swift", "sha256")


def make_checksum_computer(
    backend: str = "swift", timeout: float | None = DEFAULT_TIMEOUT_SECONDS
) -> ChecksumComputer | Sha256Checksum:
    """Checksum implementation for a backend name from CHECKSUM_BACKENDS."""
    if backend == "swift":
        return ChecksumComputer(SubprocessRunner(timeout=timeout))
    if backend == "sha256":
        return Sha256Checksum()
    raise ConfigurationError(f"Unknown checksum backend: {backend}")


def write_checksum_file(archive_path: Path, digest: str) -> Path:
    """Write `<archive>.sha256` next to the archive and return its path."""
    checksum_file = archive_path.parent / f"{archive_path.name}.sha256"
    with output_lock(checksum_file), atomic_output(checksum_file) as tmp_path, open(tmp_path, "w") as f:
        f.write(f"{digest}  {archive_path.name}\n")
    return checksum_file
