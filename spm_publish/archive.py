"""
Package an assembled XCFramework into the zip archive referenced by Package.swift.

The archive is reproducible: entries are sorted, timestamps fixed and permissions
normalized, so packaging the same bundle twice gives byte-identical output.
Archives are written to a temporary file and renamed into place, and writers of the
same output path are serialized with output_lock() since variants run concurrently.
"""

import contextlib
import os
import shutil
import stat
import tempfile
import threading
import zipfile
from collections.abc import Iterator
from pathlib import Path

# 1980-01-01 is the earliest timestamp the zip format can store
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)

_locks: dict[str, threading.RLock] = {}
_locks_guard = threading.Lock()


@contextlib.contextmanager
def output_lock(path: Path | str) -> Iterator[None]:
    """Hold the process-wide (re-entrant) lock for one output path."""
    key = str(Path(path).resolve())
    with _locks_guard:
        lock = _locks.setdefault(key, threading.RLock())
    with lock:
        yield


@contextlib.contextmanager
def atomic_output(path: Path) -> Iterator[Path]:
    """
    Yield a temporary path next to `path`; move it over `path` if the block succeeds.

    A failed or interrupted write never leaves a partial file under the final name.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        yield tmp_path
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def derive_archive_file_name(package_name: str, build_variant: object, version: str) -> str:
    """
    Archive name for one package/variant/version, e.g. "lib-debug-0.1.zip".

    Args:
        package_name: Project name
        build_variant: BuildVariant or plain variant name
        version: Project version
    """
    variant_name = getattr(build_variant, "value", build_variant)
    return f"{package_name}-{variant_name}-{version}.zip"


def _bundle_entries(source_dir: Path) -> list[Path]:
    """Files and symlinks under source_dir in sorted order, without following links."""
    entries = []
    for root, dirs, files in os.walk(source_dir):
        root_path = Path(root)
        linked_dirs = [d for d in dirs if (root_path / d).is_symlink()]
        dirs[:] = sorted(d for d in dirs if d not in linked_dirs)
        entries.extend(root_path / name for name in linked_dirs + files)
    return sorted(entries, key=lambda p: p.relative_to(source_dir).as_posix())


def _zip_info(arcname: str, mode: int) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(arcname, date_time=ZIP_EPOCH)
    info.create_system = 3  # unix, so external_attr carries the mode bits
    info.external_attr = mode << 16
    return info


def package_archive(source_dir: Path | str, destination_dir: Path | str, archive_file_name: str) -> Path:
    """
    Zip every file under `source_dir` into `destination_dir/archive_file_name`.

    Entry names are relative to `source_dir`. An existing archive with the same name
    is replaced.

    Args:
        source_dir: Assembled multi-platform bundle for one variant
        destination_dir: Output directory, created if missing
        archive_file_name: Name of the archive to write

    Returns:
        Path to the written archive

    Raises:
        FileNotFoundError: If source_dir does not exist
    """
    source_dir = Path(source_dir)
    destination_dir = Path(destination_dir)
    if not source_dir.is_dir():
        raise FileNotFoundError(f"XCFramework output directory not found: {source_dir}")

    archive_path = destination_dir / archive_file_name
    entries = _bundle_entries(source_dir)

    with output_lock(archive_path), atomic_output(archive_path) as tmp_path:
        with zipfile.ZipFile(tmp_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for entry in entries:
                arcname = entry.relative_to(source_dir).as_posix()
                if entry.is_symlink():
                    # Framework bundles use relative links (Versions/Current)
                    info = _zip_info(arcname, stat.S_IFLNK | 0o777)
                    info.compress_type = zipfile.ZIP_STORED
                    zf.writestr(info, os.readlink(entry))
                    continue

                executable = entry.stat().st_mode & stat.S_IXUSR
                info = _zip_info(arcname, stat.S_IFREG | (0o755 if executable else 0o644))
                info.compress_type = zipfile.ZIP_DEFLATED
                # Lets zipfile pick zip64 up front for members over 2 GiB
                info.file_size = entry.stat().st_size
                with open(entry, "rb") as src, zf.open(info, "w") as dst:
                    shutil.copyfileobj(src, dst, 1024 * 1024)

    return archive_path


def list_archive_entries(archive_path: Path | str) -> list[str]:
    """Names of the members stored in an archive."""
    with zipfile.ZipFile(archive_path) as zf:
        return zf.namelist()


def copy_bundle_to_consumer_directory(build_output_dir: Path | str, consumer_dir: Path | str) -> list[Path]:
    """
    Copy the packaged Swift package directory where local consumers can reference it.

    Existing files are overwritten; files already in the consumer directory that are
    not part of the bundle are left alone.

    Returns:
        Paths of the copied files, relative to consumer_dir

    Raises:
        FileNotFoundError: If build_output_dir does not exist
    """
    build_output_dir = Path(build_output_dir)
    consumer_dir = Path(consumer_dir)
    if not build_output_dir.is_dir():
        raise FileNotFoundError(f"Swift package build directory not found: {build_output_dir}")

    copied: list[Path] = []

    def copy_file(src: str, dst: str) -> str:
        with output_lock(dst):
            shutil.copy2(src, dst)
        copied.append(Path(dst).relative_to(consumer_dir))
        return dst

    consumer_dir.mkdir(parents=True, exist_ok=True)
    shutil.copytree(
        build_output_dir,
        consumer_dir,
        copy_function=copy_file,
        dirs_exist_ok=True,
        ignore=shutil.ignore_patterns(".*.tmp"),
    )
    return sorted(copied)
