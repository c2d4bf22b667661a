"""
Per-variant Swift package tasks.

Every build variant gets its own task graph:

    assemble<Name><Variant>XCFramework      external build produces the XCFramework
    zip<Variant>XCFramework                 archive-bundle, depends on assemble
    copy<Variant>XCFramework                copy-bundle, depends on archive-bundle
    createLocal<Variant>SwiftPackage        local Package.swift + copy, depends on archive-bundle
    upload<Variant>SwiftPackage             upload placeholder, depends on archive-bundle
    publishRemote<Variant>SwiftPackage      checksum + remote Package.swift, depends on upload

The local and remote paths share only the archive. Variants share no state, so
run_variants() can run them on a thread pool.
"""

import threading
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from .archive import copy_bundle_to_consumer_directory, output_lock, package_archive
from .checksum import (
    ChecksumComputer,
    CommandRunner,
    Sha256Checksum,
    SubprocessRunner,
    make_checksum_computer,
    write_checksum_file,
)
from .errors import ConfigurationError
from .manifest import DEFAULT_TEMPLATE, PACKAGE_FILE_NAME, local_descriptor, remote_descriptor, write_package_file
from .options import BuildVariant, ProjectLayout, PublicationOptions

ASSEMBLE = "assemble"
ARCHIVE_BUNDLE = "archive-bundle"
COPY_BUNDLE = "copy-bundle"
UPLOAD = "upload"
CREATE_LOCAL_MANIFEST = "create-local-manifest"
PUBLISH_REMOTE_MANIFEST = "publish-remote-manifest"

OPERATIONS = (ASSEMBLE, ARCHIVE_BUNDLE, COPY_BUNDLE, UPLOAD, CREATE_LOCAL_MANIFEST, PUBLISH_REMOTE_MANIFEST)

SWIFT_PACKAGE_TASK_GROUP = "Swift Package"


def print_section(title: str) -> None:
    """Print a formatted section header."""
    print("\n" + "=" * 70)
    print(title)
    print("=" * 70)


# ============================================================================
# External collaborators
# ============================================================================


class Assembler(Protocol):
    def assemble(self, variant: BuildVariant, layout: ProjectLayout) -> Path: ...


class PrebuiltAssembler:
    """Use an XCFramework the host build already produced."""

    def assemble(self, variant: BuildVariant, layout: ProjectLayout) -> Path:
        output_dir = layout.xcframework_output_dir(variant)
        if not output_dir.is_dir():
            raise FileNotFoundError(
                f"XCFramework output not found: {output_dir} "
                f"(run {layout.assemble_task_name(variant)} or pass --assemble-command)"
            )
        return output_dir


class CommandAssembler:
    """
    Run the host build to produce the XCFramework.

    `command` is an argument list; "{task}" in any argument is replaced with the
    assemble task name, e.g. ["./gradlew", "{task}"].
    """

    def __init__(self, command: list[str], runner: CommandRunner | None = None):
        if not command:
            raise ConfigurationError("Assemble command must not be empty")
        self.command = command
        self.runner = runner if runner is not None else SubprocessRunner(timeout=None)

    def assemble(self, variant: BuildVariant, layout: ProjectLayout) -> Path:
        task = layout.assemble_task_name(variant)
        args = [arg.replace("{task}", task) for arg in self.command]
        print(f"[{variant.value}] Running: {' '.join(args)}")
        self.runner.run(args, cwd=layout.project_dir)
        return PrebuiltAssembler().assemble(variant, layout)


class Uploader(Protocol):
    def upload(self, archive_path: Path, distribution_url: str) -> None: ...


class PlaceholderUploader:
    """Cloud upload is not implemented; report what would be uploaded."""

    def upload(self, archive_path: Path, distribution_url: str) -> None:
        print(f"  ⚠️  Upload not implemented: {archive_path.name} must be uploaded to {distribution_url} manually")


# ============================================================================
# Task graph
# ============================================================================


@dataclass
class Task:
    name: str
    operation: str
    action: Callable[[], None]
    depends_on: tuple[str, ...] = ()
    description: str = ""


class TaskGraph:
    """Named tasks with dependencies, executed in dependency order."""

    def __init__(self) -> None:
        self.tasks: dict[str, Task] = {}

    def register(self, task: Task) -> Task:
        if task.name in self.tasks:
            raise ConfigurationError(f"Task {task.name} is already registered")
        self.tasks[task.name] = task
        return task

    def __contains__(self, name: str) -> bool:
        return name in self.tasks

    def __getitem__(self, name: str) -> Task:
        try:
            return self.tasks[name]
        except KeyError:
            raise ConfigurationError(f"Task '{name}' not found") from None

    def execution_order(self, requested: Iterable[str]) -> list[Task]:
        """
        Requested tasks plus everything they depend on, dependencies first.

        Each task appears once. Raises ConfigurationError on unknown names or cycles.
        """
        order: list[Task] = []
        done: set[str] = set()
        visiting: list[str] = []

        def visit(name: str) -> None:
            if name in done:
                return
            if name in visiting:
                cycle = " -> ".join(visiting[visiting.index(name) :] + [name])
                raise ConfigurationError(f"Circular task dependency: {cycle}")
            task = self[name]
            visiting.append(name)
            for dependency in task.depends_on:
                visit(dependency)
            visiting.pop()
            done.add(name)
            order.append(task)

        for name in requested:
            visit(name)
        return order

    def run(
        self,
        requested: Iterable[str],
        halt: threading.Event | None = None,
        executed: list[str] | None = None,
    ) -> list[str]:
        """
        Execute tasks in order. The first failure propagates and nothing after it runs.

        Args:
            requested: Task names to run, with their dependencies
            halt: Stop before the next task once this is set
            executed: List that completed task names are appended to as they finish,
                so callers still see progress when a task raises

        Returns:
            Names of the executed tasks
        """
        if executed is None:
            executed = []
        for task in self.execution_order(requested):
            if halt is not None and halt.is_set():
                break
            task.action()
            executed.append(task.name)
        return executed


# ============================================================================
# Variant pipeline
# ============================================================================


class VariantPipeline:
    """Tasks and stage implementations for one build variant."""

    def __init__(
        self,
        variant: BuildVariant,
        layout: ProjectLayout,
        options: PublicationOptions,
        assembler: Assembler | None = None,
        checksum: ChecksumComputer | Sha256Checksum | None = None,
        uploader: Uploader | None = None,
        template: Path | str = DEFAULT_TEMPLATE,
    ):
        self.variant = variant
        self.layout = layout
        self.options = options
        self.assembler = assembler if assembler is not None else PrebuiltAssembler()
        self.checksum = (
            checksum
            if checksum is not None
            else make_checksum_computer(options.checksum_backend, options.checksum_timeout)
        )
        self.uploader = uploader if uploader is not None else PlaceholderUploader()
        self.template = template
        self.graph = TaskGraph()
        self._register_tasks()

    def task_name(self, operation: str) -> str:
        title = self.variant.title
        names = {
            ASSEMBLE: self.layout.assemble_task_name(self.variant),
            ARCHIVE_BUNDLE: f"zip{title}XCFramework",
            COPY_BUNDLE: f"copy{title}XCFramework",
            UPLOAD: f"upload{title}SwiftPackage",
            CREATE_LOCAL_MANIFEST: f"createLocal{title}SwiftPackage",
            PUBLISH_REMOTE_MANIFEST: f"publishRemote{title}SwiftPackage",
        }
        try:
            return names[operation]
        except KeyError:
            raise ConfigurationError(
                f"Unknown operation '{operation}' (expected one of: {', '.join(OPERATIONS)})"
            ) from None

    def _register_tasks(self) -> None:
        name = self.task_name
        self.graph.register(
            Task(name(ASSEMBLE), ASSEMBLE, self.assemble, description="Assembles the XCFramework")
        )
        self.graph.register(
            Task(
                name(ARCHIVE_BUNDLE),
                ARCHIVE_BUNDLE,
                self.archive_bundle,
                depends_on=(name(ASSEMBLE),),
                description="Creates a ZIP file for the XCFramework",
            )
        )
        self.graph.register(
            Task(
                name(COPY_BUNDLE),
                COPY_BUNDLE,
                self.copy_bundle,
                depends_on=(name(ARCHIVE_BUNDLE),),
                description="Copy the XCFramework into Swift Package output directory",
            )
        )
        self.graph.register(
            Task(
                name(CREATE_LOCAL_MANIFEST),
                CREATE_LOCAL_MANIFEST,
                self.create_local_manifest,
                depends_on=(name(ARCHIVE_BUNDLE),),
                description="Creates a local Swift package to distribute the XCFramework",
            )
        )
        self.graph.register(
            Task(
                name(UPLOAD),
                UPLOAD,
                self.upload,
                depends_on=(name(ARCHIVE_BUNDLE),),
                description="Uploads the XCFramework ZIP to the distribution URL (not implemented)",
            )
        )
        self.graph.register(
            Task(
                name(PUBLISH_REMOTE_MANIFEST),
                PUBLISH_REMOTE_MANIFEST,
                self.publish_remote_manifest,
                depends_on=(name(UPLOAD),),
                description="Creates the Swift package to distribute the XCFramework",
            )
        )

    def _log(self, message: str) -> None:
        print(f"[{self.variant.value}] {message}")

    @property
    def archive_path(self) -> Path:
        return self.layout.archive_path(self.variant)

    # Stages

    def assemble(self) -> None:
        output_dir = self.assembler.assemble(self.variant, self.layout)
        self._log(f"✓ XCFramework: {output_dir}")

    def archive_bundle(self) -> None:
        source_dir = self.layout.xcframework_output_dir(self.variant)
        self._log(f"Zipping {source_dir} -> {self.archive_path}")
        archive = package_archive(source_dir, self.layout.swift_package_build_dir, self.archive_path.name)
        self._log(f"✓ Created {archive.name} ({archive.stat().st_size / (1024*1024):.2f} MB)")

    def copy_bundle(self) -> None:
        build_dir = self.layout.swift_package_build_dir
        consumer_dir = self.layout.consumer_dir
        copied = copy_bundle_to_consumer_directory(build_dir, consumer_dir)
        self._log(f"✓ Copied {len(copied)} files to {consumer_dir}")

    def create_local_manifest(self) -> None:
        descriptor = local_descriptor(
            package_name=self.layout.name,
            zip_file_name=self.archive_path.name,
            platforms=self.options.platform_tags,
            swift_version=self.options.swift_version,
        )
        build_dir = self.layout.swift_package_build_dir
        # Hold the manifest lock until the copy is done so a concurrent remote
        # manifest cannot end up in the consumer directory
        with output_lock(build_dir / PACKAGE_FILE_NAME):
            package_file = write_package_file(descriptor, build_dir, self.template)
            self._log(f"✓ Local {PACKAGE_FILE_NAME}: {package_file}")
            self.copy_bundle()

    def upload(self) -> None:
        if not self.archive_path.is_file():
            raise FileNotFoundError(f"XCFramework zip file not found: {self.archive_path}")
        self.uploader.upload(self.archive_path, self.options.distribution_url)

    def publish_remote_manifest(self) -> None:
        self._log(f"Computing checksum of {self.archive_path.name}...")
        checksum = self.checksum.compute_checksum(self.archive_path)
        checksum_file = write_checksum_file(self.archive_path, checksum)
        self._log(f"  Checksum: {checksum} (saved to {checksum_file.name})")

        descriptor = remote_descriptor(
            package_name=self.layout.name,
            zip_file_name=self.archive_path.name,
            platforms=self.options.platform_tags,
            swift_version=self.options.swift_version,
            checksum=checksum,
            distribution_url=self.options.distribution_url,
        )
        package_file = write_package_file(descriptor, self.layout.swift_package_build_dir, self.template)
        self._log(f"✓ Remote {PACKAGE_FILE_NAME}: {package_file} (url: {descriptor.url})")

    def resolve(self, operations: Iterable[str]) -> list[str]:
        """Task names for operations; task names are accepted as-is."""
        return [op if op in self.graph else self.task_name(op) for op in operations]

    def run(
        self,
        operations: Iterable[str],
        halt: threading.Event | None = None,
        executed: list[str] | None = None,
    ) -> list[str]:
        """Run operations (or task names) and everything they depend on."""
        return self.graph.run(self.resolve(operations), halt=halt, executed=executed)


# ============================================================================
# Multi-variant runs
# ============================================================================


@dataclass
class VariantResult:
    variant: BuildVariant
    executed: list[str] = field(default_factory=list)
    error: Exception | None = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.skipped


def run_variants(
    pipelines: list[VariantPipeline],
    operations: list[str],
    jobs: int = 1,
    keep_going: bool = False,
) -> list[VariantResult]:
    """
    Run the same operations for several variants.

    Variants run concurrently when jobs > 1. Without keep_going, the first failure
    stops variants that have not started their next task; with it, the other
    variants run to completion. Failures are returned in the results, not raised.
    """
    halt = threading.Event()

    def run_one(pipeline: VariantPipeline) -> VariantResult:
        result = VariantResult(pipeline.variant)
        if halt.is_set():
            result.skipped = True
            return result
        try:
            planned = pipeline.graph.execution_order(pipeline.resolve(operations))
            pipeline.run(operations, halt=None if keep_going else halt, executed=result.executed)
        except Exception as e:
            result.error = e
            if not keep_going:
                halt.set()
            return result
        result.skipped = len(result.executed) < len(planned)
        return result

    with ThreadPoolExecutor(max_workers=max(1, jobs)) as executor:
        return list(executor.map(run_one, pipelines))
