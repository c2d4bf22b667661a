#!/usr/bin/env python3
"""
Command-line front-end for Swift package publication.

Usage:
    spm-publish tasks
    spm-publish targets
    spm-publish run create-local-manifest --variant debug
    spm-publish run publish-remote-manifest --variant release --distribution-url https://cdn.example.com/lib
    spm-publish run archive-bundle copy-bundle --variant all --jobs 2

Options come from the command line, then the JSON file given with --config, then
the SWIFT_PACKAGE_DISTRIBUTION_URL environment variable (distribution URL only).
"""

import argparse
import shlex
import sys
import traceback
from pathlib import Path
from typing import Any

from .checksum import CHECKSUM_BACKENDS, DEFAULT_TIMEOUT_SECONDS
from .errors import PublishError
from .options import (
    DEFAULT_SWIFT_VERSION,
    BuildVariant,
    ProjectLayout,
    PublicationOptions,
    load_config_file,
    resolve_distribution_url,
)
from .pipeline import (
    OPERATIONS,
    SWIFT_PACKAGE_TASK_GROUP,
    CommandAssembler,
    PrebuiltAssembler,
    VariantPipeline,
    print_section,
    run_variants,
)
from .platforms import DEFAULT_PLATFORMS, PlatformTargetSet, framework_base_name, preset_resolver


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--project-dir", type=Path, default=Path("."), help="Project root directory (default: current directory)"
    )
    common.add_argument("--config", type=Path, help="JSON config file (name, version, platforms, ...)")
    common.add_argument("--name", help="Package name (default: config 'name' or project directory name)")
    common.add_argument("--version", dest="project_version", help="Package version (default: config 'version')")
    common.add_argument("--build-dir", type=Path, help="Build directory (default: <project-dir>/build)")
    common.add_argument(
        "--swift-version", help=f"Swift tools version for Package.swift (default: {DEFAULT_SWIFT_VERSION})"
    )
    common.add_argument(
        "--distribution-url",
        help="Base URL remote packages are downloaded from (default: $SWIFT_PACKAGE_DISTRIBUTION_URL)",
    )
    common.add_argument(
        "--checksum-backend",
        choices=CHECKSUM_BACKENDS,
        help="swift: `swift package compute-checksum`; sha256: compute in-process (default: swift)",
    )
    common.add_argument(
        "--checksum-timeout",
        type=float,
        default=DEFAULT_TIMEOUT_SECONDS,
        help=f"Seconds to wait for the checksum tool (default: {DEFAULT_TIMEOUT_SECONDS:g})",
    )
    common.add_argument(
        "--variant",
        default="all",
        help="Build variant: debug, release or all (default: all)",
    )

    parser = argparse.ArgumentParser(
        prog="spm-publish",
        description="Package XCFrameworks as Swift packages and generate Package.swift",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"Operations: {', '.join(OPERATIONS)}",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("tasks", parents=[common], help="List the tasks registered for each variant")
    subparsers.add_parser("targets", parents=[common], help="Show native targets and platform versions")

    run_parser = subparsers.add_parser("run", parents=[common], help="Run operations or tasks")
    run_parser.add_argument("operations", nargs="+", help="Operation or task names")
    run_parser.add_argument(
        "--assemble-command",
        help='Command producing the XCFramework; "{task}" is replaced with the assemble task name '
        '(e.g. "./gradlew {task}"). Default: use the existing build output',
    )
    run_parser.add_argument("--jobs", type=int, default=1, help="Variants to run in parallel (default: 1)")
    run_parser.add_argument(
        "--keep-going", action="store_true", help="Keep running other variants after a variant fails"
    )

    return parser


def resolve_variants(name: str) -> list[BuildVariant]:
    if name.lower() == "all":
        return list(BuildVariant)
    return [BuildVariant.parse(name)]


def resolve_settings(args: argparse.Namespace) -> tuple[ProjectLayout, PublicationOptions]:
    """Merge command line, config file and environment into layout and options."""
    config: dict[str, Any] = load_config_file(args.config) if args.config else {}
    project_dir = args.project_dir.resolve()

    layout = ProjectLayout(
        name=args.name or config.get("name") or project_dir.name,
        version=args.project_version or str(config.get("version") or "unspecified"),
        project_dir=project_dir,
        build_dir=args.build_dir or config.get("buildDir"),
    )

    platforms = DEFAULT_PLATFORMS
    if "platforms" in config:
        platforms = PlatformTargetSet.from_dict(config["platforms"])

    options = PublicationOptions(
        platforms=platforms,
        swift_version=args.swift_version or config.get("swiftVersion") or DEFAULT_SWIFT_VERSION,
        distribution_url=resolve_distribution_url(args.distribution_url or config.get("distributionUrl")),
        checksum_backend=args.checksum_backend or config.get("checksumBackend") or "swift",
        checksum_timeout=args.checksum_timeout,
    )
    return layout, options


def make_pipelines(
    args: argparse.Namespace, layout: ProjectLayout, options: PublicationOptions
) -> list[VariantPipeline]:
    assemble_command = getattr(args, "assemble_command", None)
    assembler = CommandAssembler(shlex.split(assemble_command)) if assemble_command else PrebuiltAssembler()
    return [
        VariantPipeline(variant, layout, options, assembler=assembler) for variant in resolve_variants(args.variant)
    ]


def command_tasks(args: argparse.Namespace) -> None:
    layout, options = resolve_settings(args)
    print_section(f"{SWIFT_PACKAGE_TASK_GROUP} tasks ({layout.name})")
    for pipeline in make_pipelines(args, layout, options):
        print(f"\n{pipeline.variant.value}:")
        for task in pipeline.graph.tasks.values():
            depends = f" (depends on {', '.join(task.depends_on)})" if task.depends_on else ""
            print(f"  {task.name:<40} {task.operation:<24} {task.description}{depends}")


def command_targets(args: argparse.Namespace) -> None:
    layout, options = resolve_settings(args)
    print_section(f"APPLE TARGETS ({layout.name})")
    for family, group in options.platforms.groups():
        targets = ", ".join(group.targets) if group.targets else "(none)"
        version = f"{family.value} {group.version}" if group.targets else family.value
        print(f"  {version:<12} {targets}")

    print()
    print(f"Native targets: {', '.join(options.platforms.resolve_native_targets(preset_resolver))}")
    print(f"Platforms:      {', '.join(options.platform_tags)}")
    print(f"Framework name: {framework_base_name(layout.name)}")


def command_run(args: argparse.Namespace) -> None:
    layout, options = resolve_settings(args)
    pipelines = make_pipelines(args, layout, options)

    print("=" * 70)
    print("Swift Package Publication")
    print("=" * 70)
    print(f"Package:          {layout.name}")
    print(f"Version:          {layout.version}")
    print(f"Variants:         {', '.join(p.variant.value for p in pipelines)}")
    print(f"Operations:       {', '.join(args.operations)}")
    print(f"Build directory:  {layout.swift_package_build_dir}")
    print(f"Distribution URL: {options.distribution_url}")
    print("=" * 70)

    results = run_variants(pipelines, args.operations, jobs=args.jobs, keep_going=args.keep_going)

    print_section("SUMMARY")
    failed = 0
    for result in results:
        if result.error is not None:
            failed += 1
            print(f"  ✗ {result.variant.value}: {result.error}")
            if result.executed:
                print(f"      completed: {', '.join(result.executed)}")
        elif result.skipped:
            failed += 1
            print(f"  ✗ {result.variant.value}: skipped after an earlier failure")
        else:
            print(f"  ✓ {result.variant.value}: {', '.join(result.executed)}")

    if failed:
        print(f"\n❌ {failed} of {len(results)} variants failed", file=sys.stderr)
        sys.exit(1)
    print("\n✅ Done!")


COMMANDS = {
    "tasks": command_tasks,
    "targets": command_targets,
    "run": command_run,
}


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        COMMANDS[args.command](args)
    except KeyboardInterrupt:
        print("\n\n" + "=" * 70)
        print("❌ OPERATION CANCELLED BY USER")
        print("=" * 70)
        sys.exit(130)  # Standard exit code for SIGINT
    except PublishError as e:
        print(f"\n❌ Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"\n❌ Error: {e}", file=sys.stderr)
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
