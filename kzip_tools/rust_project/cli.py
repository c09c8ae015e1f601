"""Command-line interface for the rust-project to kzip converter."""

from __future__ import annotations

import argparse
import json
import sys
from enum import IntEnum
from pathlib import Path
from typing import NoReturn, Optional

from kzip_tools.rust_project.closure import compute_closures
from kzip_tools.rust_project.config import (
    load_config,
    ConfigError,
    ConverterConfig,
    DEFAULT_CONFIG_PATH,
)
from kzip_tools.rust_project.driver import convert_project, describe_dependencies, load_graph
from kzip_tools.rust_project.kzip import KzipError, list_file_digests, read_units
from kzip_tools.rust_project.sources import aggregate_all


class ExitCode(IntEnum):
    """Process exit codes."""

    SUCCESS = 0
    SETUP_ERROR = 1


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with SETUP_ERROR on bad invocation."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        print(f"{self.prog}: error: {message}", file=sys.stderr)
        sys.exit(ExitCode.SETUP_ERROR)


def _get_config(config_path: Optional[str]) -> ConverterConfig:
    """Load config from path or use defaults.

    Search order:
    1. Explicit --config path
    2. rust_project_to_kzip.yaml in the current directory
    3. Built-in defaults
    """
    if config_path:
        if not Path(config_path).exists():
            raise ConfigError(
                f"Config file not found: {config_path}",
                file=config_path,
                error_type="config_invalid",
            )
        return load_config(config_path)

    return load_config(Path.cwd() / DEFAULT_CONFIG_PATH)  # Defaults if absent


def _report(error: ConfigError) -> int:
    print(json.dumps(error.to_json()), file=sys.stderr)
    return ExitCode.SETUP_ERROR


def cmd_build(args: argparse.Namespace) -> int:
    """Convert a rust-project.json into a kzip."""
    try:
        config = _get_config(args.config)
        result = convert_project(args.project_json, args.output, args.project_root, config)
    except ConfigError as e:
        return _report(e)

    if result.skipped_crates:
        print(f"Skipped {len(result.skipped_crates)} crates: {', '.join(result.skipped_crates)}")
    return ExitCode.SUCCESS


def cmd_deps(args: argparse.Namespace) -> int:
    """Show transitive dependencies and aggregated source dirs."""
    try:
        graph = load_graph(args.project_json)
    except ConfigError as e:
        return _report(e)

    closures = compute_closures(graph)
    describe_dependencies(graph, closures, aggregate_all(graph, closures))
    return ExitCode.SUCCESS


def cmd_info(args: argparse.Namespace) -> int:
    """Summarize an existing kzip."""
    try:
        units = read_units(args.kzip)
        digests = list_file_digests(args.kzip)
    except KzipError as e:
        return _report(ConfigError(str(e), file=args.kzip, error_type="kzip_unreadable"))

    print(f"kzip: {args.kzip}")
    print(f"  Units: {len(units)}")
    print(f"  Files: {len(digests)}")
    for record in units:
        unit = record.get("unit", {})
        root = unit.get("vName", {}).get("root", "")
        print(
            f"    {root or '(no root)'}: "
            f"{len(unit.get('sourceFile', []))} sources, "
            f"{len(unit.get('requiredInput', []))} required inputs "
            f"[{record['digest'][:12]}]"
        )
    return ExitCode.SUCCESS


def _add_config_arg(parser: argparse.ArgumentParser) -> None:
    """Add --config argument to a parser."""
    parser.add_argument(
        "--config",
        "-c",
        help=f"Path to config file (default: {DEFAULT_CONFIG_PATH})",
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = _ArgumentParser(
        prog="rust-project-to-kzip",
        description="Package the crates of a rust-project.json as kzip compilation units",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # build command
    build_parser = subparsers.add_parser(
        "build",
        help="Write one compilation unit per crate into a kzip",
    )
    _add_config_arg(build_parser)
    build_parser.add_argument("project_json", help="Path to rust-project.json")
    build_parser.add_argument("output", help="Output kzip path (replaced if it exists)")
    build_parser.add_argument("project_root", help="Directory stripped from recorded file paths")

    # deps command
    deps_parser = subparsers.add_parser(
        "deps",
        help="Show transitive dependencies and source dirs per crate",
    )
    deps_parser.add_argument("project_json", help="Path to rust-project.json")

    # info command
    info_parser = subparsers.add_parser(
        "info",
        help="Summarize the units and files in a kzip",
    )
    info_parser.add_argument("kzip", help="Path to a kzip archive")

    args = parser.parse_args(argv)

    commands = {
        "build": cmd_build,
        "deps": cmd_deps,
        "info": cmd_info,
    }

    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
