# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Command-line interface for overdrop.

This module provides the main CLI entry point for the overdrop tool. The CLI
only gathers the scan inputs (base directories, shared path, dotfile policy,
allowed extensions) and prints what the library returns.

Commands:

    scan: Print the resolved fragment name -> location mapping
    merge: Deep-merge the resolved YAML fragments and print the result

Scan inputs come from the command line, from a YAML scan configuration
(--config), or both; command-line values win. Without any base directory the
conventional /usr/lib, /run, /etc ordering is used.

Example:
    Show which fragments apply:
        ```bash
        $ overdrop scan my-svc/config.d --ext toml
        10-defaults.toml	/usr/lib/my-svc/config.d/10-defaults.toml
        50-site.toml	/etc/my-svc/config.d/50-site.toml
        ```

    Use explicit base directories:
        ```bash
        $ overdrop scan my-svc/config.d -b ./vendor -b ./local --format json
        ```

    Merge YAML fragments using a scan configuration file:
        ```bash
        $ overdrop merge --config scan.yaml
        ```

Exit Codes:

- 0: Success
- 1: Error (invalid configuration, unreadable or invalid fragment)

Note:
    Verbose mode shows full tracebacks on errors for debugging.
    Debug mode implies verbose mode and traces every scanned entry.

"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
import sys
from typing import Any

import yaml

from overdrop import __version__
from overdrop.config import DEFAULT_BASE_DIRS, load_scan_config
from overdrop.config.loader import validate_extensions
from overdrop.exceptions import ConfigError, OverdropError
from overdrop.logging import get_logger, set_global_logger
from overdrop.merge import load_merged_yaml
from overdrop.scanner import FragmentScanner

OUTPUT_FORMATS = ("text", "json", "yaml")


def build_scanner(args: argparse.Namespace) -> FragmentScanner:
    """Builds a scanner from command-line arguments and optional config file.

    Args:
        args: Parsed command-line arguments.

    Returns:
        A scanner for the combined inputs.

    Raises:
        ConfigError: If the config file is invalid or no shared path is given.
    """
    config = load_scan_config(Path(args.config)) if args.config else None

    if args.base_dirs:
        base_dirs: tuple[str, ...] = tuple(args.base_dirs)
    elif config is not None:
        base_dirs = config.base_dirs
    else:
        base_dirs = DEFAULT_BASE_DIRS

    shared_path = args.shared_path or (config.shared_path if config else None)
    if not shared_path:
        raise ConfigError("no shared path given (pass SHARED_PATH or --config)")

    if args.ignore_dotfiles is not None:
        ignore_dotfiles = args.ignore_dotfiles
    else:
        ignore_dotfiles = bool(config and config.ignore_dotfiles)

    if args.extensions:
        allowed_extensions: tuple[str, ...] = tuple(args.extensions)
        validate_extensions(allowed_extensions, "the command line")
    elif config is not None:
        allowed_extensions = config.allowed_extensions
    else:
        allowed_extensions = ()

    return FragmentScanner(
        base_dirs,
        shared_path,
        ignore_dotfiles=ignore_dotfiles,
        allowed_extensions=allowed_extensions,
    )


def _dump(data: dict[str, Any], output_format: str) -> str:
    if output_format == "json":
        return json.dumps(data, indent=2, default=str)
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False).rstrip("\n")


def _report_error(err: OverdropError, args: argparse.Namespace) -> int:
    print(f"Error: {err}")
    if args.verbose or args.debug:
        import traceback

        traceback.print_exc()
    return 1


def cmd_scan(args: argparse.Namespace) -> int:
    """Handler for 'overdrop scan' command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success, 1 for failure).

    Note:
        Missing base directories are not an error; the mapping printed is
        simply empty when no fragments are found.
    """
    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)

    try:
        scanner = build_scanner(args)
    except OverdropError as err:
        return _report_error(err, args)

    for scan_dir in scanner.dirs:
        logger.verbose("SCAN", f"Directory: {scan_dir}")

    fragments = scanner.scan()

    if args.format == "text":
        for name, path in fragments.items():
            print(f"{name}\t{path}")
    else:
        print(_dump({name: str(path) for name, path in fragments.items()}, args.format))
    return 0


def cmd_merge(args: argparse.Namespace) -> int:
    """Handler for 'overdrop merge' command.

    Scans for fragments, parses each winning fragment as YAML and deep-merges
    them in name order. The merged document is printed as YAML (or JSON with
    --format json).

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)

    try:
        scanner = build_scanner(args)
        merged = load_merged_yaml(scanner)
    except OverdropError as err:
        return _report_error(err, args)

    print(_dump(merged, args.format))
    return 0


def _add_scan_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "shared_path",
        nargs="?",
        default=None,
        help="Relative path appended to every base directory (e.g. my-svc/config.d)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="YAML scan configuration file",
    )
    parser.add_argument(
        "-b",
        "--base-dir",
        dest="base_dirs",
        action="append",
        default=None,
        help=(
            "Base directory, lowest priority first; repeat for more "
            f"(default: {', '.join(DEFAULT_BASE_DIRS)})"
        ),
    )
    parser.add_argument(
        "-e",
        "--ext",
        dest="extensions",
        action="append",
        default=None,
        help="Allowed extension without the dot; repeat for more (default: any)",
    )
    parser.add_argument(
        "--ignore-dotfiles",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Ignore fragments whose name starts with a dot (default: from --config, else no)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show progress and high-level status updates",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Show detailed debugging output (implies --verbose)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Builds the argument parser for the overdrop CLI."""
    parser = argparse.ArgumentParser(
        prog="overdrop",
        description="overdrop - scan configuration fragments across layered drop-in directories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"overdrop {__version__}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )

    # 'scan' command
    parser_scan = subparsers.add_parser(
        "scan",
        help="Print the resolved fragment name -> location mapping",
        description="Scan base directories for fragments and print the winning location of each.",
    )
    _add_scan_arguments(parser_scan)
    parser_scan.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default="text",
        help="Output format (default: text, one 'name<TAB>path' per line)",
    )
    parser_scan.set_defaults(func=cmd_scan)

    # 'merge' command
    parser_merge = subparsers.add_parser(
        "merge",
        help="Deep-merge the resolved YAML fragments",
        description="Scan for fragments, deep-merge them as YAML in name order and print the result.",
    )
    _add_scan_arguments(parser_merge)
    parser_merge.add_argument(
        "--format",
        choices=("yaml", "json"),
        default="yaml",
        help="Output format (default: yaml)",
    )
    parser_merge.set_defaults(func=cmd_merge)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the overdrop CLI.

    This function is registered as the 'overdrop' console script in pyproject.toml.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
