"""Command-line entry point: development, build, test and production modes."""

from __future__ import annotations

import argparse
import os
import sys
import time
from pathlib import Path
from typing import Optional, Sequence

from pbcli.build import build_frontend
from pbcli.console import (
    print_banner,
    print_build_summary,
    print_error,
    print_header,
    print_success,
    print_test_summary,
    show_help,
)
from pbcli.devserver import prepare_server_environment, run_server, validate_server_setup
from pbcli.production import production_build
from pbcli.system import BuildError, check_system_requirements
from pbcli.testsuite import run_test_only_mode


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the build tool."""
    parser = argparse.ArgumentParser(prog="pbcli", add_help=False, allow_abbrev=False)
    parser.add_argument("-install", "--install", dest="install", action="store_true",
                        help="Install project dependencies")
    parser.add_argument("-build-only", "--build-only", dest="build_only",
                        action="store_true",
                        help="Build frontend without running the server")
    parser.add_argument("-run-only", "--run-only", dest="run_only", action="store_true",
                        help="Run the server without building the frontend")
    parser.add_argument("-production", "--production", dest="production",
                        action="store_true",
                        help="Create a production build in dist folder")
    parser.add_argument("-test-only", "--test-only", dest="test_only",
                        action="store_true",
                        help="Run test suite and generate reports only")
    parser.add_argument("-dist", "--dist", dest="dist", default="dist",
                        help="Output directory for production build")
    parser.add_argument("-help", "--help", dest="help", action="store_true",
                        help="Show help and usage information")
    return parser


def _check_requirements() -> None:
    try:
        check_system_requirements()
    except BuildError as exc:
        raise BuildError(f"system requirements not met: {exc}") from exc


def _prepare_server(root: Path) -> None:
    try:
        validate_server_setup(root)
    except BuildError as exc:
        raise BuildError(f"server setup validation failed: {exc}") from exc
    try:
        prepare_server_environment(root)
    except BuildError as exc:
        raise BuildError(f"server environment preparation failed: {exc}") from exc


def _test_only_mode(root: Path, dist_dir: str) -> None:
    print_header("test")
    _check_requirements()
    run_test_only_mode(root, dist_dir)


def _production_mode(root: Path, install_deps: bool, dist_dir: str) -> None:
    print_header("production")
    production_build(root, install_deps, dist_dir)


def _build_only_mode(root: Path, install_deps: bool) -> None:
    print_header("build")
    _check_requirements()
    build_frontend(root, install_deps)


def _run_only_mode(root: Path) -> None:
    print_header("server")
    _check_requirements()
    _prepare_server(root)
    run_server(root)


def _development_mode(root: Path, install_deps: bool) -> None:
    print_header("development")
    _check_requirements()
    try:
        build_frontend(root, install_deps)
    except BuildError as exc:
        raise BuildError(f"frontend build failed: {exc}") from exc
    _prepare_server(root)
    print_success("Build complete, starting server...")
    run_server(root)


def _is_server_mode(args: argparse.Namespace) -> bool:
    return args.run_only or not (args.production or args.build_only or args.test_only)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the build tool; return the process exit status."""
    args = build_parser().parse_args(argv)

    if args.help:
        show_help()
        return 0

    if args.production:
        operation = "prod"
    elif args.test_only:
        operation = "test"
    else:
        operation = "dev"
    print_banner(operation)

    try:
        root = Path(os.getcwd())
    except OSError as exc:
        print_error(f"Failed to get current directory: {exc}")
        return 1

    start = time.monotonic()
    try:
        if args.test_only:
            _test_only_mode(root, args.dist)
        elif args.production:
            _production_mode(root, args.install, args.dist)
        elif args.build_only:
            _build_only_mode(root, args.install)
        elif args.run_only:
            _run_only_mode(root)
        else:
            _development_mode(root, args.install)
    except BuildError as exc:
        print_error(str(exc))
        return 1

    if not args.run_only and not _is_server_mode(args) and not args.production:
        duration = time.monotonic() - start
        if args.test_only:
            print_test_summary(duration)
        else:
            print_build_summary(duration, False)
    return 0


if __name__ == "__main__":
    sys.exit(main())