"""Orchestrating a complete production build into a distribution directory."""

from __future__ import annotations

import os
import shutil
import time
from pathlib import Path
from typing import Union

from pbcli.archive import create_project_archive, generate_package_metadata
from pbcli.build import (
    build_frontend_production,
    build_server_binary,
    copy_frontend_to_dist,
    install_dependencies,
)
from pbcli.console import (
    APP_NAME,
    BOLD,
    CYAN,
    GRAY,
    RESET,
    format_duration,
    print_build_step,
    print_info,
    print_section,
    print_step,
    print_sub_item,
    print_success,
    print_warning,
)
from pbcli.system import BuildError, check_system_requirements
from pbcli.testsuite import run_test_suite_and_generate_report

PathLike = Union[str, "os.PathLike[str]"]

_MB = 1024 * 1024
_ESSENTIAL_FILES = ("build-info.txt", "package-metadata.json")


def _prepare_output_directory(output_dir: Path) -> None:
    """Remove and recreate the output directory."""
    print_section("Prepare Build")
    print_build_step("Cleaning output directory", os.fspath(output_dir))

    try:
        if output_dir.exists():
            shutil.rmtree(output_dir)
    except OSError as exc:
        raise BuildError(f"failed to clean dist directory: {exc}") from exc

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise BuildError(f"failed to create output directory: {exc}") from exc

    print_sub_item("✓", "Output directory ready")


def _print_deployment_integration() -> None:
    """Show how to hand the build to the deployment tool."""
    print(f"\n{CYAN}[>]{RESET} {BOLD}DEPLOYMENT INTEGRATION{RESET}\n")
    print(f"{GRAY}```{RESET}")
    print("$ cd pb-deployer && go run cmd/scripts/main.go --install")
    print(f"{GRAY}```{RESET}")


def production_build(root_dir: PathLike, install_deps: bool, dist_dir: str) -> Path:
    """Run the whole production pipeline into ``<root_dir>/<dist_dir>``; return that path."""
    root = Path(root_dir)
    output_dir = root / dist_dir
    start = time.monotonic()

    _prepare_output_directory(output_dir)

    try:
        check_system_requirements()
    except BuildError as exc:
        raise BuildError(f"system requirements not met: {exc}") from exc

    if install_deps:
        try:
            install_dependencies(root, root / "frontend")
        except BuildError as exc:
            raise BuildError(f"dependency installation failed: {exc}") from exc

    try:
        build_frontend_production(root, install_deps)
    except BuildError as exc:
        raise BuildError(f"frontend build failed: {exc}") from exc

    try:
        copy_frontend_to_dist(root, output_dir)
    except BuildError as exc:
        raise BuildError(f"frontend copy to dist failed: {exc}") from exc

    try:
        build_server_binary(root, output_dir)
    except BuildError as exc:
        raise BuildError(f"server binary build failed: {exc}") from exc

    try:
        generate_package_metadata(root, output_dir)
    except BuildError as exc:
        print_warning(f"Failed to generate package metadata: {exc}")

    try:
        run_test_suite_and_generate_report(root, output_dir)
    except BuildError as exc:
        print_warning(f"Test suite failed: {exc}")

    try:
        create_project_archive(root, output_dir)
    except BuildError as exc:
        print_warning(f"Failed to create production archive: {exc}")

    duration = time.monotonic() - start
    print_section("Build Complete")
    print_sub_item("✓", f"Production build finished ({format_duration(duration)})")
    print_sub_item("i", f"Output: {output_dir}")

    _print_deployment_integration()
    return output_dir


def count_files_in_dir(directory: PathLike) -> int:
    """Count the regular files under ``directory``, recursively."""
    return sum(len(filenames) for _dirpath, _dirnames, filenames in os.walk(directory))


def calculate_original_size(output_dir: PathLike, archive_name: str) -> float:
    """Total size in MB of the files under ``output_dir``, ignoring the archive itself."""
    total = 0
    for dirpath, _dirnames, filenames in os.walk(output_dir):
        for name in filenames:
            if name == archive_name:
                continue
            try:
                total += (Path(dirpath) / name).stat().st_size
            except OSError:
                continue
    return total / _MB


def validate_production_build(output_dir: PathLike) -> None:
    """Raise BuildError unless the build holds a server binary and frontend assets."""
    print_step("Validating production build...")

    output = Path(output_dir)
    if not output.exists():
        raise BuildError(f"production build directory not found: {output}")

    binary = next(
        (name for name in (APP_NAME, APP_NAME + ".exe") if (output / name).exists()),
        None,
    )
    if binary is None:
        raise BuildError("server binary not found in production build")
    print_success(f"Server binary found: {binary}")

    if not (output / "pb_public").exists():
        raise BuildError("frontend assets not found: pb_public directory missing")
    print_success("Frontend assets found")

    for name in _ESSENTIAL_FILES:
        if (output / name).exists():
            print_success(f"Metadata file found: {name}")
        else:
            print_warning(f"Optional file missing: {name}")

    print_success("Production build validation completed")


def clean_production_build(root_dir: PathLike, dist_dir: str) -> bool:
    """Remove a previous build; return False if there was nothing to remove."""
    print_step("Cleaning previous production builds...")

    output = Path(root_dir) / dist_dir
    if not output.exists():
        print_info("No previous build to clean")
        return False

    try:
        shutil.rmtree(output)
    except OSError as exc:
        raise BuildError(f"failed to clean production build: {exc}") from exc

    print_success("Previous production builds cleaned")
    return True