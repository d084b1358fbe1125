"""Frontend building, static asset copying, server compilation and dependency setup."""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
import time
from enum import Enum
from pathlib import Path
from typing import Union

from pbcli.console import (
    APP_NAME,
    _platform_tag,
    format_duration,
    print_build_step,
    print_info,
    print_section,
    print_step,
    print_sub_item,
    print_success,
    print_warning,
)
from pbcli.system import BuildError

PathLike = Union[str, "os.PathLike[str]"]

_BUILD_DIR_CANDIDATES = ("build", "dist", "static")


class FrontendType(Enum):
    """Kind of frontend found in a project."""

    NONE = 0
    STATIC = 1
    NPM = 2


def _run(args: list[str], cwd: PathLike, failure: str) -> None:
    """Run a command with inherited output; raise BuildError if it fails."""
    try:
        result = subprocess.run(args, cwd=os.fspath(cwd), check=False)
    except OSError as exc:
        raise BuildError(f"{failure}: {exc}") from exc
    if result.returncode != 0:
        raise BuildError(f"{failure}: exit status {result.returncode}")


def _raise(error: OSError) -> None:
    raise error


def detect_frontend_type(frontend_dir: PathLike) -> FrontendType:
    """Classify the frontend directory as absent, static files or an npm project."""
    frontend = Path(frontend_dir)
    if not frontend.exists():
        return FrontendType.NONE
    if (frontend / "package.json").exists():
        return FrontendType.NPM
    return FrontendType.STATIC


def validate_frontend_setup(frontend_dir: PathLike) -> None:
    """Raise BuildError unless the frontend directory and its package.json exist."""
    frontend = Path(frontend_dir)
    if not frontend.exists():
        raise BuildError(f"frontend directory not found at {frontend}")
    package_json = frontend / "package.json"
    if not package_json.exists():
        raise BuildError(f"package.json not found at {package_json}")


def copy_file(src: PathLike, dst: PathLike) -> None:
    """Copy one file's contents, creating the destination's parent directories."""
    destination = Path(dst)
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(src, destination)


def copy_dir(src: PathLike, dst: PathLike) -> None:
    """Recursively copy the tree at ``src`` into ``dst``."""
    source = Path(src)
    target = Path(dst)
    if not source.exists():
        raise FileNotFoundError(f"no such file or directory: {source}")
    if not source.is_dir():
        copy_file(source, target)
        return

    for dirpath, _dirnames, filenames in os.walk(source, onerror=_raise):
        current = Path(dirpath)
        destination = target / current.relative_to(source)
        destination.mkdir(parents=True, exist_ok=True)
        for name in filenames:
            copy_file(current / name, destination / name)


def copy_static_files(root_dir: PathLike, frontend_dir: PathLike) -> None:
    """Copy a static frontend into the project's pb_public directory."""
    pb_public = Path(root_dir) / "pb_public"
    try:
        pb_public.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise BuildError(f"failed to create pb_public directory: {exc}") from exc

    try:
        copy_dir(frontend_dir, pb_public)
    except OSError as exc:
        raise BuildError(f"failed to copy static files: {exc}") from exc


def build_frontend(root_dir: PathLike, install_deps: bool) -> None:
    """Build or copy the frontend into pb_public according to its type."""
    frontend = Path(root_dir) / "frontend"
    frontend_type = detect_frontend_type(frontend)

    if frontend_type is FrontendType.NONE:
        print_sub_item("i", "No frontend found, skipping")
        return

    if frontend_type is FrontendType.STATIC:
        print_section("Build Assets")
        print_build_step("Copying static files", "frontend → pb_public")
        copy_static_files(root_dir, frontend)
        return

    print_section("Build Assets")
    print_build_step("Frontend build", "npm")
    validate_frontend_setup(frontend)
    if install_deps:
        install_dependencies(root_dir, frontend)
    build_frontend_core(frontend)
    copy_frontend_to_pb_public(root_dir, frontend)


def build_frontend_production(root_dir: PathLike, install_deps: bool) -> None:
    """Build the frontend for a production release."""
    build_frontend(root_dir, install_deps)


def build_frontend_core(frontend_dir: PathLike) -> None:
    """Run ``npm run build`` in the frontend directory."""
    start = time.monotonic()
    _run(["npm", "run", "build"], frontend_dir, "npm run build failed")
    duration = time.monotonic() - start
    print_sub_item("✓", f"Frontend built ({format_duration(duration)})")


def find_build_directory(frontend_dir: PathLike) -> Path:
    """Locate the frontend's build output, falling back to the directory itself."""
    frontend = Path(frontend_dir)
    for name in _BUILD_DIR_CANDIDATES:
        candidate = frontend / name
        if candidate.exists():
            return candidate

    try:
        entries = list(os.scandir(frontend))
    except OSError as exc:
        raise BuildError(f"could not read frontend directory: {exc}") from exc

    if any(not entry.is_dir() for entry in entries):
        print_info("Using frontend dir directly")
        return frontend

    raise BuildError(
        f"no build directory found in [{' '.join(_BUILD_DIR_CANDIDATES)}] "
        "and no files to copy in frontend directory"
    )


def copy_frontend_to_pb_public(root_dir: PathLike, frontend_dir: PathLike) -> None:
    """Replace pb_public with the contents of the frontend build output."""
    pb_public = Path(root_dir) / "pb_public"
    try:
        if pb_public.exists():
            shutil.rmtree(pb_public)
    except OSError as exc:
        raise BuildError(f"failed to clean pb_public: {exc}") from exc

    try:
        pb_public.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise BuildError(f"failed to create pb_public: {exc}") from exc

    try:
        build_dir = find_build_directory(frontend_dir)
    except BuildError as exc:
        raise BuildError(f"failed to find frontend build: {exc}") from exc

    try:
        copy_dir(build_dir, pb_public)
    except OSError as exc:
        raise BuildError(f"failed to copy frontend build: {exc}") from exc


def copy_frontend_to_dist(root_dir: PathLike, output_dir: PathLike) -> None:
    """Copy frontend assets into ``<output_dir>/pb_public`` for a release."""
    root = Path(root_dir)
    frontend = root / "frontend"
    frontend_type = detect_frontend_type(frontend)

    pb_public = Path(output_dir) / "pb_public"
    try:
        pb_public.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise BuildError(f"failed to create dist pb_public: {exc}") from exc

    if frontend_type is FrontendType.NONE:
        existing = root / "pb_public"
        if existing.exists():
            try:
                copy_dir(existing, pb_public)
            except OSError as exc:
                raise BuildError(
                    f"failed to copy existing pb_public to dist: {exc}"
                ) from exc
        return

    if frontend_type is FrontendType.STATIC:
        try:
            copy_dir(frontend, pb_public)
        except OSError as exc:
            raise BuildError(f"failed to copy static frontend to dist: {exc}") from exc
        return

    try:
        build_dir = find_build_directory(frontend)
    except BuildError as exc:
        raise BuildError(f"failed to find frontend build for dist: {exc}") from exc
    try:
        copy_dir(build_dir, pb_public)
    except OSError as exc:
        raise BuildError(f"failed to copy frontend build to dist: {exc}") from exc


def build_server_binary(root_dir: PathLike, output_dir: PathLike) -> Path:
    """Compile the server into ``output_dir`` and return the binary's path."""
    print_section("Build Binary")

    binary_name = APP_NAME + (".exe" if sys.platform in ("win32", "cygwin") else "")
    output_path = Path(output_dir) / binary_name

    print_build_step("Compiling server", _platform_tag())

    start = time.monotonic()
    _run(
        ["go", "build", "-ldflags", "-s -w", "-o", os.fspath(output_path), "./cmd/server"],
        root_dir,
        "server binary build failed",
    )
    duration = format_duration(time.monotonic() - start)

    try:
        size_mb = output_path.stat().st_size / (1024 * 1024)
    except OSError:
        print_sub_item("✓", f"Binary built ({duration})")
    else:
        print_sub_item(
            "✓", f"Binary built: {binary_name} ({size_mb:.1f} MB, {duration})"
        )
    return output_path


def install_dependencies(root_dir: PathLike, frontend_dir: PathLike) -> None:
    """Install Go modules and, for an npm frontend, its packages."""
    install_go_dependencies(root_dir)
    if detect_frontend_type(frontend_dir) is FrontendType.NPM:
        install_npm_dependencies(frontend_dir)


def install_go_dependencies(root_dir: PathLike) -> None:
    """Tidy and download the Go module dependencies."""
    print_step("Installing Go deps")
    _run(["go", "mod", "tidy"], root_dir, "go mod tidy failed")

    print_step("Downloading Go modules")
    _run(["go", "mod", "download"], root_dir, "go mod download failed")


def install_npm_dependencies(frontend_dir: PathLike) -> None:
    """Install npm packages, using ``npm ci`` when a lock file exists."""
    print_step("Installing npm deps")

    if (Path(frontend_dir) / "package-lock.json").exists():
        print_step("Using npm ci")
        args = ["npm", "ci"]
    else:
        print_step("Using npm install")
        args = ["npm", "install"]

    _run(args, frontend_dir, "npm install failed")


def validate_dependencies(root_dir: PathLike, frontend_dir: PathLike) -> None:
    """Check that go.mod, package.json and node_modules are present."""
    print_step("Validating dependencies")

    go_mod = Path(root_dir) / "go.mod"
    if not go_mod.exists():
        raise BuildError(f"go.mod not found at {go_mod}")

    package_json = Path(frontend_dir) / "package.json"
    if not package_json.exists():
        raise BuildError(f"package.json not found at {package_json}")

    node_modules = Path(frontend_dir) / "node_modules"
    if not node_modules.exists():
        print_warning("node_modules missing")
        raise BuildError(f"node_modules directory not found at {node_modules}")

    print_success("Dependencies validated")