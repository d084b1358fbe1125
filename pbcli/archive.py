"""Packaging a production build into a zip archive, with build metadata."""

from __future__ import annotations

import json
import os
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Union

from pbcli.build import copy_file
from pbcli.console import (
    APP_NAME,
    print_build_step,
    print_section,
    print_sub_item,
    print_warning,
)
from pbcli.system import BuildError, get_command_output

PathLike = Union[str, "os.PathLike[str]"]

_MB = 1024 * 1024


def format_bytes(size: int) -> str:
    """Render a byte count with a binary unit, e.g. ``1.5 KB``."""
    unit = 1024
    if size < unit:
        return f"{size} B"
    div, exp = unit, 0
    n = size // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit
    return f"{size / div:.1f} {'KMGTPE'[exp]}B"


def _write_dist_to_zip(dist_dir: Path, archive_path: Path) -> int:
    """Write every entry under ``dist_dir`` into a new zip; return total file bytes."""
    total_size = 0
    with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for dirpath, dirnames, filenames in os.walk(dist_dir):
            dirnames.sort()
            current = Path(dirpath)
            if current != dist_dir:
                rel_dir = current.relative_to(dist_dir).as_posix()
                zf.writestr(zipfile.ZipInfo(rel_dir + "/"), b"")
            for name in sorted(filenames):
                path = current / name
                rel = path.relative_to(dist_dir).as_posix()
                try:
                    zf.write(path, rel, compress_type=zipfile.ZIP_DEFLATED)
                except OSError as exc:
                    raise BuildError(f"failed to add file {path} to zip: {exc}") from exc
                total_size += path.stat().st_size
    return total_size


def create_project_archive(root_dir: PathLike, output_dir: PathLike) -> Path:
    """Zip ``<root_dir>/dist`` and place the archive in ``output_dir``; return its path."""
    print_section("Create Archive")
    print_build_step("Compressing build", "zip archive")

    root = Path(root_dir)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    archive_name = f"{APP_NAME}-production-{timestamp}.zip"
    # Built outside dist first so the archive never includes itself.
    temp_path = root / archive_name

    dist_dir = root / "dist"
    if not dist_dir.exists():
        raise BuildError("dist directory not found - please run production build first")

    try:
        total_size = _write_dist_to_zip(dist_dir, temp_path)
    except (OSError, BuildError) as exc:
        temp_path.unlink(missing_ok=True)
        raise BuildError(f"failed to create archive: {exc}") from exc

    final_path = Path(output_dir) / archive_name
    try:
        os.replace(temp_path, final_path)
    except OSError as exc:
        try:
            copy_file(temp_path, final_path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise BuildError(f"failed to move archive: {exc}") from exc
        temp_path.unlink(missing_ok=True)

    try:
        archive_size = final_path.stat().st_size / _MB
    except OSError:
        print_sub_item("✓", "Archive created")
    else:
        if total_size > 0:
            ratio = (1.0 - archive_size / (total_size / _MB)) * 100
            print_sub_item(
                "✓",
                f"Archive: {archive_name} ({archive_size:.1f} MB, {ratio:.0f}% compressed)",
            )
        else:
            print_sub_item("✓", f"Archive: {archive_name} ({archive_size:.1f} MB)")

    return final_path


def generate_package_metadata(root_dir: PathLike, output_dir: PathLike) -> None:
    """Write build-info.txt and package-metadata.json into ``output_dir``."""
    print_section("Build Metadata")
    print_build_step("Generating metadata", "build info + deployment config")

    go_version = get_command_output("go", "version")
    node_version = get_command_output("node", "--version")
    npm_version = get_command_output("npm", "--version")
    git_commit = get_command_output("git", "rev-parse", "HEAD")
    git_branch = get_command_output("git", "rev-parse", "--abbrev-ref", "HEAD")
    git_tag = get_command_output("git", "describe", "--tags", "--exact-match")

    build_time = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    output = Path(output_dir)

    lines = [
        f"{APP_NAME} Production Build",
        "============================",
        "",
        f"Build Time: {build_time}",
        "Build Type: Production",
        "",
        "Environment:",
        f"  Go Version: {go_version}",
        f"  Node.js: {node_version}",
        f"  npm: {npm_version}",
        "",
        "Git Information:",
        f"  Branch: {git_branch}",
        f"  Commit: {git_commit}",
    ]
    if git_tag not in ("unknown", ""):
        lines.append(f"  Tag: {git_tag}")
    lines += [
        "",
        "Contents:",
        f"  - {APP_NAME} server binary",
        "  - Frontend static files (pb_public/)",
        "  - Build metadata and reports",
    ]

    try:
        (output / "build-info.txt").write_text("\n".join(lines) + "\n", encoding="utf-8")
    except OSError as exc:
        raise BuildError(f"failed to create build info file: {exc}") from exc

    metadata = {
        "name": APP_NAME,
        "version": "1.0.0",
        "buildTime": build_time,
        "buildType": "production",
        "environment": {"go": go_version, "node": node_version, "npm": npm_version},
        "git": {"branch": git_branch, "commit": git_commit, "tag": git_tag},
        "contents": ["server binary", "frontend assets", "build metadata"],
    }
    try:
        (output / "package-metadata.json").write_text(
            json.dumps(metadata, indent=2), encoding="utf-8"
        )
    except OSError as exc:
        raise BuildError(f"failed to write metadata: {exc}") from exc

    print_sub_item("✓", "Metadata files created")


def validate_archive(archive_path: PathLike) -> bool:
    """Check that the archive opens and is not empty; return whether it holds the server binary."""
    print_build_step("Validating archive", "integrity check")

    path = Path(archive_path)
    if not path.exists():
        raise BuildError(f"archive not found: {path}")

    try:
        with zipfile.ZipFile(path) as zf:
            names = zf.namelist()
    except (OSError, zipfile.BadZipFile) as exc:
        raise BuildError(f"failed to open archive: {exc}") from exc

    if not names:
        raise BuildError("archive is empty")

    required = (APP_NAME, APP_NAME + ".exe")
    has_binary = any(name.endswith(suffix) for name in names for suffix in required)
    if not has_binary:
        print_warning("Server binary not found in archive")

    print_sub_item("✓", "Archive validated")
    return has_binary