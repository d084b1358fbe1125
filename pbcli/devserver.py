"""Validating, preparing and starting the development server."""

from __future__ import annotations

import os
import subprocess
import tempfile
from pathlib import Path
from typing import Union

from pbcli.console import (
    APP_NAME,
    format_duration,
    print_header,
    print_step,
    print_success,
    print_warning,
)
from pbcli.system import BuildError, get_command_output

PathLike = Union[str, "os.PathLike[str]"]

_SERVE_ARGS = ["go", "run", "./cmd/server", "--dev", "serve"]


def run_server(root_dir: PathLike) -> None:
    """Run the development server in the foreground until it exits."""
    print_header("server")
    print_step("Starting dev server")
    try:
        result = subprocess.run(_SERVE_ARGS, cwd=os.fspath(root_dir), check=False)
    except OSError as exc:
        raise BuildError(str(exc)) from exc
    if result.returncode != 0:
        raise BuildError(f"exit status {result.returncode}")


def validate_server_setup(root_dir: PathLike) -> None:
    """Raise BuildError unless cmd/server and its main.go exist."""
    print_step("Validating server")

    server_dir = Path(root_dir) / "cmd" / "server"
    if not server_dir.exists():
        raise BuildError(f"server directory not found at {server_dir}")

    main_file = server_dir / "main.go"
    if not main_file.exists():
        raise BuildError(f"server main file not found at {main_file}")

    print_success("Server validated")


def start_server_with_timeout(root_dir: PathLike, timeout: float) -> None:
    """Run the server, killing it and raising BuildError after ``timeout`` seconds."""
    print_header("server (timeout)")
    validate_server_setup(root_dir)

    print_step(f"Starting server ({format_duration(timeout)} timeout)")
    try:
        process = subprocess.Popen(_SERVE_ARGS, cwd=os.fspath(root_dir))
    except OSError as exc:
        raise BuildError(str(exc)) from exc

    try:
        returncode = process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()
        raise BuildError(
            f"server startup timed out after {format_duration(timeout)}"
        ) from None

    if returncode != 0:
        raise BuildError(f"exit status {returncode}")


def check_server_health(root_dir: PathLike) -> None:
    """Validate the server layout and make sure it compiles."""
    print_step("Health check")
    validate_server_setup(root_dir)

    print_step("Testing compilation")
    test_binary = Path(tempfile.gettempdir()) / f"{APP_NAME}-test"
    try:
        result = subprocess.run(
            ["go", "build", "-o", os.fspath(test_binary), "./cmd/server"],
            cwd=os.fspath(root_dir),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError as exc:
        raise BuildError(f"server compilation failed: {exc}") from exc
    if result.returncode != 0:
        raise BuildError(f"server compilation failed: exit status {result.returncode}")

    test_binary.unlink(missing_ok=True)
    print_success("Health check passed")


def get_server_info(root_dir: PathLike) -> dict[str, str]:
    """Describe the server's location and toolchain; raise if the server is missing."""
    server_dir = Path(root_dir) / "cmd" / "server"
    info = {
        "serverDir": os.fspath(server_dir),
        "mainFile": os.fspath(server_dir / "main.go"),
        "goVersion": get_command_output("go", "version"),
    }
    if not server_dir.exists():
        raise BuildError("server directory not found")
    info["status"] = "ready"
    return info


def prepare_server_environment(root_dir: PathLike) -> None:
    """Ensure pb_public exists and that the Go module is initialised."""
    print_step("Preparing environment")

    root = Path(root_dir)
    try:
        (root / "pb_public").mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        print_warning(f"Failed to create pb_public directory: {exc}")

    if not (root / "go.mod").exists():
        raise BuildError("go.mod not found - please ensure Go module is initialized")

    print_success("Environment ready")