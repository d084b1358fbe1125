"""Running external tools and checking that they are installed."""

from __future__ import annotations

import subprocess

from pbcli.console import print_section, print_sub_item


class BuildError(Exception):
    """Raised when a build, test or setup step fails."""


_REQUIREMENTS = (
    ("Go", "go", ("version",)),
    ("Node.js", "node", ("--version",)),
    ("npm", "npm", ("--version",)),
    ("Git", "git", ("--version",)),
)


def check_command(command: str, *args: str) -> bool:
    """Return True if the command runs and exits successfully."""
    try:
        result = subprocess.run(
            [command, *args],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError:
        return False
    return result.returncode == 0


def get_command_output(command: str, *args: str) -> str:
    """Return the stripped standard output of a command, or ``unknown`` on failure."""
    try:
        result = subprocess.run(
            [command, *args],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            check=False,
        )
    except OSError:
        return "unknown"
    if result.returncode != 0:
        return "unknown"
    return (result.stdout or "").strip()


def check_system_requirements() -> None:
    """Verify Go, Node.js, npm and Git are available; raise BuildError otherwise."""
    print_section("System Requirements")

    for name, command, args in _REQUIREMENTS:
        if not check_command(command, *args):
            print_sub_item("✗", f"{name} not found")
            raise BuildError(f"{name} required")

        version = get_command_output(command, *args)
        if name == "Go" and "go version" in version:
            parts = version.split()
            if len(parts) >= 3:
                version = parts[2]
        if name in ("Node.js", "npm"):
            version = version.removeprefix("v")
        print_sub_item("✓", f"{name} ready ({version})")