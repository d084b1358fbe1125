"""Coloured terminal output for the build tool."""

from __future__ import annotations

import platform
import sys

APP_NAME = "pb-cli"
VERSION = "1.0.0"

RESET = "\033[0m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
CYAN = "\033[36m"
GRAY = "\033[90m"
BOLD = "\033[1m"

_OS_NAMES = {"win32": "windows", "cygwin": "windows"}
_ARCH_NAMES = {"x86_64": "amd64", "aarch64": "arm64", "i386": "386", "i686": "386"}

_HELP_OPTIONS = (
    ("--help", "Show this help"),
    ("--install", "Install dependencies"),
    ("--production", "Production build"),
    ("--build-only", "Build assets only"),
    ("--run-only", "Start server only"),
    ("--test-only", "Run tests only"),
    ("--dist DIR", "Output directory"),
)

_HELP_EXAMPLES = ("pbcli", "pbcli --production", "pbcli --test-only")


def _platform_tag() -> str:
    os_name = _OS_NAMES.get(sys.platform, sys.platform)
    if os_name.startswith("linux"):
        os_name = "linux"
    machine = platform.machine().lower()
    return f"{os_name}/{_ARCH_NAMES.get(machine, machine)}"


def format_duration(seconds: float) -> str:
    """Render a duration rounded to milliseconds, e.g. ``150ms`` or ``1m2.5s``."""
    sign = "-" if seconds < 0 else ""
    ms = int(abs(seconds) * 1000 + 0.5)
    if ms == 0:
        return "0s"
    if ms < 1000:
        return f"{sign}{ms}ms"

    hours, rest = divmod(ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    whole, frac = divmod(rest, 1000)
    sec = f"{whole}.{frac:03d}".rstrip("0") if frac else str(whole)

    if hours:
        return f"{sign}{hours}h{minutes}m{sec}s"
    if minutes:
        return f"{sign}{minutes}m{sec}s"
    return f"{sign}{sec}s"


def print_version() -> str:
    """Print the application name, version and platform; return the line."""
    line = (
        f"{CYAN}▲ {BOLD}{APP_NAME} {RESET}{GRAY}v{VERSION}{RESET} "
        f"{GRAY}({_platform_tag()}){RESET}"
    )
    print(line)
    return line


def print_operation(operation: str) -> None:
    print(f"{CYAN}[>]{RESET} {operation}")


def print_step(message: str) -> None:
    print(f"{GRAY}[·]{RESET} {message}")


def print_success(message: str) -> None:
    print(f"{GREEN}[✓]{RESET} {message}")


def print_error(message: str) -> None:
    """Print an error line to standard error."""
    print(f"{RED}[✗]{RESET} {message}", file=sys.stderr)


def print_warning(message: str) -> None:
    print(f"{YELLOW}[!]{RESET} {message}")


def print_info(message: str) -> None:
    print(f"{GRAY}[i]{RESET} {message}")


def print_section(title: str) -> None:
    print(f"\n{CYAN}[>]{RESET} {BOLD}{title}{RESET}")


def print_sub_item(icon: str, message: str) -> None:
    print(f"    {GRAY}[{icon}]{RESET} {message}")


def print_test_result(
    pkg: str, passed: int, failed: int, skipped: int, duration: float, success: bool
) -> None:
    """Print one package's test outcome; ``duration`` is in seconds."""
    status, color = ("✓", GREEN) if success else ("✗", RED)
    print(f"    {color}[{status}]{RESET} {pkg} {GRAY}({int(duration * 1000)}ms){RESET}")

    parts = []
    if passed > 0:
        parts.append(f"{GREEN}{passed} passed{RESET}")
    if failed > 0:
        parts.append(f"{RED}{failed} failed{RESET}")
    if skipped > 0:
        parts.append(f"{YELLOW}{skipped} skipped{RESET}")
    if parts:
        print(f"      {GRAY}({', '.join(parts)}){RESET}")


def print_build_step(step: str, detail: str) -> None:
    print(f"{GRAY}[·]{RESET} {step} {GRAY}({detail}){RESET}")


def print_build_summary(duration: float, is_production: bool) -> None:
    build_type = "prod" if is_production else "dev"
    print(
        f"{GREEN}[✓]{RESET} Build complete "
        f"{GRAY}({build_type}, {format_duration(duration)}){RESET}"
    )


def print_test_summary(duration: float) -> None:
    print(f"{GREEN}[✓]{RESET} Tests complete {GRAY}({format_duration(duration)}){RESET}")
    print(f"{GRAY}[i]{RESET} Reports: test-summary.txt, test-report.json, coverage.html")


def show_help() -> str:
    """Print usage information and return the text printed."""
    lines = [
        f"{CYAN}▲ {BOLD}{APP_NAME}{RESET} {GRAY}v{VERSION}{RESET}"
        " - PocketBase deployment automation",
        "",
        f"{BOLD}USAGE:{RESET}",
        "  pbcli [options]",
        "",
        f"{BOLD}OPTIONS:{RESET}",
    ]
    lines.extend(f"  {flag:<16}{text}" for flag, text in _HELP_OPTIONS)
    lines.append("")
    lines.append(f"{BOLD}EXAMPLES:{RESET}")
    lines.extend(f"  {example}" for example in _HELP_EXAMPLES)
    text = "\n".join(lines) + "\n"
    sys.stdout.write(text)
    return text


def print_banner(operation: str) -> None:
    print_version()
    print_operation(operation)


def print_header(title: str) -> None:
    print_operation(title)