"""Discovering, running and reporting on the project's Go test packages."""

from __future__ import annotations

import json
import os
import re
import subprocess
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence, Union

from pbcli.build import copy_file
from pbcli.console import (
    APP_NAME,
    GRAY,
    GREEN,
    RED,
    RESET,
    format_duration,
    print_error,
    print_info,
    print_section,
    print_step,
    print_sub_item,
    print_success,
    print_test_result,
    print_warning,
)
from pbcli.system import BuildError, get_command_output

PathLike = Union[str, "os.PathLike[str]"]

TEST_COMMAND = "pbcli --test-only"

_SKIPPED_DIRS = frozenset(
    {"vendor", "node_modules", "dist", "pb_data", "pb_public", "frontend"}
)
_PASS_RE = re.compile(r"^\s*--- PASS: (\w+)", re.ASCII)
_FAIL_RE = re.compile(r"^\s*--- FAIL: (\w+)", re.ASCII)
_SKIP_RE = re.compile(r"^\s*--- SKIP: (\w+)", re.ASCII)
_RULE = "-" * 40


@dataclass
class PackageResult:
    """Outcome of running the tests of one package; ``duration`` is in seconds."""

    package: str
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    duration: float = 0.0
    success: bool = False
    output: list[str] = field(default_factory=list)
    failed_tests: list[str] = field(default_factory=list)


@dataclass
class SuiteResult:
    """Combined outcome of every package in a test run."""

    results: list[PackageResult] = field(default_factory=list)
    total_passed: int = 0
    total_failed: int = 0
    total_tests: int = 0
    duration: float = 0.0
    success: bool = True


def _run_captured(
    args: Sequence[str], cwd: Optional[PathLike] = None, merge_stderr: bool = False
) -> Optional[subprocess.CompletedProcess]:
    """Run a command with captured output; None if it could not be started."""
    try:
        return subprocess.run(
            list(args),
            cwd=os.fspath(cwd) if cwd is not None else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if merge_stderr else subprocess.PIPE,
            check=False,
        )
    except OSError:
        return None


def discover_test_packages(root: PathLike) -> list[str]:
    """Return sorted ``./dir`` package paths under ``root`` that hold ``_test.go`` files."""
    base = Path(root)
    packages: set[str] = set()

    for dirpath, dirnames, filenames in os.walk(base):
        dirnames[:] = [
            name
            for name in dirnames
            if not name.startswith(".") and name not in _SKIPPED_DIRS
        ]
        if any(
            name.endswith("_test.go") and not name.startswith(".") for name in filenames
        ):
            rel = Path(dirpath).relative_to(base).as_posix()
            packages.add("." if rel == "." else "./" + rel)

    return sorted(packages)


def parse_test_output(
    package: str, output: str, duration: float, success: bool
) -> PackageResult:
    """Count passed, failed and skipped tests in verbose ``go test`` output."""
    result = PackageResult(package=package, duration=duration, success=success)

    for line in output.split("\n"):
        result.output.append(line)
        if _PASS_RE.match(line):
            result.passed += 1
        elif match := _FAIL_RE.match(line):
            result.failed += 1
            result.failed_tests.append(match.group(1))
        elif _SKIP_RE.match(line):
            result.skipped += 1
        elif "FAIL" in line and "exit status" in line:
            result.success = False

    if result.failed > 0:
        result.success = False
    return result


def run_test_package(package_path: str) -> PackageResult:
    """Run ``go test -v`` on one package and parse what it printed."""
    start = time.monotonic()
    completed = _run_captured(["go", "test", "-v", package_path], merge_stderr=True)
    duration = time.monotonic() - start

    if completed is None:
        return parse_test_output(package_path, "", duration, False)

    output = completed.stdout.decode("utf-8", errors="replace")
    return parse_test_output(package_path, output, duration, completed.returncode == 0)


def run_test_suite(packages: Sequence[str]) -> SuiteResult:
    """Run every package in turn, printing each result and a summary."""
    suite = SuiteResult()

    print_section("Test Execution")
    print(f"    {GRAY}Packages: {len(packages)}{RESET}")

    start = time.monotonic()
    for package in packages:
        result = run_test_package(package)
        suite.results.append(result)
        print_test_result(
            package,
            result.passed,
            result.failed,
            result.skipped,
            result.duration,
            result.success,
        )
        suite.total_passed += result.passed
        suite.total_failed += result.failed
        suite.total_tests += result.passed + result.failed + result.skipped
        if not result.success:
            suite.success = False
    suite.duration = time.monotonic() - start

    print_section("Test Summary")
    elapsed = format_duration(suite.duration)
    if suite.success:
        print(
            f"    {GREEN}[✓]{RESET} All tests passed "
            f"{GRAY}({suite.total_passed}/{suite.total_tests}, {elapsed}){RESET}"
        )
    else:
        print(
            f"    {RED}[✗]{RESET} Tests failed {GRAY}({suite.total_passed} passed, "
            f"{suite.total_failed} failed, {elapsed}){RESET}"
        )
    return suite


def run_test_suite_and_generate_report(
    root_dir: PathLike, output_dir: PathLike
) -> Optional[SuiteResult]:
    """Run all discovered tests and write reports to ``<output_dir>/test-reports``.

    Returns None when there are no test packages; raises BuildError if tests fail.
    """
    reports_dir = Path(output_dir) / "test-reports"
    try:
        reports_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise BuildError(f"failed to create test reports directory: {exc}") from exc

    packages = discover_test_packages(root_dir)
    if not packages:
        print_warning("No test packages found")
        return None

    suite = run_test_suite(packages)

    status = "PASSED" if suite.success else "FAILED"
    test_error = None if suite.success else BuildError("test suite failed")

    all_output = "".join(
        line + "\n" for result in suite.results for line in result.output
    )
    all_errors = "".join(
        name + "\n" for result in suite.results for name in result.failed_tests
    )

    # Report writing is best effort: a missing report must not hide the test outcome.
    try:
        generate_test_summary(
            root_dir, reports_dir, suite.duration, status, test_error, all_output, all_errors
        )
    except BuildError:
        pass
    try:
        generate_test_report(
            root_dir, reports_dir, status, test_error, all_output, all_errors, suite.duration
        )
    except BuildError:
        pass
    generate_html_coverage_report(root_dir, reports_dir, packages)

    print_sub_item("i", "Reports: test-summary.txt, test-report.json, coverage.html")

    if test_error is not None:
        raise BuildError(f"test suite failed: {test_error}")
    return suite


def run_test_only_mode(root_dir: PathLike, dist_dir: str) -> Optional[SuiteResult]:
    """Run only the test suite, writing reports under ``<root_dir>/<dist_dir>``."""
    output_dir = Path(root_dir) / dist_dir
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise BuildError(f"failed to create output directory: {exc}") from exc

    try:
        check_go_test_available()
    except BuildError as exc:
        print_error(f"Go toolchain not available: {exc}")
        raise

    try:
        return run_test_suite_and_generate_report(root_dir, output_dir)
    except BuildError as exc:
        raise BuildError(f"test suite failed: {exc}") from exc


def check_go_test_available() -> None:
    """Raise BuildError unless ``go version`` runs successfully."""
    completed = _run_captured(["go", "version"], merge_stderr=True)
    if completed is None:
        raise BuildError("go command not available: executable not found")
    if completed.returncode != 0:
        raise BuildError(f"go command not available: exit status {completed.returncode}")


def generate_test_summary(
    root_dir: PathLike,
    reports_dir: PathLike,
    duration: float,
    status: str,
    test_error: Optional[object],
    test_output: str,
    test_errors: str,
) -> Path:
    """Write a human-readable ``test-summary.txt`` and return its path."""
    summary_path = Path(reports_dir) / "test-summary.txt"

    parts = [
        f"{APP_NAME} Test Suite Summary\n",
        "==============================\n\n",
        f"Execution Time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n",
        f"Duration: {format_duration(duration)}\n",
        f"Root Directory: {os.fspath(root_dir)}\n\n",
        f"Go Version: {get_command_output('go', 'version')}\n",
        f"Test Command: {TEST_COMMAND}\n\n",
        f"Status: {status}\n",
    ]
    if test_error is not None:
        parts.append(f"Error: {test_error}\n")
    parts.append(f"Reports Directory: {os.fspath(reports_dir)}\n\n")

    if test_output:
        parts += [
            "Test Output:\n",
            f"{_RULE}\n\n",
            f"{test_output}\n",
            f"{_RULE}\n\n",
        ]
    if test_errors:
        parts += [
            "Error Output:\n",
            f"{_RULE}\n\n",
            f"{test_errors}\n",
            f"{_RULE}\n",
        ]

    try:
        summary_path.write_text("".join(parts), encoding="utf-8")
    except OSError as exc:
        raise BuildError(f"failed to create test summary file: {exc}") from exc
    return summary_path


def generate_test_report(
    root_dir: PathLike,
    reports_dir: PathLike,
    status: str,
    test_error: Optional[object],
    test_output: str,
    test_errors: str,
    duration: float,
) -> Path:
    """Write a JSON ``test-report.json`` describing the run and return its path."""
    report_path = Path(reports_dir) / "test-report.json"

    report = {
        "timestamp": datetime.now().astimezone().isoformat(timespec="seconds"),
        "rootDirectory": os.fspath(root_dir),
        "reportsDirectory": os.fspath(reports_dir),
        "environment": {
            "goVersion": get_command_output("go", "version"),
            "nodeVersion": get_command_output("node", "--version"),
            "npmVersion": get_command_output("npm", "--version"),
        },
        "testSuite": {
            "command": TEST_COMMAND,
            "status": status.lower(),
            "error": "" if test_error is None else str(test_error),
            "output": test_output,
            "errorOutput": test_errors,
            "duration": format_duration(duration),
        },
    }

    try:
        report_path.write_text(json.dumps(report, indent=2), encoding="utf-8")
    except OSError as exc:
        raise BuildError(f"failed to write test report: {exc}") from exc
    return report_path


def analyze_test_results(test_output: str, test_errors: str) -> dict:
    """Summarise test output: counts, coverage and an overall status."""
    results = {
        "totalTests": 0,
        "passedTests": 0,
        "failedTests": 0,
        "skippedTests": 0,
        "coverage": "unknown",
        "hasOutput": len(test_output) > 0,
        "hasErrors": len(test_errors) > 0,
    }

    for raw in test_output.split("\n") if test_output else ():
        line = raw.strip()

        if "PASS:" in line:
            results["passedTests"] += 1
            results["totalTests"] += 1
        elif "FAIL:" in line:
            results["failedTests"] += 1
            results["totalTests"] += 1
        elif "SKIP:" in line:
            results["skippedTests"] += 1
            results["totalTests"] += 1

        if "coverage:" in line and "%" in line:
            coverage_part = line.split("coverage:")[1].strip()
            idx = coverage_part.find("%")
            if idx > 0:
                results["coverage"] = coverage_part[: idx + 1].strip()

    if results["totalTests"] == 0:
        results["status"] = "no_tests"
    elif results["failedTests"] > 0:
        results["status"] = "failed"
    else:
        results["status"] = "passed"
    return results


def validate_test_environment(root_dir: PathLike) -> None:
    """Raise BuildError unless the project has a test entry point or Go test files."""
    print_step("Validating test environment...")

    tests_dir = Path(root_dir) / "cmd" / "tests"
    if not tests_dir.exists():
        print_warning(f"Dedicated tests directory not found at {tests_dir}")
        if has_go_test_files(root_dir):
            print_info("Found standard Go test files")
            return
        raise BuildError("no test files found")

    main_file = tests_dir / "main.go"
    if not main_file.exists():
        raise BuildError(f"test main file not found at {main_file}")

    print_success("Test environment validated")


def has_go_test_files(root_dir: PathLike) -> bool:
    """True if any entry under ``root_dir`` is named ``*_test.go``."""
    for _dirpath, dirnames, filenames in os.walk(root_dir):
        if any(name.endswith("_test.go") for name in (*filenames, *dirnames)):
            return True
    return False


def generate_html_coverage_report(
    root_dir: PathLike, reports_dir: PathLike, packages: Sequence[str]
) -> Optional[Path]:
    """Produce ``coverage.html`` from ``coverage.out``; return its path or None if skipped."""
    root = Path(root_dir)
    reports = Path(reports_dir).resolve()
    coverage_file = root / "coverage.out"

    if not coverage_file.exists():
        if not packages:
            print_info("No test packages found, skipping coverage")
            return None
        completed = _run_captured(
            ["go", "test", "-coverprofile=coverage.out", *packages], cwd=root
        )
        if completed is None or completed.returncode != 0:
            coverage_file.unlink(missing_ok=True)
            print_warning("Coverage generation failed, skipping HTML report")
            return None

    html_path = reports / "coverage.html"
    completed = _run_captured(
        ["go", "tool", "cover", "-html=coverage.out", "-o", os.fspath(html_path)],
        cwd=root,
    )
    if completed is None or completed.returncode != 0:
        coverage_file.unlink(missing_ok=True)
        print_warning("HTML coverage report generation failed")
        return None

    summary = _run_captured(["go", "tool", "cover", "-func=coverage.out"], cwd=root)
    if summary is not None and summary.returncode == 0:
        try:
            (reports / "coverage-summary.txt").write_bytes(summary.stdout)
        except OSError:
            pass

    kept_coverage = reports / "coverage.out"
    try:
        os.replace(coverage_file, kept_coverage)
    except OSError:
        try:
            copy_file(coverage_file, kept_coverage)
        except OSError:
            pass
        else:
            coverage_file.unlink(missing_ok=True)

    return html_path


def run_quick_tests(root_dir: PathLike) -> None:
    """Run ``go test -short ./...`` with inherited output."""
    print_step("Running quick tests...")

    start = time.monotonic()
    try:
        completed = subprocess.run(
            ["go", "test", "-short", "./..."], cwd=os.fspath(root_dir), check=False
        )
    except OSError as exc:
        raise BuildError(f"quick tests failed: {exc}") from exc
    if completed.returncode != 0:
        raise BuildError(f"quick tests failed: exit status {completed.returncode}")

    print_success(
        f"Quick tests completed in {format_duration(time.monotonic() - start)}"
    )