import json
from pathlib import Path

import pytest

from pbcli.system import BuildError
from pbcli.testsuite import (
    PackageResult,
    SuiteResult,
    analyze_test_results,
    discover_test_packages,
    generate_html_coverage_report,
    generate_test_report,
    generate_test_summary,
    has_go_test_files,
    parse_test_output,
    run_test_package,
    run_test_suite,
    run_test_suite_and_generate_report,
    validate_test_environment,
)


def _touch(path: Path, content: str = "") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


@pytest.fixture
def project(tmp_path):
    _touch(tmp_path / "main_test.go")
    _touch(tmp_path / "core" / "logging" / "logging_test.go")
    _touch(tmp_path / "core" / "logging" / "error_handler_test.go")
    _touch(tmp_path / "sub" / "a_test.go")
    _touch(tmp_path / "nontest" / "main.go")
    for skipped in ("vendor", "node_modules", "dist", "pb_data", "pb_public", "frontend", ".git"):
        _touch(tmp_path / skipped / "x_test.go")
    return tmp_path


def test_discover_test_packages_skips_ignored_dirs(project):
    packages = discover_test_packages(project)
    assert packages == [".", "./core/logging", "./sub"]


def test_discover_test_packages_is_sorted_and_unique(project):
    packages = discover_test_packages(project)
    assert packages == sorted(set(packages))


def test_discover_test_packages_empty(tmp_path):
    _touch(tmp_path / "main.go")
    assert discover_test_packages(tmp_path) == []


def test_parse_test_output_counts():
    pass_lines = ["--- PASS: TestOne (0.00s)", "    --- PASS: TestTwo (0.00s)"]
    fail_lines = ["--- FAIL: TestBroken (0.01s)"]
    skip_lines = ["--- SKIP: TestLater (0.00s)"]
    output = "\n".join(["=== RUN   TestOne", *pass_lines, *fail_lines, *skip_lines, "FAIL"])

    result = parse_test_output("./core", output, 0.5, True)

    assert result.package == "./core"
    assert result.passed == len(pass_lines)
    assert result.failed == len(fail_lines)
    assert result.skipped == len(skip_lines)
    assert result.failed_tests == ["TestBroken"]
    assert result.success is False
    assert result.output == output.split("\n")


def test_parse_test_output_all_passing_keeps_success():
    output = "--- PASS: TestA (0.00s)\nPASS\nok  \tpkg\t0.1s"
    result = parse_test_output("./pkg", output, 0.1, True)
    assert result.success is True
    assert result.failed_tests == []


def test_parse_test_output_exit_status_marks_failure():
    output = "some build error\nFAIL\tpkg [build failed]\nFAIL exit status 1"
    result = parse_test_output("./pkg", output, 0.1, True)
    assert result.failed == 0
    assert result.success is False


def test_run_test_package_missing_package_fails(tmp_path):
    missing = str(tmp_path / "does-not-exist")
    result = run_test_package(missing)
    assert result.package == missing
    assert result.success is False


def test_run_test_suite_empty():
    suite = run_test_suite([])
    assert suite == SuiteResult(duration=suite.duration)
    assert suite.success is True
    assert suite.total_tests == 0


def test_run_suite_and_report_without_packages(tmp_path):
    root = tmp_path / "root"
    root.mkdir()
    out = tmp_path / "out"
    result = run_test_suite_and_generate_report(root, out)
    assert result is None
    assert (out / "test-reports").is_dir()


def test_analyze_test_results_coverage_and_counts():
    output = "\n".join([
        "--- PASS: TestA (0.00s)",
        "--- FAIL: TestB (0.00s)",
        "--- SKIP: TestC (0.00s)",
        "ok  \tpkg\t0.1s\tcoverage: 85.7% of statements",
    ])
    results = analyze_test_results(output, "TestB\n")
    assert results["coverage"] == "85.7%"
    assert results["status"] == "failed"
    assert results["totalTests"] == (
        results["passedTests"] + results["failedTests"] + results["skippedTests"]
    )
    assert results["hasOutput"] is True
    assert results["hasErrors"] is True


def test_analyze_test_results_no_tests():
    results = analyze_test_results("", "")
    assert results["status"] == "no_tests"
    assert results["coverage"] == "unknown"
    assert results["hasOutput"] is False
    assert results["hasErrors"] is False


def test_analyze_test_results_passed():
    results = analyze_test_results("--- PASS: TestA (0.00s)", "")
    assert results["status"] == "passed"
    assert results["failedTests"] == 0


def test_generate_test_summary_contents(tmp_path):
    path = generate_test_summary(
        tmp_path, tmp_path, 1.5, "FAILED", BuildError("test suite failed"),
        "line one\nline two\n", "TestBroken\n",
    )
    text = path.read_text()
    assert path.name == "test-summary.txt"
    assert text.startswith("pb-cli Test Suite Summary\n")
    assert "Status: FAILED\n" in text
    assert "Error: test suite failed\n" in text
    assert "Test Output:\n" in text
    assert "line one\nline two\n" in text
    assert "Error Output:\n" in text
    assert "TestBroken\n" in text


def test_generate_test_summary_without_error(tmp_path):
    text = generate_test_summary(tmp_path, tmp_path, 0.2, "PASSED", None, "", "").read_text()
    assert "Status: PASSED\n" in text
    assert "Error:" not in text
    assert "Test Output:" not in text


def test_generate_test_report_round_trip(tmp_path):
    output = 'quote " and\nnewline'
    path = generate_test_report(
        tmp_path, tmp_path, "PASSED", None, output, "", 0.3
    )
    report = json.loads(path.read_text())
    assert report["testSuite"]["status"] == "passed"
    assert report["testSuite"]["output"] == output
    assert report["testSuite"]["error"] == ""
    assert report["rootDirectory"] == str(tmp_path)
    assert set(report["environment"]) == {"goVersion", "nodeVersion", "npmVersion"}


def test_generate_test_report_error_message(tmp_path):
    path = generate_test_report(
        tmp_path, tmp_path, "FAILED", BuildError("test suite failed"), "", "TestX\n", 1.0
    )
    report = json.loads(path.read_text())
    assert report["testSuite"]["status"] == "failed"
    assert report["testSuite"]["error"] == "test suite failed"
    assert report["testSuite"]["errorOutput"] == "TestX\n"


def test_has_go_test_files(tmp_path):
    _touch(tmp_path / "a" / "main.go")
    assert has_go_test_files(tmp_path) is False
    _touch(tmp_path / "a" / "b" / "main_test.go")
    assert has_go_test_files(tmp_path) is True


def test_validate_test_environment_with_tests_dir(tmp_path, capsys):
    _touch(tmp_path / "cmd" / "tests" / "main.go")
    validate_test_environment(tmp_path)
    assert "Test environment validated" in capsys.readouterr().out


def test_validate_test_environment_missing_main(tmp_path):
    (tmp_path / "cmd" / "tests").mkdir(parents=True)
    with pytest.raises(BuildError, match="test main file not found"):
        validate_test_environment(tmp_path)


def test_validate_test_environment_no_tests(tmp_path):
    with pytest.raises(BuildError, match="no test files found"):
        validate_test_environment(tmp_path)


def test_validate_test_environment_standard_test_files(tmp_path, capsys):
    _touch(tmp_path / "pkg" / "x_test.go")
    validate_test_environment(tmp_path)
    assert "Found standard Go test files" in capsys.readouterr().out


def test_coverage_report_skipped_without_packages(tmp_path, capsys):
    result = generate_html_coverage_report(tmp_path, tmp_path, [])
    assert result is None
    assert "No test packages found, skipping coverage" in capsys.readouterr().out


def test_package_result_defaults():
    result = PackageResult(package="./x")
    assert (result.passed, result.failed, result.skipped) == (0, 0, 0)
    assert result.output == [] and result.failed_tests == []