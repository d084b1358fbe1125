import subprocess
import sys
from unittest.mock import patch

import pytest

from pbcli.system import (
    BuildError,
    check_command,
    check_system_requirements,
    get_command_output,
)

MISSING_COMMAND = "pbcli-no-such-command-for-tests"


def _fake_run(outputs, missing=()):
    def run(cmd, *args, **kwargs):
        if cmd[0] in missing:
            raise FileNotFoundError(cmd[0])
        return subprocess.CompletedProcess(cmd, 0, stdout=outputs.get(cmd[0], ""))

    return run


def test_check_command_success():
    assert check_command(sys.executable, "-c", "pass") is True


def test_check_command_nonzero_exit():
    assert check_command(sys.executable, "-c", "import sys; sys.exit(3)") is False


def test_check_command_missing_program():
    assert check_command(MISSING_COMMAND) is False


def test_get_command_output_is_stripped():
    text = "hello output"
    result = get_command_output(sys.executable, "-c", f"print('  {text}  ')")
    assert result == text


def test_get_command_output_failure_is_unknown():
    assert get_command_output(sys.executable, "-c", "import sys; sys.exit(1)") == "unknown"
    assert get_command_output(MISSING_COMMAND) == "unknown"


def test_check_system_requirements_reports_versions(capsys):
    outputs = {
        "go": "go version go1.22.1 linux/amd64\n",
        "node": "v20.1.0\n",
        "npm": "10.2.0\n",
        "git": "git version 2.43.0\n",
    }
    with patch("subprocess.run", side_effect=_fake_run(outputs)):
        check_system_requirements()
    out = capsys.readouterr().out
    assert "System Requirements" in out
    assert "Go ready (go1.22.1)" in out
    assert "Node.js ready (20.1.0)" in out
    assert "npm ready (10.2.0)" in out
    assert "Git ready (git version 2.43.0)" in out


def test_check_system_requirements_missing_tool(capsys):
    outputs = {"go": "go version go1.22.1 linux/amd64", "node": "v20.1.0"}
    with patch("subprocess.run", side_effect=_fake_run(outputs, missing={"npm"})):
        with pytest.raises(BuildError, match="npm required"):
            check_system_requirements()
    out = capsys.readouterr().out
    assert "npm not found" in out
    assert "Git" not in out