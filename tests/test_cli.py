"""Tests for CLI commands.

Tests all toolwarden CLI commands using Click's CliRunner:
- run: Run a shell command in the sandbox
- call: Invoke a built-in tool with JSON arguments
- tools: List built-in tools
- check-path / check-command: Report sandbox and denylist decisions
- --config / --version: Global options
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from toolwarden.cli import main


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, mocker) -> Path:
    """Keep the user's ~/.toolwarden/config.yaml out of CLI runs."""
    home = tmp_path / "home"
    home.mkdir()
    mocker.patch("toolwarden.core.config.Path.home", return_value=home)
    return home


class TestRunCommand:
    """Tests for 'toolwarden run'."""

    @pytest.mark.process
    def test_run_prints_output(self, cli_runner, sandbox_root):
        result = cli_runner.invoke(main, ["run", "echo hello-cli", "--root", sandbox_root])

        assert result.exit_code == 0
        assert "Executed command: echo hello-cli" in result.output
        assert "hello-cli" in result.output

    @pytest.mark.process
    def test_run_nonzero_exit_fails(self, cli_runner, sandbox_root):
        result = cli_runner.invoke(main, ["run", "exit 3", "--root", sandbox_root])

        assert result.exit_code == 1
        assert "TOOL_EXECUTION_FAILED" in result.output
        assert "exit code 3" in result.output

    def test_run_banned_command(self, cli_runner, sandbox_root, mocker):
        run_command = mocker.patch("toolwarden.tools.bash.run_command")

        result = cli_runner.invoke(main, ["run", "sudo ls", "--root", sandbox_root])

        assert result.exit_code == 1
        assert "TOOL_PERMISSION_DENIED" in result.output
        run_command.assert_not_called()

    def test_run_workdir_escape(self, cli_runner, sandbox_root):
        result = cli_runner.invoke(
            main, ["run", "ls", "--root", sandbox_root, "--workdir", "../.."]
        )

        assert result.exit_code == 1
        assert "TOOL_PERMISSION_DENIED" in result.output


class TestCallCommand:
    """Tests for 'toolwarden call'."""

    def test_call_read(self, cli_runner, sandbox_root):
        result = cli_runner.invoke(
            main, ["call", "read", "--root", sandbox_root, "--args", '{"path": "notes.txt"}']
        )

        assert result.exit_code == 0
        assert "1: alpha" in result.output

    def test_call_json_output(self, cli_runner, sandbox_root):
        result = cli_runner.invoke(
            main,
            ["call", "ls", "--root", sandbox_root, "--json"],
        )

        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert payload["name"] == "ls"
        assert payload["result"]["metadata"]["entryCount"] == 3
        assert payload["callId"].startswith("cli-")

    def test_call_unknown_tool(self, cli_runner, sandbox_root):
        result = cli_runner.invoke(main, ["call", "nope", "--root", sandbox_root])

        assert result.exit_code == 1
        assert "TOOL_NOT_FOUND" in result.output

    @pytest.mark.parametrize("args", ["{bad", "[1, 2]"])
    def test_call_bad_args(self, cli_runner, sandbox_root, args):
        result = cli_runner.invoke(main, ["call", "ls", "--root", sandbox_root, "--args", args])
        assert result.exit_code == 2


class TestToolsCommand:
    def test_lists_all_builtin_tools(self, cli_runner):
        result = cli_runner.invoke(main, ["tools"])

        assert result.exit_code == 0
        for name in ("bash", "read", "write", "edit", "glob", "grep", "ls"):
            assert name in result.output


class TestCheckCommands:
    """Tests for 'toolwarden check-path' and 'toolwarden check-command'."""

    def test_check_path_allowed(self, cli_runner, sandbox_root):
        result = cli_runner.invoke(main, ["check-path", "src/main.py", "--root", sandbox_root])

        assert result.exit_code == 0
        assert "Allowed" in result.output

    def test_check_path_denied(self, cli_runner, sandbox_root):
        result = cli_runner.invoke(main, ["check-path", "../../etc", "--root", sandbox_root])

        assert result.exit_code == 1
        assert "path_outside_sandbox" in result.output

    def test_check_command_allowed(self, cli_runner):
        result = cli_runner.invoke(main, ["check-command", "ls -la"])

        assert result.exit_code == 0
        assert "Allowed" in result.output

    def test_check_command_denied(self, cli_runner):
        result = cli_runner.invoke(main, ["check-command", "shutdown now"])

        assert result.exit_code == 1
        assert "shutdown" in result.output


class TestGlobalOptions:
    def test_version(self, cli_runner):
        result = cli_runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_invalid_config_file(self, cli_runner, tmp_path):
        config = tmp_path / "bad.yaml"
        config.write_text("unknown_key: 1\n")

        result = cli_runner.invoke(main, ["--config", str(config), "tools"])

        assert result.exit_code == 2
        assert "Config error" in result.output

    @pytest.mark.process
    def test_config_limits_are_applied(self, cli_runner, sandbox_root, tmp_path):
        config = tmp_path / "limits.yaml"
        config.write_text("max_output_lines: 2\n")

        result = cli_runner.invoke(
            main, ["--config", str(config), "run", "seq 1 50", "--root", sandbox_root]
        )

        assert result.exit_code == 0
        assert "Output truncated" in result.output
