"""
Integration Tests for run.py CLI.

Runs the script in a subprocess, exactly as a developer would.
"""

import subprocess
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent.parent


def run_cli(*args: str, cwd: Path = PROJECT_ROOT) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, str(PROJECT_ROOT / "run.py"), *args],
        cwd=cwd,
        capture_output=True,
        text=True,
    )


class TestRunCLI:
    """Integration tests for run.py command-line interface."""

    def test_help(self):
        result = run_cli("--help")

        assert result.returncode == 0
        assert "Usage:" in result.stdout
        assert "--action" in result.stdout

    def test_info(self):
        result = run_cli("--action", "info")

        assert result.returncode == 0
        assert "Trudify" in result.stdout

    def test_config_reads_yaml(self):
        result = run_cli("--action", "config")

        assert result.returncode == 0
        assert "site_url: https://trudify.com" in result.stdout
        assert "bot_username: TrudifyBot" in result.stdout

    def test_invalid_action(self):
        result = run_cli("--action", "invalid")

        assert result.returncode != 0
        assert "Invalid value" in result.stderr

    def test_set_webhook_without_base_url(self):
        result = run_cli("--action", "set-webhook")

        assert result.returncode == 1
        assert "--base-url is required" in result.stderr

    def test_runs_from_another_directory(self, tmp_path):
        """PROJECT_ROOT is the script's own directory, not the cwd."""
        result = run_cli("--action", "info", cwd=tmp_path)

        assert result.returncode == 0
