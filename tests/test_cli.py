"""Integration tests for the command-line interface."""

import json
from pathlib import Path

from typer.testing import CliRunner

from recovercheck import __version__
from recovercheck.cli import app

runner = CliRunner()


class TestCheckCommand:
    """Tests for 'recovercheck check'."""

    def test_reports_unsafe_goroutines(self, goproject_path: Path):
        result = runner.invoke(app, ["check", str(goproject_path)])

        assert result.exit_code == 1
        assert result.stdout.count("goroutine created without panic recovery") == 4
        assert "unsafe.go:6:2" in result.stdout
        assert "4 issue(s)" in result.stdout

    def test_skip_test_files_flag(self, goproject_path: Path):
        result = runner.invoke(app, ["check", str(goproject_path), "--skip-test-files"])

        assert result.exit_code == 1
        assert result.stdout.count("goroutine created without panic recovery") == 3
        assert "unsafe_test.go" not in result.stdout

    def test_clean_project_exits_zero(self, goproject_path: Path):
        result = runner.invoke(app, ["check", str(goproject_path / "recovery")])

        assert result.exit_code == 0
        assert "No unrecovered goroutines" in result.stdout

    def test_json_output(self, goproject_path: Path):
        result = runner.invoke(app, ["check", str(goproject_path), "--format", "json", "--skip-test-files"])

        assert result.exit_code == 1
        payload = json.loads(result.stdout)
        assert [item["line"] for item in payload] == [6, 12, 19]
        assert {item["kind"] for item in payload} == {"unsafe-launch"}
        assert all(item["file"].endswith("unsafe.go") for item in payload)

    def test_config_file_option(self, goproject_path: Path, temp_dir: Path):
        config = temp_dir / "recovercheck.toml"
        config.write_text("[recovercheck]\nskip_test_files = true\n")
        result = runner.invoke(app, ["check", str(goproject_path), "--config", str(config)])

        assert result.exit_code == 1
        assert result.stdout.count("goroutine created without panic recovery") == 3

    def test_flag_overrides_config(self, goproject_path: Path, temp_dir: Path):
        config = temp_dir / "recovercheck.toml"
        config.write_text("[recovercheck]\nskip_test_files = true\n")
        result = runner.invoke(
            app, ["check", str(goproject_path), "--config", str(config), "--include-test-files"],
        )

        assert result.stdout.count("goroutine created without panic recovery") == 4

    def test_malformed_launch(self, temp_dir: Path):
        (temp_dir / "main.go").write_text("package main\n\nfunc main() {\n\tgo worker\n}\n")
        result = runner.invoke(app, ["check", str(temp_dir)])

        assert result.exit_code == 1
        assert "go statement without call expression" in result.stdout

    def test_nonexistent_path(self):
        result = runner.invoke(app, ["check", "/nonexistent/path"])

        assert result.exit_code != 0


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout
