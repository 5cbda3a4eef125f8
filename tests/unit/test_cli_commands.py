"""Unit tests for the CLI — command registration and error exits."""

from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from gantry.cli.app import app
from gantry.cli.commands.build import EXIT_ERROR

runner = CliRunner()


def _write_config(tmp_path: Path, body: str = "") -> Path:
    path = tmp_path / "gantry.toml"
    path.write_text(f'[meta]\nbuild_root = "{tmp_path / "build_root"}"\n{body}')
    return path


REPO_BLOCK = """
[[repos]]
integration = "bitbucket"
owner = "alice"
reponame = "demo"
build_instruction = { steps = [ {cmd = "make"} ] }
"""


# ---------------------------------------------------------------------------
# Test: CLI help and registration
# ---------------------------------------------------------------------------


class TestCliApp:
    """The CLI must register all expected commands and show help."""

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        # Typer's no_args_is_help may exit with 0 or 2 depending on version
        assert result.exit_code in (0, 2)
        assert "usage" in result.output.lower()

    def test_help_flag(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "build" in result.output
        assert "webhook" in result.output
        assert "check-config" in result.output

    def test_build_requires_options(self):
        result = runner.invoke(app, ["build"])
        assert result.exit_code == 2


# ---------------------------------------------------------------------------
# Test: check-config
# ---------------------------------------------------------------------------


class TestCheckConfig:
    def test_lists_repositories(self, tmp_path: Path):
        path = _write_config(tmp_path, REPO_BLOCK)
        result = runner.invoke(app, ["check-config", "--config", str(path)])
        assert result.exit_code == 0
        assert "alice/demo" in result.output
        assert "bitbucket" in result.output

    def test_empty_configuration(self, tmp_path: Path):
        result = runner.invoke(app, ["check-config", "-C", str(_write_config(tmp_path))])
        assert result.exit_code == 0
        assert "No repositories configured" in result.output

    def test_missing_file(self, tmp_path: Path):
        result = runner.invoke(app, ["check-config", "-C", str(tmp_path / "missing.toml")])
        assert result.exit_code == EXIT_ERROR
        assert "error:" in result.output
        assert "Failed opening" in result.output

    def test_config_path_from_env(self, tmp_path: Path):
        path = _write_config(tmp_path, REPO_BLOCK)
        result = runner.invoke(app, ["check-config"], env={"GANTRY_CONFIG_PATH": str(path)})
        assert result.exit_code == 0
        assert "alice/demo" in result.output


# ---------------------------------------------------------------------------
# Test: build / webhook error exits
# ---------------------------------------------------------------------------


class TestErrorExits:
    def test_unknown_repository(self, tmp_path: Path):
        path = _write_config(tmp_path, REPO_BLOCK)
        result = runner.invoke(
            app, ["build", "-o", "alice", "-r", "other", "-c", "abc", "-C", str(path)]
        )
        assert result.exit_code == EXIT_ERROR
        assert "not setup in configuration" in result.output

    def test_malformed_webhook(self, tmp_path: Path):
        path = _write_config(tmp_path, REPO_BLOCK)
        payload = tmp_path / "payload.json"
        payload.write_text(json.dumps({"repository": "demo"}))
        result = runner.invoke(app, ["webhook", str(payload), "-C", str(path)])
        assert result.exit_code == EXIT_ERROR
        assert 'No "actor" in json' in result.output

    def test_webhook_for_unconfigured_repository(self, tmp_path: Path, bitbucket_payload):
        path = _write_config(tmp_path)
        result = runner.invoke(
            app, ["webhook", "-", "-C", str(path)], input=json.dumps(bitbucket_payload)
        )
        assert result.exit_code == EXIT_ERROR
        assert "alice/demo not setup in configuration" in result.output

    def test_missing_payload_file(self, tmp_path: Path):
        result = runner.invoke(
            app, ["webhook", str(tmp_path / "nope.json"), "-C", str(_write_config(tmp_path))]
        )
        assert result.exit_code == EXIT_ERROR
        assert "Failed reading webhook payload" in result.output
