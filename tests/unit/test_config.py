"""Tests for env-driven settings and the TOML build configuration."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from gantry.config import DEFAULT_STEP_PATH, GantrySettings, get_settings
from gantry.core.errors import ConfigError
from gantry.models.build import ProviderId
from gantry.models.config import load_config, parse_config

SAMPLE_TOML = """
[meta]
build_root = "/opt/gantry/build_root"

[[repos]]
integration = "bitbucket"
owner = "purew"
reponame = "foobar"
api_token = "secret"
build_instruction = { steps = [ {cmd = "make"}, {cmd = "make test"} ], env = { CC = "clang" } }

[[repos]]
integration = "bitbucket"
owner = "purew"
reponame = "local"
clone_url = "/srv/git/local.git"
"""


# ---------------------------------------------------------------------------
# Test: GantrySettings
# ---------------------------------------------------------------------------


class TestGantrySettings:
    def test_defaults(self):
        settings = GantrySettings(_env_file=None)
        assert settings.log_level == "INFO"
        assert settings.debug is False
        assert settings.poll_interval_seconds == 1.0
        assert settings.shell == "/bin/sh"
        assert settings.step_path == DEFAULT_STEP_PATH
        assert settings.clone_transport == "ssh"
        assert settings.progress_capacity == 0
        assert settings.config_path == Path("gantry.toml")

    def test_only_consumed_fields(self):
        assert set(GantrySettings.model_fields) == {
            "log_level",
            "debug",
            "config_path",
            "poll_interval_seconds",
            "shell",
            "step_path",
            "git_timeout_seconds",
            "clone_transport",
            "progress_capacity",
        }

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("GANTRY_POLL_INTERVAL_SECONDS", "0.25")
        monkeypatch.setenv("GANTRY_CLONE_TRANSPORT", "https")
        monkeypatch.setenv("GANTRY_DEBUG", "true")
        settings = GantrySettings(_env_file=None)
        assert settings.poll_interval_seconds == 0.25
        assert settings.clone_transport == "https"
        assert settings.debug is True

    def test_non_positive_poll_interval_rejected(self):
        with pytest.raises(ValidationError):
            GantrySettings(_env_file=None, poll_interval_seconds=0)

    def test_unknown_transport_rejected(self):
        with pytest.raises(ValidationError):
            GantrySettings(_env_file=None, clone_transport="ftp")

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


# ---------------------------------------------------------------------------
# Test: build configuration
# ---------------------------------------------------------------------------


class TestParseConfig:
    def test_parses_repositories(self):
        config = parse_config(SAMPLE_TOML)
        assert config.meta.build_root == Path("/opt/gantry/build_root")
        assert set(config.repos) == {("purew", "foobar"), ("purew", "local")}

        repo = config.get_repo("purew", "foobar")
        assert repo.integration == ProviderId.BITBUCKET
        assert repo.repo_name == "foobar"
        assert repo.api_token == "secret"
        assert [s.cmd for s in repo.build_instruction.steps] == ["make", "make test"]
        assert repo.build_instruction.env == {"CC": "clang"}
        assert repo.clone_url is None

    def test_defaults_for_optional_fields(self):
        repo = parse_config(SAMPLE_TOML).get_repo("purew", "local")
        assert repo.api_token == ""
        assert repo.clone_url == "/srv/git/local.git"
        assert repo.build_instruction.steps == []

    def test_unknown_repository(self):
        config = parse_config(SAMPLE_TOML)
        with pytest.raises(ConfigError, match="purew/missing not setup in configuration"):
            config.get_repo("purew", "missing")

    def test_duplicate_repository(self):
        text = SAMPLE_TOML + '\n[[repos]]\nintegration = "bitbucket"\nowner = "purew"\nreponame = "foobar"\n'
        with pytest.raises(ConfigError, match="Duplicate repository purew/foobar"):
            parse_config(text)

    def test_bad_toml(self):
        with pytest.raises(ConfigError, match="Bad format in config-file"):
            parse_config("[meta\nbuild_root = ")

    def test_missing_meta(self):
        with pytest.raises(ConfigError, match="Invalid configuration"):
            parse_config('[[repos]]\nintegration = "bitbucket"\nowner = "a"\nreponame = "b"\n')

    def test_unknown_integration(self):
        text = '[meta]\nbuild_root = "/tmp"\n[[repos]]\nintegration = "gitlab"\nowner = "a"\nreponame = "b"\n'
        with pytest.raises(ConfigError, match="Invalid configuration"):
            parse_config(text)

    def test_no_repositories(self):
        config = parse_config('[meta]\nbuild_root = "/tmp"\n')
        assert config.repos == {}


class TestLoadConfig:
    def test_load_from_file(self, tmp_path: Path):
        path = tmp_path / "gantry.toml"
        path.write_text(SAMPLE_TOML)
        config = load_config(path)
        assert ("purew", "foobar") in config.repos

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="Failed opening"):
            load_config(tmp_path / "nope.toml")
