"""Build configuration models and the TOML loader.

The configuration file lists every repository gantry knows how to build::

    [meta]
    build_root = "/opt/gantry/build_root"

    [[repos]]
    integration = "bitbucket"
    owner = "purew"
    reponame = "foobar"
    api_token = "secret"
    build_instruction = { steps = [ {cmd = "make"}, {cmd = "make test"} ] }

It is loaded once at process start and is read-only afterwards.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from gantry.core.errors import ConfigError
from gantry.models.build import BuildInstruction, ProviderId

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = "gantry.toml"


class MetaConfig(BaseModel):
    """Global settings shared by every repository."""

    model_config = ConfigDict(frozen=True)

    build_root: Path


class RepoConfig(BaseModel):
    """Static configuration for one ``(owner, repo_name)``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    integration: ProviderId
    owner: str
    repo_name: str = Field(alias="reponame")
    api_token: str = ""
    clone_url: str | None = None  # overrides the provider-derived URL
    build_instruction: BuildInstruction = BuildInstruction()

    @property
    def key(self) -> tuple[str, str]:
        return (self.owner, self.repo_name)


class _RawConfig(BaseModel):
    meta: MetaConfig
    repos: list[RepoConfig] = []


class Config(BaseModel):
    """Validated configuration keyed by ``(owner, repo_name)``."""

    model_config = ConfigDict(frozen=True)

    meta: MetaConfig
    repos: dict[tuple[str, str], RepoConfig] = {}

    def get_repo(self, owner: str, repo_name: str) -> RepoConfig:
        """Look up a repository, raising :class:`ConfigError` if unknown."""
        try:
            return self.repos[(owner, repo_name)]
        except KeyError:
            raise ConfigError(
                f"{owner}/{repo_name} not setup in configuration"
            ) from None


def parse_config(text: str, source: str = "<string>") -> Config:
    """Parse TOML *text* into a :class:`Config`.

    Raises
    ------
    ConfigError
        On invalid TOML, schema violations, or duplicate repository keys.
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Bad format in config-file {source}") from exc

    try:
        raw = _RawConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {source}") from exc

    repos: dict[tuple[str, str], RepoConfig] = {}
    for repo in raw.repos:
        if repo.key in repos:
            raise ConfigError(
                f"Duplicate repository {repo.owner}/{repo.repo_name} in {source}"
            )
        repos[repo.key] = repo

    logger.debug("Loaded %d repositories from %s", len(repos), source)
    return Config(meta=raw.meta, repos=repos)


def load_config(path: Path | str | None = None) -> Config:
    """Read and validate the configuration file at *path*.

    Defaults to ``gantry.toml`` in the current directory.
    """
    config_path = Path(path) if path else Path(DEFAULT_CONFIG_FILENAME)
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed opening {config_path}") from exc
    return parse_config(text, source=str(config_path))
