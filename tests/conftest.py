"""Shared test fixtures for Gantry."""

from __future__ import annotations

import json
import shutil
import subprocess
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from gantry.config import GantrySettings, get_settings
from gantry.core.step_runner import StepRunner
from gantry.models.build import Checkout, Workspace

FIXTURES = Path(__file__).parent / "fixtures"

# Keeps step tests fast; the production default is one second.
FAST_POLL = 0.05


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    """Drop the cached settings so env overrides apply per test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> GantrySettings:
    """Settings with a short poll interval and no .env lookup."""
    return GantrySettings(_env_file=None, poll_interval_seconds=FAST_POLL)


@pytest.fixture
def step_runner() -> StepRunner:
    """A StepRunner polling every FAST_POLL seconds."""
    return StepRunner(poll_interval=FAST_POLL)


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    """Workspace for acme/widget under a temporary build root."""
    return Workspace.for_repo(tmp_path / "build_root", "acme", "widget")


@pytest.fixture
def source_checkout(tmp_path: Path) -> Checkout:
    """A plain directory standing in for a synchronized checkout."""
    src = tmp_path / "src"
    src.mkdir()
    (src / "README").write_text("hello\n")
    (src / "sub").mkdir()
    (src / "sub" / "data.txt").write_text("data\n")
    return Checkout(path=src, commit="abc123", head="abc123")


@pytest.fixture
def bitbucket_payload() -> dict[str, Any]:
    """A decoded Bitbucket push webhook for alice/demo@abc123."""
    return json.loads((FIXTURES / "bitbucket_push.json").read_text())


# ---------------------------------------------------------------------------
# Git repositories
# ---------------------------------------------------------------------------


class GitRepo:
    """A throwaway upstream repository driven through the git binary."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.mkdir(parents=True, exist_ok=True)
        self.git("init", "--quiet")

    def git(self, *args: str) -> str:
        proc = subprocess.run(
            [
                "git",
                "-c", "user.name=Gantry Test",
                "-c", "user.email=gantry@example.com",
                "-c", "commit.gpgsign=false",
                "-c", "tag.gpgsign=false",
                *args,
            ],
            cwd=self.path,
            capture_output=True,
            text=True,
            check=True,
        )
        return proc.stdout

    def commit(self, files: dict[str, str], message: str = "commit") -> str:
        """Write *files*, commit them and return the new commit id."""
        for name, content in files.items():
            target = self.path / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        self.git("add", "--all")
        self.git("commit", "--quiet", "-m", message)
        return self.git("rev-parse", "HEAD").strip()

    @property
    def url(self) -> str:
        return str(self.path)


@pytest.fixture
def make_git_repo(tmp_path: Path) -> Callable[[str], GitRepo]:
    """Factory fixture: create an empty upstream repository by name."""
    if shutil.which("git") is None:
        pytest.skip("git binary not available")

    def _factory(name: str = "upstream") -> GitRepo:
        return GitRepo(tmp_path / name)

    return _factory


@pytest.fixture
def upstream(make_git_repo: Callable[[str], GitRepo]) -> GitRepo:
    """Convenience: an upstream repository with no commits yet."""
    return make_git_repo("upstream")
