"""Build request, instruction and result models.

A build is a strictly linear list of shell steps.  Results are truncated at
the first non-successful step, so the length of ``BuildResult.steps`` tells
how far the build got.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class ProviderId(str, Enum):
    """Source-control hosting service a repository lives on."""

    BITBUCKET = "bitbucket"


class BuildStatus(str, Enum):
    """Status of a single build step."""

    IN_PROGRESS = "in_progress"  # transient, never stored in a finished result
    SUCCESSFUL = "successful"
    FAILED = "failed"
    STOPPED = "stopped"  # reserved for external cancellation, not produced


class BuildStep(BaseModel):
    """One shell command of a build instruction."""

    model_config = ConfigDict(frozen=True)

    cmd: str


class BuildInstruction(BaseModel):
    """Ordered steps plus the explicit environment handed to every step."""

    model_config = ConfigDict(frozen=True)

    steps: list[BuildStep] = []
    env: dict[str, str] = {}


class BuildStepResult(BaseModel):
    """Outcome of executing one :class:`BuildStep`."""

    model_config = ConfigDict(frozen=True)

    status: BuildStatus
    cmd: str
    output: str = ""
    exit_code: int | None = None
    duration_seconds: float = 0.0

    @property
    def successful(self) -> bool:
        return self.status == BuildStatus.SUCCESSFUL


class BuildResult(BaseModel):
    """Aggregate result of a build run."""

    model_config = ConfigDict(frozen=True)

    steps: list[BuildStepResult] = []

    def successful(self) -> bool:
        """True iff every executed step succeeded."""
        return all(step.status == BuildStatus.SUCCESSFUL for step in self.steps)

    def failed_step(self) -> BuildStepResult | None:
        """Return the first non-successful step, if any."""
        return next(
            (step for step in self.steps if step.status != BuildStatus.SUCCESSFUL),
            None,
        )


class BuildRequest(BaseModel):
    """Identifies which commit of which repository to build."""

    model_config = ConfigDict(frozen=True)

    integration: ProviderId
    owner: str
    repo_name: str
    commit: str

    def __str__(self) -> str:
        return f"{self.integration.value}:{self.owner}/{self.repo_name}@{self.commit}"


class Checkout(BaseModel):
    """A local working tree synchronized to a specific commit."""

    model_config = ConfigDict(frozen=True)

    path: Path
    commit: str
    head: str


class Workspace(BaseModel):
    """On-disk layout for one ``(owner, repo_name)``.

    ``repo_dir`` holds the shared checkout, ``cache_dir`` survives across
    builds and ``build_dir`` is the disposable copy steps run in.
    """

    model_config = ConfigDict(frozen=True)

    root: Path
    repo_dir: Path
    cache_dir: Path
    build_dir: Path

    @classmethod
    def for_repo(cls, build_root: Path, owner: str, repo_name: str) -> Workspace:
        root = Path(build_root) / owner / repo_name
        return cls(
            root=root,
            repo_dir=root / "repo",
            cache_dir=root / "cache",
            build_dir=root / "build",
        )
