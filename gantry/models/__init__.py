"""Gantry data models — all Pydantic v2, all frozen (immutable)."""

from gantry.models.build import (
    BuildInstruction,
    BuildRequest,
    BuildResult,
    BuildStatus,
    BuildStep,
    BuildStepResult,
    Checkout,
    ProviderId,
    Workspace,
)
from gantry.models.config import Config, MetaConfig, RepoConfig, load_config
from gantry.models.updates import (
    BuildUpdate,
    BuildUpdateKind,
    Finished,
    Started,
    StepFinished,
    StepNewOutput,
    StepStarted,
    StreamTag,
)

__all__ = [
    # build
    "ProviderId",
    "BuildStatus",
    "BuildStep",
    "BuildInstruction",
    "BuildStepResult",
    "BuildResult",
    "BuildRequest",
    "Checkout",
    "Workspace",
    # config
    "MetaConfig",
    "RepoConfig",
    "Config",
    "load_config",
    # updates
    "BuildUpdateKind",
    "StreamTag",
    "Started",
    "StepStarted",
    "StepNewOutput",
    "StepFinished",
    "Finished",
    "BuildUpdate",
]
