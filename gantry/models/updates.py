"""Progress events relayed from the build worker to a listener.

Each update is a frozen Pydantic model tagged by ``kind`` so the union can be
validated and dispatched like any other contracted message.  Updates are
transient: they only ever live on a :class:`~gantry.core.progress.ProgressChannel`.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from gantry.models.build import BuildStepResult


class BuildUpdateKind(str, Enum):
    """The five progress event types."""

    STARTED = "started"
    STEP_STARTED = "step_started"
    STEP_NEW_OUTPUT = "step_new_output"
    STEP_FINISHED = "step_finished"
    FINISHED = "finished"


class StreamTag(str, Enum):
    """Which pipe a chunk of step output came from."""

    STDOUT = "stdout"
    STDERR = "stderr"


class Started(BaseModel):
    """Emitted once before the first step."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[BuildUpdateKind.STARTED] = BuildUpdateKind.STARTED


class StepStarted(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[BuildUpdateKind.STEP_STARTED] = BuildUpdateKind.STEP_STARTED
    cmd: str


class StepNewOutput(BaseModel):
    """A completed stdout line, or the delayed stderr block of a step."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[BuildUpdateKind.STEP_NEW_OUTPUT] = BuildUpdateKind.STEP_NEW_OUTPUT
    stream: StreamTag
    text: str


class StepFinished(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[BuildUpdateKind.STEP_FINISHED] = BuildUpdateKind.STEP_FINISHED
    result: BuildStepResult


class Finished(BaseModel):
    """Emitted once after the step loop, whatever the outcome."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[BuildUpdateKind.FINISHED] = BuildUpdateKind.FINISHED


BuildUpdate = Annotated[
    Union[Started, StepStarted, StepNewOutput, StepFinished, Finished],
    Field(discriminator="kind"),
]
