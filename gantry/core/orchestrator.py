"""Build orchestrator — runs a build instruction against a checkout.

The orchestrator prepares a disposable copy of the checkout, drives the
StepRunner through every step in declared order, and stops at the first step
that does not succeed.  Progress is relayed over an optional
:class:`~gantry.core.progress.ProgressChannel`; with no channel attached
emission is a no-op.
"""

from __future__ import annotations

import logging
import shutil

from gantry.core.errors import WorkspaceError
from gantry.core.progress import ProgressChannel
from gantry.core.step_runner import StepRunner
from gantry.models.build import (
    BuildInstruction,
    BuildResult,
    BuildStatus,
    BuildStepResult,
    Checkout,
    Workspace,
)
from gantry.models.updates import (
    BuildUpdate,
    Finished,
    Started,
    StepFinished,
    StepStarted,
)

logger = logging.getLogger(__name__)

ENV_PATH_BUILD = "PATH_BUILD"
ENV_PATH_CACHE = "PATH_CACHE"


class BuildOrchestrator:
    """Runs build steps sequentially with a stop-on-first-failure policy.

    Parameters
    ----------
    workspace:
        Directory layout for the repository being built.
    runner:
        Step runner.  A default :class:`StepRunner` is used if not provided.
    channel:
        Optional progress channel.  Sends never block the build.
    """

    def __init__(
        self,
        workspace: Workspace,
        runner: StepRunner | None = None,
        channel: ProgressChannel | None = None,
    ) -> None:
        self.workspace = workspace
        self.runner = runner or StepRunner()
        self.channel = channel

    # ------------------------------------------------------------------
    # Build lifecycle
    # ------------------------------------------------------------------

    def run(self, checkout: Checkout, instruction: BuildInstruction) -> BuildResult:
        """Execute *instruction* on a fresh copy of *checkout*.

        Lifecycle:
        1. Prepare build and cache directories
        2. Emit ``Started``
        3. For each step: ``StepStarted``, output, ``StepFinished``
        4. Stop after the first non-successful step
        5. Emit ``Finished``

        Raises
        ------
        WorkspaceError
            If the build or cache directory cannot be prepared.
        StepExecutionError
            If a step cannot be spawned, read from or waited on.
        """
        self.prepare_dirs(checkout)

        logger.info("Executing build in %s", self.workspace.build_dir)
        self._emit(Started())

        env = self.step_env(instruction)
        results: list[BuildStepResult] = []
        for index, step in enumerate(instruction.steps):
            self._emit(StepStarted(cmd=step.cmd))
            step_result = self.runner.run(
                step.cmd,
                self.workspace.build_dir,
                env,
                emit=self._emit,
            )
            results.append(step_result)
            self._emit(StepFinished(result=step_result))
            if step_result.status != BuildStatus.SUCCESSFUL:
                skipped = len(instruction.steps) - index - 1
                logger.info(
                    "Step %d (%r) %s; skipping %d remaining step(s)",
                    index,
                    step.cmd,
                    step_result.status.value,
                    skipped,
                )
                break

        result = BuildResult(steps=results)
        self._emit(Finished())
        logger.info("Build finished (successful=%s)", result.successful())
        return result

    def prepare_dirs(self, checkout: Checkout) -> None:
        """Recreate the build directory as a copy of *checkout*.

        A failure to remove the previous build directory is logged and the
        build carries on into the dirty directory.
        """
        build_dir = self.workspace.build_dir
        if build_dir.exists():
            try:
                shutil.rmtree(build_dir)
            except OSError as exc:
                logger.warning(
                    "Could not remove old build in %s due to %s", build_dir, exc
                )
        try:
            build_dir.mkdir(parents=True, exist_ok=True)
            shutil.copytree(checkout.path, build_dir, symlinks=True, dirs_exist_ok=True)
        except (OSError, shutil.Error) as exc:
            raise WorkspaceError(f"Failed creating build-dir: {build_dir}") from exc
        try:
            self.workspace.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise WorkspaceError(
                f"Failed creating cache-dir: {self.workspace.cache_dir}"
            ) from exc
        logger.debug("Prepared %s from %s", build_dir, checkout.path)

    def step_env(self, instruction: BuildInstruction) -> dict[str, str]:
        """Environment variables injected into every step."""
        env = dict(instruction.env)
        env[ENV_PATH_BUILD] = str(self.workspace.build_dir)
        env[ENV_PATH_CACHE] = str(self.workspace.cache_dir)
        return env

    def _emit(self, update: BuildUpdate) -> None:
        if self.channel is not None:
            self.channel.send(update)
