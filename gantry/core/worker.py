"""BuildWorker — run one build end-to-end on a dedicated thread.

The worker owns SourceSync, BuildOrchestrator and StepRunner for the whole
build.  The invoking thread consumes the progress channel while the worker
runs, then joins it to collect the :class:`BuildResult` or the error.
"""

from __future__ import annotations

import logging
import threading

from gantry.config import GantrySettings
from gantry.core.errors import GantryError, StepExecutionError, SyncError, WorkerPanicError
from gantry.core.orchestrator import BuildOrchestrator
from gantry.core.progress import ProgressChannel
from gantry.core.source_sync import SourceSync
from gantry.core.step_runner import StepRunner
from gantry.models.build import BuildInstruction, BuildRequest, BuildResult, Workspace

logger = logging.getLogger(__name__)


def run_build(
    settings: GantrySettings,
    workspace: Workspace,
    clone_url: str,
    request: BuildRequest,
    instruction: BuildInstruction,
    channel: ProgressChannel | None = None,
) -> BuildResult:
    """Synchronize the checkout and run the build on the calling thread."""
    sync = SourceSync(git_timeout=settings.git_timeout_seconds)
    try:
        checkout = sync.sync(workspace.repo_dir, clone_url, request.commit)
    except SyncError as exc:
        raise SyncError(f"Failed checking out code from {request}") from exc

    runner = StepRunner(
        shell=settings.shell,
        path=settings.step_path,
        poll_interval=settings.poll_interval_seconds,
    )
    orchestrator = BuildOrchestrator(workspace, runner=runner, channel=channel)
    try:
        return orchestrator.run(checkout, instruction)
    except StepExecutionError as exc:
        raise StepExecutionError("Failed execution of build") from exc


class BuildWorker:
    """Runs :func:`run_build` on a background thread.

    The channel, if any, is closed when the worker finishes, so a consumer
    iterating over it always terminates.
    """

    def __init__(
        self,
        settings: GantrySettings,
        workspace: Workspace,
        clone_url: str,
        request: BuildRequest,
        instruction: BuildInstruction,
        channel: ProgressChannel | None = None,
    ) -> None:
        self.settings = settings
        self.workspace = workspace
        self.clone_url = clone_url
        self.request = request
        self.instruction = instruction
        self.channel = channel

        self._thread: threading.Thread | None = None
        self._result: BuildResult | None = None
        self._error: BaseException | None = None

    def start(self) -> None:
        """Launch the worker thread.  Starting twice is an error."""
        if self._thread is not None:
            raise RuntimeError("BuildWorker already started")
        self._thread = threading.Thread(
            target=self._run,
            name=f"gantry-build-{self.request.owner}-{self.request.repo_name}",
            daemon=True,
        )
        logger.info("Received a new build-request: %s", self.request)
        self._thread.start()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def join(self, timeout: float | None = None) -> BuildResult:
        """Wait for the worker and return its result.

        Raises
        ------
        GantryError
            Whatever orchestration error the worker raised.
        WorkerPanicError
            If the worker died with any other exception.
        """
        if self._thread is None:
            raise RuntimeError("BuildWorker was never started")
        self._thread.join(timeout)
        if self._thread.is_alive():
            raise TimeoutError(f"Build {self.request} still running")
        if self._error is not None:
            if isinstance(self._error, GantryError):
                raise self._error
            raise WorkerPanicError("Worker-thread panicked") from self._error
        if self._result is None:
            raise WorkerPanicError("Worker-thread finished without a build result")
        return self._result

    def _run(self) -> None:
        try:
            self._result = run_build(
                self.settings,
                self.workspace,
                self.clone_url,
                self.request,
                self.instruction,
                channel=self.channel,
            )
        except BaseException as exc:  # noqa: BLE001 - handed to join()
            logger.debug("Build worker for %s failed: %s", self.request, exc)
            self._error = exc
        finally:
            if self.channel is not None:
                self.channel.close()
