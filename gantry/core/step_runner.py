"""StepRunner — spawn one shell step and stream its output while it runs.

The runner polls the child on a fixed interval instead of blocking on a read.
On every poll both pipes are drained without blocking: completed stdout lines
are emitted as ``StepNewOutput(stdout, line)`` right away, stderr is only
accumulated.  Draining stderr on each poll keeps a chatty child from stalling
on a full pipe; it is still reported as one block after the child exits, so
stderr is not interleaved with stdout in real time.

There is no timeout: a step that never exits keeps the build running.
"""

from __future__ import annotations

import codecs
import logging
import os
import subprocess
import time
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import IO

from gantry.config import DEFAULT_STEP_PATH
from gantry.core.errors import StepExecutionError
from gantry.models.build import BuildStatus, BuildStepResult
from gantry.models.updates import BuildUpdate, StepNewOutput, StreamTag

logger = logging.getLogger(__name__)

_READ_SIZE = 64 * 1024

Emit = Callable[[BuildUpdate], object]


class _PipeReader:
    """Non-blocking, incrementally decoding reader over one child pipe."""

    def __init__(self, pipe: IO[bytes], name: str) -> None:
        self._fd = pipe.fileno()
        self._name = name
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self.eof = False
        os.set_blocking(self._fd, False)

    def read_available(self) -> str:
        """Return whatever text is buffered in the pipe right now."""
        if self.eof:
            return ""
        chunks: list[bytes] = []
        while True:
            try:
                chunk = os.read(self._fd, _READ_SIZE)
            except BlockingIOError:
                break
            except OSError as exc:
                raise StepExecutionError(f"Failed reading child {self._name}") from exc
            if not chunk:
                self.eof = True
                break
            chunks.append(chunk)
        return self._decoder.decode(b"".join(chunks), final=self.eof)


class StepRunner:
    """Runs a single build step as ``<shell> -c <cmd>``.

    Parameters
    ----------
    shell:
        POSIX shell used to interpret the command.
    path:
        ``PATH`` handed to the step.  Nothing else from the caller's
        environment is inherited.
    poll_interval:
        Seconds to sleep between liveness polls of the child.
    """

    def __init__(
        self,
        shell: str = "/bin/sh",
        path: str = DEFAULT_STEP_PATH,
        poll_interval: float = 1.0,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self.shell = shell
        self.path = path
        self.poll_interval = poll_interval

    def build_env(self, env_overrides: Mapping[str, str] | None = None) -> dict[str, str]:
        """Return the complete environment a step runs with."""
        env = {"PATH": self.path}
        if env_overrides:
            env.update(env_overrides)
        return env

    def run(
        self,
        cmd: str,
        working_dir: Path,
        env_overrides: Mapping[str, str] | None = None,
        emit: Emit | None = None,
    ) -> BuildStepResult:
        """Execute *cmd* in *working_dir* and classify its exit.

        Raises
        ------
        StepExecutionError
            If the process cannot be spawned, read from or waited on.
        """
        logger.info("Executing step %r in %s", cmd, working_dir)
        started = time.monotonic()
        try:
            proc = subprocess.Popen(
                [self.shell, "-c", cmd],
                cwd=str(working_dir),
                env=self.build_env(env_overrides),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except (OSError, ValueError) as exc:
            raise StepExecutionError(f"Failed executing step {cmd!r}") from exc

        try:
            returncode, output = self._supervise(proc, emit)
        except BaseException:
            if proc.poll() is None:
                proc.kill()
                proc.wait()
            raise
        finally:
            for pipe in (proc.stdout, proc.stderr):
                if pipe is not None:
                    pipe.close()

        status = BuildStatus.SUCCESSFUL if returncode == 0 else BuildStatus.FAILED
        duration = time.monotonic() - started
        logger.info(
            "Step %r finished with exit code %s (%s) in %.2fs",
            cmd,
            returncode,
            status.value,
            duration,
        )
        return BuildStepResult(
            status=status,
            cmd=cmd,
            output=output,
            exit_code=returncode,
            duration_seconds=duration,
        )

    def _supervise(self, proc: subprocess.Popen, emit: Emit | None) -> tuple[int, str]:
        """Poll *proc* until it exits, forwarding output as it arrives."""
        if proc.stdout is None or proc.stderr is None:
            raise StepExecutionError("Child-process output pipes are not available")
        stdout = _PipeReader(proc.stdout, "stdout")
        stderr = _PipeReader(proc.stderr, "stderr")

        stdout_parts: list[str] = []
        stderr_parts: list[str] = []
        pending = ""

        while True:
            try:
                returncode = proc.poll()
            except OSError as exc:
                raise StepExecutionError("Could not wait on child-process") from exc

            text = stdout.read_available()
            if text:
                stdout_parts.append(text)
                *lines, pending = (pending + text).split("\n")
                for line in lines:
                    _send(emit, StepNewOutput(stream=StreamTag.STDOUT, text=line))
            stderr_parts.append(stderr.read_available())

            if returncode is not None:
                break
            logger.debug("Step pid=%s still running, sleeping %.2fs", proc.pid, self.poll_interval)
            time.sleep(self.poll_interval)

        if pending:
            _send(emit, StepNewOutput(stream=StreamTag.STDOUT, text=pending))
        stderr_text = "".join(stderr_parts)
        if stderr_text:
            _send(emit, StepNewOutput(stream=StreamTag.STDERR, text=stderr_text))

        return returncode, "".join(stdout_parts) + stderr_text


def _send(emit: Emit | None, update: BuildUpdate) -> None:
    if emit is not None:
        emit(update)
