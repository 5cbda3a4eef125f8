"""Rich terminal renderer for build progress and results.

Color scheme
------------
- yellow    : build and step lifecycle
- red       : stderr output and failed steps
- magenta   : stopped steps
- plain     : stdout output
"""

from __future__ import annotations

from rich.console import Console
from rich.table import Table
from rich.text import Text

from gantry.models.build import BuildResult, BuildStatus
from gantry.models.updates import (
    BuildUpdate,
    Finished,
    Started,
    StepFinished,
    StepNewOutput,
    StepStarted,
    StreamTag,
)

_STATUS_STYLES: dict[BuildStatus, str] = {
    BuildStatus.SUCCESSFUL: "bold green",
    BuildStatus.FAILED: "bold red",
    BuildStatus.IN_PROGRESS: "bold yellow",
    BuildStatus.STOPPED: "bold magenta",
}


class ProgressRenderer:
    """Renders ``BuildUpdate`` events and ``BuildResult`` summaries.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Live updates
    # ------------------------------------------------------------------

    def render_update(self, update: BuildUpdate) -> Text:
        """Turn a single progress event into a Rich ``Text``."""
        if isinstance(update, Started):
            return Text("Starting build", style="yellow")
        if isinstance(update, StepStarted):
            return Text(f"Starting step: {update.cmd}", style="yellow")
        if isinstance(update, StepNewOutput):
            style = "red" if update.stream == StreamTag.STDERR else ""
            return Text(update.text, style=style)
        if isinstance(update, StepFinished):
            status = update.result.status
            if status == BuildStatus.SUCCESSFUL:
                return Text("Finished build-step", style="yellow")
            if status == BuildStatus.STOPPED:
                return Text("Build-step stopped", style="magenta")
            return Text("Finished build-step with failure", style="red")
        if isinstance(update, Finished):
            return Text("Finished build", style="yellow")
        raise TypeError(f"Unknown build update: {update!r}")

    def print_update(self, update: BuildUpdate) -> None:
        self.console.print(self.render_update(update), highlight=False)

    # ------------------------------------------------------------------
    # Final result
    # ------------------------------------------------------------------

    def render_result(self, result: BuildResult) -> Table:
        """Build a per-step status table."""
        table = Table(show_header=True, header_style="bold cyan", expand=False)
        table.add_column("#", style="dim", justify="right")
        table.add_column("Command")
        table.add_column("Status", justify="center")
        table.add_column("Exit", justify="right")
        table.add_column("Time", justify="right")

        for i, step in enumerate(result.steps):
            style = _STATUS_STYLES.get(step.status, "")
            exit_code = "-" if step.exit_code is None else str(step.exit_code)
            table.add_row(
                str(i),
                Text(step.cmd),
                Text(step.status.value, style=style),
                exit_code,
                f"{step.duration_seconds:.1f}s",
            )
        return table

    def print_result(self, result: BuildResult) -> None:
        """Print the step table, failing step output and the verdict."""
        self.console.print(self.render_result(result))
        failed = result.failed_step()
        if failed is not None:
            self.console.print(
                Text(f"Output of failed step {failed.cmd!r} was:", style="bold red")
            )
            self.console.print(Text(failed.output), highlight=False)
        verdict_style = "bold green" if result.successful() else "bold red"
        self.console.print(
            Text(f"Build-result: {result.successful()}", style=verdict_style)
        )
