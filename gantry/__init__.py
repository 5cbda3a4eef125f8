"""Gantry: a minimal CI build runner.

Checks out a commit of a configured repository, copies it into a disposable
build directory and runs its shell steps one after another, stopping at the
first failure.  Progress is streamed to the terminal while the build runs.
"""

__version__ = "0.1.0"
__description__ = "Minimal CI build runner with streamed step output"

from gantry.core.orchestrator import BuildOrchestrator
from gantry.core.progress import ProgressChannel
from gantry.core.source_sync import SourceSync
from gantry.core.step_runner import StepRunner
from gantry.core.worker import BuildWorker
from gantry.cli.app import app as cli

__all__ = [
    "BuildOrchestrator",
    "BuildWorker",
    "ProgressChannel",
    "SourceSync",
    "StepRunner",
    "cli",
    "__version__",
]
