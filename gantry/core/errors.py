"""Error taxonomy for gantry.

Every layer raises one of these and chains the underlying cause with
``raise ... from exc`` so the CLI can print the full causal chain.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence


class GantryError(RuntimeError):
    """Base class for all errors raised by gantry."""


class ConfigError(GantryError):
    """Missing or malformed configuration, or an unknown repository key."""


class ParseError(GantryError, ValueError):
    """A webhook payload is missing a field or has the wrong type.

    ``key`` names the offending field (or array index).
    """

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class SyncError(GantryError):
    """Cloning, fetching or checking out the source failed."""


class GitCommandError(SyncError):
    """A ``git`` subprocess exited non-zero or could not be started."""

    def __init__(
        self,
        args: Sequence[str],
        returncode: int | None,
        stderr: str = "",
    ) -> None:
        self.git_args = list(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        message = f"git {' '.join(self.git_args)} failed with code {returncode}"
        if self.stderr:
            message = f"{message}: {self.stderr}"
        super().__init__(message)


class BadRevisionError(SyncError):
    """The requested commit does not resolve to a revision in the repository."""

    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__(f"Not a valid revision: \"{reference}\"")


class WorkspaceError(GantryError):
    """The build or cache directory could not be prepared."""


class StepExecutionError(GantryError):
    """A build step could not be spawned, read from or waited on."""


class WorkerPanicError(GantryError):
    """The build worker terminated with an unexpected exception."""


def iter_causes(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* followed by every exception in its ``__cause__`` chain."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or (
            None if current.__suppress_context__ else current.__context__
        )
