"""SourceSync — idempotently bring a local checkout to an exact commit.

Whatever state the checkout directory is in (absent, stale, detached, dirty),
``sync`` ends with HEAD detached at the requested commit and the working tree
hard-reset to it.  The directory is reused across builds and never deleted:
a non-empty directory that is not a repository is reported, not replaced.

Git is driven through the system ``git`` binary.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Sequence
from pathlib import Path

from gantry.core.errors import BadRevisionError, GitCommandError, SyncError
from gantry.models.build import Checkout

logger = logging.getLogger(__name__)

_GIT_ENV = {
    # Never block on a credential prompt.
    "GIT_TERMINAL_PROMPT": "0",
}

_BRANCH_REFSPEC = "+refs/heads/*:refs/remotes/origin/*"


def run_git(
    args: Sequence[str],
    cwd: Path | None = None,
    timeout: int | None = None,
    log_failure: bool = True,
) -> str:
    """Run a git command and return its stdout.

    :param args: Git arguments (without the ``git`` prefix).
    :param cwd: Working directory where the command executes.
    :param timeout: Optional timeout passed to :func:`subprocess.run`.
    :param log_failure: Log a non-zero exit at error level before raising.
    :raises GitCommandError: On a non-zero exit, a timeout, or if git
        cannot be started.
    """
    cmd = ["git", *args]
    logger.debug("Executing git %s (cwd=%s)", " ".join(args), cwd or os.getcwd())
    env = os.environ.copy()
    env.update(_GIT_ENV)
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
            env=env,
        )
    except subprocess.TimeoutExpired as exc:
        raise GitCommandError(args, None, f"timed out after {timeout}s") from exc
    except OSError as exc:
        raise GitCommandError(args, None, str(exc)) from exc
    if proc.returncode != 0:
        if log_failure:
            logger.error("git %s failed with %s", " ".join(args), proc.returncode)
        raise GitCommandError(args, proc.returncode, proc.stderr)
    return proc.stdout


class SourceSync:
    """Clone-or-fetch-then-checkout protocol over a local directory.

    Parameters
    ----------
    git_timeout:
        Timeout in seconds for each git invocation.
    """

    def __init__(self, git_timeout: int | None = 600) -> None:
        self.git_timeout = git_timeout

    def sync(self, root_path: Path, clone_url: str, commit: str) -> Checkout:
        """Make *root_path* a checkout of *clone_url* with HEAD at *commit*.

        Raises
        ------
        GitCommandError
            If clone, fetch or checkout fails.
        SyncError
            If *root_path* holds something other than a repository.
        BadRevisionError
            If *commit* does not resolve to a commit in the repository.
        """
        root_path = Path(root_path)
        if self.is_repository(root_path):
            logger.info("Found local repo at %s", root_path)
        else:
            self.clone(clone_url, root_path)
        self.fetch(root_path)
        head = self.checkout(root_path, commit)
        return Checkout(path=root_path, commit=commit, head=head)

    # ------------------------------------------------------------------
    # Protocol steps
    # ------------------------------------------------------------------

    def is_repository(self, path: Path) -> bool:
        """True if *path* is the top level of an existing git work tree."""
        if not (path / ".git").exists():
            return False
        try:
            toplevel = self._git(["rev-parse", "--show-toplevel"], cwd=path).strip()
        except GitCommandError as exc:
            logger.warning("Could not open local repository at %s: %s", path, exc)
            return False
        return Path(toplevel).resolve() == path.resolve()

    def clone(self, clone_url: str, path: Path) -> None:
        """Clone *clone_url* (with submodules) into *path*.

        *path* must be absent or an empty directory.  Anything else is left
        untouched and reported as a :class:`SyncError`.
        """
        if path.exists() and (not path.is_dir() or any(path.iterdir())):
            raise SyncError(
                f"Cannot clone {clone_url}: {path} exists but is not a usable repository"
            )
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Cloning %s into %s", clone_url, path)
        self._git(["clone", "--recursive", "--jobs", "8", clone_url, str(path)])

    def fetch(self, path: Path) -> None:
        """Fetch every branch into ``refs/remotes/origin`` and every tag."""
        logger.info("Fetching latest changes from origin")
        self._git(
            ["fetch", "--tags", "--force", "--prune", "origin", _BRANCH_REFSPEC],
            cwd=path,
        )

    def checkout(self, path: Path, commit: str) -> str:
        """Detach HEAD at *commit*, discarding local changes.

        Returns the fully resolved commit id.
        """
        head = self.resolve(path, commit)
        logger.info("Checking out %s (%s) in %s", commit, head, path)
        self._git(["checkout", "--force", "--detach", head], cwd=path)
        self._git(["reset", "--hard", head], cwd=path)
        self._git(["clean", "-ffdx"], cwd=path)
        self._git(["submodule", "update", "--init", "--recursive", "--force"], cwd=path)
        return head

    def resolve(self, path: Path, commit: str) -> str:
        """Resolve *commit* to a full commit id or raise :class:`BadRevisionError`.

        A branch name resolves to the fetched ``origin`` branch, never to the
        stale local branch left behind by the initial clone.
        """
        if not commit or commit.startswith("-"):
            raise BadRevisionError(commit)
        last_error: GitCommandError | None = None
        for candidate in (f"refs/remotes/origin/{commit}", commit):
            try:
                out = self._git(
                    ["rev-parse", "--verify", "--quiet", f"{candidate}^{{commit}}"],
                    cwd=path,
                    log_failure=False,
                )
            except GitCommandError as exc:
                last_error = exc
                continue
            return out.strip()
        raise BadRevisionError(commit) from last_error

    def head(self, path: Path) -> str:
        """Return the commit id HEAD currently points at."""
        return self._git(["rev-parse", "HEAD"], cwd=path).strip()

    def _git(
        self,
        args: Sequence[str],
        cwd: Path | None = None,
        log_failure: bool = True,
    ) -> str:
        return run_git(args, cwd=cwd, timeout=self.git_timeout, log_failure=log_failure)
