"""``gantry build`` — build one commit of a configured repository.

Also hosts the shared execution path used by ``gantry webhook``: the build
runs on a worker thread while this thread renders progress from the channel.

Exit codes
----------
0  the build succeeded
1  orchestration error (configuration, checkout, step infrastructure, ...)
3  the build ran to completion but a step failed
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.text import Text
from rich.traceback import Traceback

from gantry.config import GantrySettings, get_settings
from gantry.core.errors import GantryError, iter_causes
from gantry.core.progress import ProgressChannel
from gantry.core.worker import BuildWorker
from gantry.integrations import clone_url
from gantry.models.build import BuildRequest, Workspace
from gantry.models.config import Config, RepoConfig, load_config
from gantry.monitor.renderer import ProgressRenderer

console = Console()
err_console = Console(stderr=True)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_BUILD_FAILED = 3


def report_error(exc: BaseException, debug: bool = False) -> None:
    """Print *exc*, its causal chain and, in debug mode, the traceback."""
    chain = list(iter_causes(exc))
    err_console.print(Text.assemble(("error: ", "bold red"), str(chain[0])))
    for cause in chain[1:]:
        err_console.print(Text.assemble(("caused by: ", "red"), str(cause)))
    if debug:
        err_console.print(
            Traceback.from_exception(type(exc), exc, exc.__traceback__)
        )


def load_repo(
    settings: GantrySettings,
    config_path: Path | None,
    owner: str,
    repo_name: str,
) -> tuple[Config, RepoConfig]:
    """Load the configuration and look up ``owner/repo_name`` in it."""
    config = load_config(config_path or settings.config_path)
    return config, config.get_repo(owner, repo_name)


def execute_build(
    settings: GantrySettings,
    config: Config,
    repo_conf: RepoConfig,
    request: BuildRequest,
) -> int:
    """Run *request* on a worker thread, render progress, return an exit code."""
    workspace = Workspace.for_repo(
        config.meta.build_root, request.owner, request.repo_name
    )
    url = repo_conf.clone_url or clone_url(
        request.integration,
        request.owner,
        request.repo_name,
        settings.clone_transport,
    )
    channel = ProgressChannel(capacity=settings.progress_capacity)
    worker = BuildWorker(
        settings,
        workspace,
        url,
        request,
        repo_conf.build_instruction,
        channel=channel,
    )
    renderer = ProgressRenderer(console=console)

    worker.start()
    channel.listen(renderer.print_update)

    try:
        result = worker.join()
    except GantryError as exc:
        report_error(exc, settings.debug)
        return EXIT_ERROR

    renderer.print_result(result)
    return EXIT_OK if result.successful() else EXIT_BUILD_FAILED


def build_cmd(
    owner: str = typer.Option(
        ...,
        "--owner",
        "-o",
        help="Owner of the repository.",
    ),
    repo: str = typer.Option(
        ...,
        "--repo",
        "-r",
        help="Name of the repository.",
    ),
    commit: str = typer.Option(
        ...,
        "--commit",
        "-c",
        help="Which commit to build.",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-C",
        help="Path to the build configuration (defaults to GANTRY_CONFIG_PATH).",
    ),
) -> None:
    """Check out COMMIT of OWNER/REPO and run its configured build steps."""
    settings = get_settings()
    try:
        config, repo_conf = load_repo(settings, config_path, owner, repo)
    except GantryError as exc:
        report_error(exc, settings.debug)
        raise typer.Exit(code=EXIT_ERROR)

    request = BuildRequest(
        integration=repo_conf.integration,
        owner=owner,
        repo_name=repo,
        commit=commit,
    )
    raise typer.Exit(code=execute_build(settings, config, repo_conf, request))
