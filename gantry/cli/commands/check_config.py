"""``gantry check-config`` — validate the build configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from gantry.cli.commands.build import EXIT_ERROR, report_error
from gantry.config import get_settings
from gantry.core.errors import GantryError
from gantry.integrations import clone_url
from gantry.models.config import load_config

console = Console()


def check_config_cmd(
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-C",
        help="Path to the build configuration (defaults to GANTRY_CONFIG_PATH).",
    ),
) -> None:
    """Load the configuration and list every configured repository."""
    settings = get_settings()
    path = config_path or settings.config_path
    try:
        config = load_config(path)
    except GantryError as exc:
        report_error(exc, settings.debug)
        raise typer.Exit(code=EXIT_ERROR)

    console.print(f"[bold]Build root:[/bold] {config.meta.build_root}")
    if not config.repos:
        console.print("[dim]No repositories configured.[/dim]")
        return

    table = Table(title=f"Repositories in {path}")
    table.add_column("Repository", style="cyan")
    table.add_column("Integration")
    table.add_column("Steps", justify="right")
    table.add_column("Clone URL")

    for (owner, repo_name), repo in sorted(config.repos.items()):
        url = repo.clone_url or clone_url(
            repo.integration, owner, repo_name, settings.clone_transport
        )
        table.add_row(
            f"{owner}/{repo_name}",
            repo.integration.value,
            str(len(repo.build_instruction.steps)),
            url,
        )
    console.print(table)
