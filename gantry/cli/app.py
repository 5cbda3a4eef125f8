"""Main Typer application — imports and registers all CLI commands.

Entry point: ``gantry`` (configured via pyproject.toml console_scripts).
"""

from __future__ import annotations

from typing import Optional

import typer

from gantry.cli.commands.build import build_cmd
from gantry.cli.commands.check_config import check_config_cmd
from gantry.cli.commands.webhook import webhook_cmd
from gantry.config import get_settings
from gantry.logging_setup import init_logging

app = typer.Typer(
    name="gantry",
    help="Gantry: a minimal CI build runner.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Logging level (defaults to GANTRY_LOG_LEVEL).",
    ),
) -> None:
    """Gantry: check out a commit and run its build steps."""
    init_logging(log_level or get_settings().log_level)


# Register subcommands
app.command(name="build", help="Build a commit of a configured repository.")(build_cmd)
app.command(name="webhook", help="Build the commit named by a webhook payload.")(webhook_cmd)
app.command(name="check-config", help="Validate the build configuration.")(check_config_cmd)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
