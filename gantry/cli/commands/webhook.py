"""``gantry webhook PAYLOAD`` — build the commit named by a webhook payload."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import typer

from gantry.cli.commands.build import (
    EXIT_ERROR,
    execute_build,
    load_repo,
    report_error,
)
from gantry.config import get_settings
from gantry.core.errors import ConfigError, GantryError
from gantry.integrations import parse_webhook
from gantry.models.build import ProviderId


def _read_payload(payload: str) -> str:
    if payload == "-":
        return sys.stdin.read()
    try:
        return Path(payload).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed reading webhook payload {payload}") from exc


def webhook_cmd(
    payload: str = typer.Argument(
        ...,
        help="Path to the JSON payload, or '-' to read it from stdin.",
    ),
    provider: ProviderId = typer.Option(
        ProviderId.BITBUCKET,
        "--provider",
        "-p",
        help="Integration that sent the payload.",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-C",
        help="Path to the build configuration (defaults to GANTRY_CONFIG_PATH).",
    ),
) -> None:
    """Parse a push webhook payload and build the commit it names."""
    settings = get_settings()
    try:
        request = parse_webhook(provider, _read_payload(payload))
        config, repo_conf = load_repo(
            settings, config_path, request.owner, request.repo_name
        )
        if repo_conf.integration != request.integration:
            raise ConfigError(
                f"{request.owner}/{request.repo_name} is configured for "
                f"{repo_conf.integration.value}, not {request.integration.value}"
            )
    except GantryError as exc:
        report_error(exc, settings.debug)
        raise typer.Exit(code=EXIT_ERROR)

    raise typer.Exit(code=execute_build(settings, config, repo_conf, request))
