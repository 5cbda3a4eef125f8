"""Gantry CLI — Typer-based command-line interface.

Provides the ``gantry`` command with subcommands for building a commit,
building from a webhook payload, and validating the configuration.

All output uses Rich for formatted terminal display.
"""
