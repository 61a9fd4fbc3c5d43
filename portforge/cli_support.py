"""Shared utilities for portforge CLI modules."""
from __future__ import annotations

import os
from dataclasses import replace
from typing import Optional

import typer
from rich.console import Console

from portforge.core.config import ConfigError, PipelineConfig, load_config


def is_mock() -> bool:
    """Return True when the CLI runs in mock mode."""
    return os.environ.get("PORTFORGE_MOCK") == "1"


def setup_file_logging(log_file: Optional[str] = None, verbose: bool = False) -> None:
    """Set up file logging for CLI commands.

    Args:
        log_file: Path to log file (optional)
        verbose: Enable verbose logging
    """
    from portforge.core.logger import setup_file_logging as _setup_file_logging
    _setup_file_logging(log_file=log_file, verbose=verbose)


def resolve_config(
    console: Console,
    config_path: Optional[str] = None,
    dry_run: bool = False,
    **overrides,
) -> PipelineConfig:
    """Load configuration, apply CLI overrides and validate it.

    Exits with code 2 on configuration errors.
    """
    try:
        values = {key: value for key, value in overrides.items() if value is not None}
        if dry_run or is_mock():
            values["mock"] = True
        config = replace(load_config(config_path), **values)
        config.validate()
    except ConfigError as e:
        print_error(console, str(e))
        raise typer.Exit(2) from e
    return config


def handle_cli_error(
    e: Exception,
    console: Console,
    verbose: bool = False,
    exit_code: int = 1
) -> None:
    """Handle CLI errors with consistent formatting.

    Args:
        e: Exception to handle
        console: Rich console for output
        verbose: Show exception traceback if True
        exit_code: Exit code to use
    """
    console.print(f"[red]Error:[/red] {e}")
    if verbose:
        console.print_exception()
    raise typer.Exit(exit_code)


def print_success(console: Console, message: str, prefix: str = "✓") -> None:
    """Print success message with consistent formatting."""
    console.print(f"[green]{prefix}[/green] {message}")


def print_error(console: Console, message: str, prefix: str = "✗") -> None:
    """Print error message with consistent formatting."""
    console.print(f"[red]{prefix}[/red] {message}")


def print_warning(console: Console, message: str, prefix: str = "⚠") -> None:
    """Print warning message with consistent formatting."""
    console.print(f"[yellow]{prefix}[/yellow] {message}")


def print_info(console: Console, message: str, prefix: str = "ℹ") -> None:
    """Print info message with consistent formatting."""
    console.print(f"[cyan]{prefix}[/cyan] {message}")
