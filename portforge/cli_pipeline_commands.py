"""Pipeline CLI commands: full generation runs and deploy-only runs."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from portforge.cli_support import (
    handle_cli_error,
    print_success,
    resolve_config,
    setup_file_logging,
)
from portforge.core.identity import slugify
from portforge.models.deployment import PipelineResult
from portforge.models.user import UserData


def _print_result(console: Console, result: PipelineResult) -> None:
    table = Table(show_header=False, box=None)
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("Repository", result.repo_url)
    if result.download_url:
        table.add_row("Download", result.download_url)
    table.add_row("Live URL", result.deployment_url)
    console.print(table)


def register_pipeline_commands(app: typer.Typer, console: Console) -> None:
    """Attach generate/deploy/slug commands to the main CLI."""

    @app.command("generate")
    def generate_command(
        user_file: Path = typer.Argument(..., help="User data file (YAML or JSON)."),
        config: Optional[str] = typer.Option(None, "--config", "-c", help="portforge.yml to load."),
        template: Optional[Path] = typer.Option(None, "--template", "-t", help="Template directory."),
        work_dir: Optional[Path] = typer.Option(None, "--work-dir", help="Where output folders and archives are created."),
        keep_output: bool = typer.Option(False, "--keep-output", help="Do not delete the generated folder."),
        rollback: bool = typer.Option(False, "--rollback", help="Delete created remote resources if a later stage fails."),
        dry_run: bool = typer.Option(False, "--dry-run", help="Log remote calls and git pushes instead of running them."),
        verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging and tracebacks."),
        log_file: Optional[str] = typer.Option(None, "--log-file", help="Also write logs to this file."),
    ) -> None:
        """Generate a portfolio, upload it, push it to GitHub and deploy it to Vercel."""
        from portforge.core.pipeline import PortfolioPipeline

        if log_file or verbose:
            setup_file_logging(log_file=log_file, verbose=verbose)

        try:
            user_data = UserData.from_file(user_file)
        except (OSError, ValueError, ValidationError) as e:
            handle_cli_error(e, console, verbose=verbose, exit_code=2)

        pipeline_config = resolve_config(
            console,
            config,
            dry_run=dry_run,
            template_dir=template,
            work_dir=work_dir,
            keep_output=keep_output or None,
            rollback_on_failure=rollback or None,
        )

        console.print(f"[dim]Generating portfolio for[/dim] {user_data.name}")
        pipeline = PortfolioPipeline(pipeline_config)
        try:
            result = pipeline.run(user_data)
        except Exception as e:
            handle_cli_error(e, console, verbose=verbose)

        print_success(console, "Portfolio deployed")
        _print_result(console, result)

    @app.command("deploy")
    def deploy_command(
        project_dir: Path = typer.Argument(..., help="Already generated project directory."),
        name: str = typer.Argument(..., help="Display name; its slug becomes the repository name."),
        config: Optional[str] = typer.Option(None, "--config", "-c", help="portforge.yml to load."),
        dry_run: bool = typer.Option(False, "--dry-run", help="Log remote calls and git pushes instead of running them."),
        verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging and tracebacks."),
        log_file: Optional[str] = typer.Option(None, "--log-file", help="Also write logs to this file."),
    ) -> None:
        """Create the repository, push the project and trigger a Vercel deployment."""
        from portforge.core.pipeline import PortfolioPipeline

        if log_file or verbose:
            setup_file_logging(log_file=log_file, verbose=verbose)

        if not project_dir.is_dir():
            handle_cli_error(NotADirectoryError(f"Project directory not found: {project_dir}"),
                             console, exit_code=2)

        pipeline_config = resolve_config(console, config, dry_run=dry_run)
        pipeline = PortfolioPipeline(pipeline_config)
        try:
            result = pipeline.deploy_project(project_dir, name)
        except Exception as e:
            handle_cli_error(e, console, verbose=verbose)

        print_success(console, "Deployment triggered")
        _print_result(console, result)

    @app.command("slug")
    def slug_command(
        name: str = typer.Argument(..., help="Display name."),
    ) -> None:
        """Print the project slug derived from a display name."""
        console.print(slugify(name))
