"""Local project commands: materialize, archive and preview."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from portforge.cli_support import handle_cli_error, print_info, print_success
from portforge.core.config import DEFAULT_TEMPLATE_DIR
from portforge.models.user import UserData
from portforge.scaffold import TemplateMaterializer, zip_folder


def register_project_commands(app: typer.Typer, console: Console) -> None:
    """Attach local project subcommands to the main CLI."""

    @app.command("materialize")
    def materialize_command(
        user_file: Path = typer.Argument(..., help="User data file (YAML or JSON)."),
        output: Path = typer.Argument(..., help="Directory to create."),
        template: Path = typer.Option(DEFAULT_TEMPLATE_DIR, "--template", "-t", help="Template directory."),
        overwrite: bool = typer.Option(False, "--overwrite", help="Replace an existing output directory."),
    ) -> None:
        """Render the portfolio template for one user without deploying it."""
        try:
            user_data = UserData.from_file(user_file)
        except (OSError, ValueError, ValidationError) as e:
            handle_cli_error(e, console, exit_code=2)

        try:
            project = TemplateMaterializer(template).materialize(output, user_data, overwrite=overwrite)
        except OSError as e:
            handle_cli_error(e, console)

        print_success(console, f"Portfolio generated at {project}")

    @app.command("archive")
    def archive_command(
        source: Path = typer.Argument(..., help="Project directory to compress."),
        destination: Path = typer.Argument(..., help="Zip file to write."),
    ) -> None:
        """Zip a project, leaving out dependencies, build output and VCS data."""
        try:
            report = zip_folder(source, destination)
        except OSError as e:
            handle_cli_error(e, console)

        print_success(console, f"Archived {report.file_count} file(s) to {report.path}")
        print_info(
            console,
            f"{report.source_bytes / (1024 * 1024):.2f} MB -> {report.archive_bytes / (1024 * 1024):.2f} MB",
        )

    @app.command("preview")
    def preview_command(
        project_dir: Path = typer.Argument(..., help="Generated project directory."),
        port: int = typer.Option(5000, "--port", "-p", help="Local port."),
        dev: bool = typer.Option(False, "--dev", help="Run the dev server instead of a production preview."),
        timeout: float = typer.Option(60.0, "--timeout", help="Seconds to wait for the server to answer."),
        install: bool = typer.Option(False, "--install", help="Run npm install first."),
    ) -> None:
        """Serve a generated project locally until interrupted."""
        from portforge.services.preview import PreviewError, PreviewServer, install_dependencies

        try:
            if install:
                install_dependencies(project_dir)
            server = PreviewServer(project_dir, port=port, dev=dev, timeout=timeout)
            url = server.start()
        except PreviewError as e:
            handle_cli_error(e, console)

        print_success(console, f"Preview running at {url} (Ctrl+C to stop)")
        try:
            server.process.wait()
        except KeyboardInterrupt:
            pass
        finally:
            server.stop()
