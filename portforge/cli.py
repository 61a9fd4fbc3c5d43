#!/usr/bin/env python3
"""portforge CLI - generate and deploy personal portfolio sites."""

import typer
from rich.console import Console

from portforge.cli_pipeline_commands import register_pipeline_commands
from portforge.cli_project_commands import register_project_commands

app = typer.Typer(
    name="portforge",
    help="""portforge - Portfolio sites from a profile, deployed in one step

Quick start:
  portforge materialize me.yml ./me      # Render the template locally
  portforge preview ./me --dev           # Look at it
  portforge generate me.yml              # Upload, push to GitHub, deploy on Vercel

More commands: portforge --help
""",
    add_completion=False,
)

console = Console()

register_pipeline_commands(app, console)
register_project_commands(app, console)


def main():
    app()


if __name__ == "__main__":
    main()
