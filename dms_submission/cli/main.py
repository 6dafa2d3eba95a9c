"""
DMS Submission CLI — Main Entry Point

Usage:
    dms-submission submissions list <owner>
    dms-submission submissions retry <owner> <id>
    dms-submission serve
"""

import typer
from rich.console import Console

from dms_submission import __version__
from dms_submission.cli.submissions_cli import submissions_app
from dms_submission.config import config
from dms_submission.utils.logging_setup import setup_logging

app = typer.Typer(
    name="dms-submission",
    help="Document submission tracking service",
    no_args_is_help=True,
)

app.add_typer(submissions_app, name="submissions", help="Inspect and retry submission items")

console = Console()


@app.callback()
def main_callback():
    """DMS Submission — document submission tracking service."""


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold]dms-submission[/bold] v{__version__}")


@app.command()
def serve(
    host: str = typer.Option(config.api.host, "--host", help="Bind address"),
    port: int = typer.Option(config.api.port, "--port", help="Bind port"),
):
    """Run the HTTP API."""
    import uvicorn

    setup_logging()

    uvicorn.run("dms_submission.api.main:create_app", factory=True, host=host, port=port)


if __name__ == "__main__":
    app()
