"""
Submission CLI Subcommands

Thin wrapper over SubmissionService.
No business logic — just command parsing and output formatting.
"""

import asyncio
import json as json_lib

import typer
from rich.console import Console
from rich.table import Table

from dms_submission.cli.wiring import get_service
from dms_submission.submission.errors import NothingToUpdateError

submissions_app = typer.Typer(
    name="submissions",
    help="Inspect and retry submission items",
    no_args_is_help=True,
)

console = Console()


@submissions_app.command("list")
def list_submissions(
    owner: str = typer.Argument(..., help="Owning service"),
    json: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
):
    """List submission items for an owner."""
    service = get_service()
    summaries = asyncio.run(service.list(owner))

    if json:
        output = [
            {
                "id": s.id,
                "status": s.status.value,
                "failureReason": s.failure_reason,
                "lastUpdated": s.last_updated.isoformat(),
            }
            for s in summaries
        ]
        print(json_lib.dumps(output, indent=2))
        return

    if not summaries:
        console.print("[dim]No submissions found[/dim]")
        return

    table = Table(title=f"Submissions for {owner} ({len(summaries)})")
    table.add_column("ID", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Failure Reason")
    table.add_column("Last Updated")

    for s in summaries:
        table.add_row(
            s.id,
            s.status.value,
            s.failure_reason or "-",
            s.last_updated.strftime("%Y-%m-%d %H:%M:%S"),
        )

    console.print(table)


@submissions_app.command("retry")
def retry_submission(
    owner: str = typer.Argument(..., help="Owning service"),
    item_id: str = typer.Argument(..., help="Submission item ID"),
):
    """Move a Failed item back to Submitted."""
    service = get_service()
    try:
        item = asyncio.run(service.retry(owner, item_id))
    except NothingToUpdateError:
        console.print(f"[red]Not found: {owner}/{item_id}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] {owner}/{item.id} → {item.status.value}")
