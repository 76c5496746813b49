"""CLI UI components (Rich).

Why separate components:
- Keeps command logic free of presentation details.
- Lets several commands reuse the same tables/panels.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.services.dispatcher import DumpReport


def print_banner(console: Console) -> None:
    title = Text("qywx-dumper", style="bold cyan")
    subtitle = Text("Agents • Departments • Tags", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_summary_table(report: DumpReport) -> Table:
    """One row per job: list size, files written, failed items."""

    table = Table(title="Dump summary")
    table.add_column("Job", style="cyan", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Items", justify="right")
    table.add_column("Written", justify="right", style="green")
    table.add_column("Empty", justify="right", style="dim")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Error", style="red")

    for job in report.jobs:
        status = "[green]OK[/green]" if job.succeeded else "[red]FAILED[/red]"
        empty = sum(1 for o in job.outcomes if o.empty)
        table.add_row(
            job.name,
            status,
            str(job.total),
            str(len(job.written)),
            str(empty),
            str(len(job.failures)),
            job.error or "",
        )
    return table


def build_failures_table(report: DumpReport) -> Table | None:
    failures = [o for job in report.jobs for o in job.failures]
    if not failures:
        return None

    table = Table(title="Failed items")
    table.add_column("Job", style="cyan", no_wrap=True)
    table.add_column("ID", justify="right")
    table.add_column("Name", style="white")
    table.add_column("Error", style="red")
    for outcome in failures:
        table.add_row(outcome.job, str(outcome.item_id), outcome.item_name, outcome.error or "")
    return table
