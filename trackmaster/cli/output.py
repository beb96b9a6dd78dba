"""CLI output formatters for Rich tables and JSON.

Provides human-readable Rich table output (default) and machine-parseable
JSON output (--json flag). All formatting goes through these functions
so the CLI commands stay clean.
"""

import json
from collections.abc import Sequence

from pydantic import BaseModel
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskID, TaskProgressColumn, TextColumn
from rich.table import Table

from trackmaster.models import FailedItem, PurchasedItem, QueueItem, TrackingResult
from trackmaster.pipeline.models import BatchRunResult, PipelineSnapshot, WorkflowSummary

console = Console()

# Status color map (matches the operator console colors)
STATUS_COLORS = {
    "QUEUED": "blue",
    "PROCESSED": "green",
    "SKIPPED": "yellow",
    "ERROR": "red",
}

ACTION_COLORS = {
    "PROCESS": "yellow",
    "BUY": "magenta",
    "FULFILL": "cyan",
}


def _to_json(items: Sequence[BaseModel]) -> str:
    return json.dumps([item.model_dump(mode="json") for item in items], indent=2)


def _render(table: Table) -> str:
    with console.capture() as capture:
        console.print(table)
    return capture.get()


def format_results_table(results: Sequence[TrackingResult], as_json: bool = False) -> str:
    """Format tracking results as a Rich table or JSON.

    Args:
        results: Results to display.
        as_json: If True, return JSON string instead of Rich table.

    Returns:
        Formatted string output.
    """
    if as_json:
        return _to_json(results)

    if not results:
        return "No results."

    table = Table(title="Tracking Results")
    table.add_column("Order", style="cyan", no_wrap=True)
    table.add_column("Zip", no_wrap=True)
    table.add_column("Order Date", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Tracking #", no_wrap=True)
    table.add_column("Expected", no_wrap=True)
    table.add_column("Note")

    for r in results:
        color = STATUS_COLORS.get(r.status.value, "white")
        table.add_row(
            r.order_number,
            r.zip,
            r.order_date,
            f"[{color}]{r.status.value}[/{color}]",
            r.tracking_number or "—",
            (r.expected_delivery or "—")[:10],
            r.note or "",
        )
    return _render(table)


def format_queue_table(items: Sequence[QueueItem], as_json: bool = False) -> str:
    """Format queue items as a Rich table or JSON."""
    if as_json:
        return _to_json(items)

    if not items:
        return "Queue is empty."

    table = Table(title=f"Queue ({len(items)})")
    table.add_column("Order", style="cyan", no_wrap=True)
    table.add_column("Expected", no_wrap=True)
    table.add_column("Tracking URL")
    table.add_column("Added", no_wrap=True)
    for item in items:
        table.add_row(
            item.order_number,
            item.expected_delivery[:10],
            item.tracking_url,
            item.added_at[:19],
        )
    return _render(table)


def format_purchased_table(items: Sequence[PurchasedItem], as_json: bool = False) -> str:
    """Format purchased tracking numbers as a Rich table or JSON."""
    if as_json:
        return _to_json(items)

    if not items:
        return "No purchased tracking numbers."

    table = Table(title=f"Purchased ({len(items)})")
    table.add_column("Order", style="cyan", no_wrap=True)
    table.add_column("Tracking #", style="green", no_wrap=True)
    table.add_column("Zip", no_wrap=True)
    table.add_column("Expected", no_wrap=True)
    table.add_column("Purchased", no_wrap=True)
    for item in items:
        table.add_row(
            item.order_number,
            item.tracking_number,
            item.zip,
            (item.expected_delivery or "—")[:10],
            item.purchased_at[:19],
        )
    return _render(table)


def format_failures_table(items: Sequence[FailedItem], as_json: bool = False) -> str:
    """Format failure ledger entries as a Rich table or JSON."""
    if as_json:
        return _to_json(items)

    if not items:
        return "No failures recorded."

    table = Table(title=f"Failures ({len(items)})", show_lines=True)
    table.add_column("Order", style="cyan", no_wrap=True)
    table.add_column("Action", no_wrap=True)
    table.add_column("Code", no_wrap=True)
    table.add_column("Reason")
    table.add_column("When", no_wrap=True)
    for item in items:
        color = ACTION_COLORS.get(item.action.value, "white")
        table.add_row(
            item.order_number,
            f"[{color}]{item.action.value}[/{color}]",
            item.code or "—",
            item.reason,
            item.failed_at[:19],
        )
    return _render(table)


def format_batch_summary(result: BatchRunResult) -> str:
    """One-line status breakdown of a batch run."""
    counts = ", ".join(
        f"{status}: {count}" for status, count in sorted(result.status_counts.items())
    )
    return (
        f"Processed {result.total} orders ({counts}). "
        f"Queued {len(result.queued)}, failures {len(result.failures)}."
    )


def format_workflow_summary(label: str, summary: WorkflowSummary) -> str:
    """One-line outcome of a purchase or fulfillment run."""
    line = f"{label} complete. Success: {summary.succeeded}, Failed: {summary.failed}"
    if summary.skipped:
        line += f", Skipped: {summary.skipped}"
    return line


class ProgressReporter:
    """Pipeline observer that drives a Rich progress bar."""

    def __init__(self, target: Console | None = None) -> None:
        self._progress = Progress(
            TextColumn("[bold blue]Resolving orders"),
            BarColumn(),
            TaskProgressColumn(),
            TextColumn("chunk {task.fields[chunk]}"),
            console=target or Console(stderr=True),
            transient=True,
        )
        self._task: TaskID | None = None

    async def on_batch_started(self, total_orders: int, total_chunks: int) -> None:
        self._progress.start()
        self._task = self._progress.add_task(
            "resolve", total=max(total_orders, 1), chunk=f"0/{total_chunks}"
        )

    async def on_chunk_completed(self, snapshot: PipelineSnapshot) -> None:
        if self._task is None:
            return
        self._progress.update(
            self._task,
            completed=snapshot.completed,
            chunk=f"{snapshot.chunk_index + 1}/{snapshot.total_chunks}",
        )

    async def on_batch_completed(self, result: BatchRunResult) -> None:
        self._progress.stop()
