"""TrackMaster CLI.

Resolve a Shopify order export against the tracking provider, buy full
tracking numbers, and mark orders fulfilled on Shopify.

Usage:
    trackmaster process orders.csv     Resolve tracking for every order
    trackmaster buy --all              Buy tracking for masked results
    trackmaster fulfill --all          Fulfill purchased orders on Shopify
    trackmaster failed list            Show the failure ledger
"""

import asyncio
import csv
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich.console import Console

from trackmaster import __version__
from trackmaster.cli.config import TrackMasterConfig, find_config_file, load_config
from trackmaster.cli.output import (
    ProgressReporter,
    format_batch_summary,
    format_failures_table,
    format_purchased_table,
    format_queue_table,
    format_results_table,
    format_workflow_summary,
)
from trackmaster.clients import RelayRouter, ShopifyClient, TrackingProviderClient
from trackmaster.db.connection import get_db_context, init_db
from trackmaster.errors import TrackMasterError, format_error, format_failure_summary
from trackmaster.models import (
    CSV_CREATED_AT,
    CSV_ORDER_NUMBER,
    CSV_SHIPPING_ZIP,
    OrderRow,
    TrackingResult,
    TrackingStatus,
)
from trackmaster.pipeline.batch import BatchPipeline
from trackmaster.services.failure_ledger import FailureLedger
from trackmaster.services.fulfillment_workflow import FulfillmentWorkflow
from trackmaster.services.ledger_store import SqlLedgerStore
from trackmaster.services.normalizer import normalize_orders
from trackmaster.services.purchase_workflow import PurchaseWorkflow
from trackmaster.services.tracking_resolver import TrackingResolver
from trackmaster.utils.logging_setup import configure_logging
from trackmaster.utils.redaction import redact_for_logging

_log = logging.getLogger(__name__)

app = typer.Typer(
    name="trackmaster",
    help="Order tracking resolution and Shopify fulfillment",
    no_args_is_help=True,
)
queue_app = typer.Typer(help="Inspect the hold-back queue")
purchased_app = typer.Typer(help="Inspect purchased tracking numbers")
failed_app = typer.Typer(help="Inspect or clear the failure ledger")
config_app = typer.Typer(help="Configuration management")

app.add_typer(queue_app, name="queue")
app.add_typer(purchased_app, name="purchased")
app.add_typer(failed_app, name="failed")
app.add_typer(config_app, name="config")

console = Console()

REQUIRED_COLUMNS = (CSV_ORDER_NUMBER, CSV_SHIPPING_ZIP, CSV_CREATED_AT)

# --- Global state ---
_config_path: str | None = None


@app.callback()
def main(
    config: Optional[str] = typer.Option(
        None, "--config", help="Path to trackmaster.yaml config file"
    ),
):
    """TrackMaster: order tracking resolution and fulfillment."""
    global _config_path
    _config_path = config


def _load_settings() -> TrackMasterConfig:
    """Load config and configure logging, exiting on a missing config file."""
    try:
        cfg = load_config(config_path=_config_path)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    configure_logging(cfg.logging.level, cfg.logging.file)
    return cfg


@contextmanager
def _open_store(cfg: TrackMasterConfig) -> Iterator[SqlLedgerStore]:
    init_db(cfg.database_url)
    with get_db_context(cfg.database_url) as db:
        yield SqlLedgerStore(db)


def _relay(cfg: TrackMasterConfig) -> RelayRouter:
    return RelayRouter(
        enabled=cfg.relay.enabled,
        base_url=cfg.relay.base_url,
        api_key=cfg.relay.api_key,
    )


def _provider(cfg: TrackMasterConfig) -> TrackingProviderClient:
    return TrackingProviderClient(
        api_key=cfg.provider.api_key,
        search_url=cfg.provider.search_url,
        buy_url=cfg.provider.buy_url,
        timeout=cfg.provider.timeout_seconds,
        relay=_relay(cfg),
    )


def _shopify(cfg: TrackMasterConfig) -> ShopifyClient:
    return ShopifyClient(
        store_url=cfg.shopify.domain,
        access_token=cfg.shopify.access_token,
        carrier=cfg.shopify.carrier,
        api_version=cfg.shopify.api_version,
        timeout=cfg.provider.timeout_seconds,
        relay=_relay(cfg),
    )


def _fail(error: TrackMasterError) -> None:
    console.print(f"[red]{format_error(error)}[/red]")
    raise typer.Exit(1)


def read_order_csv(path: Path) -> list[OrderRow]:
    """Read a Shopify order export into OrderRows.

    Args:
        path: CSV file with at least Name, Shipping Zip and Created at.

    Returns:
        One OrderRow per CSV line (not yet deduplicated).

    Raises:
        TrackMasterError: E-1001 if a required column is missing, E-1004 if
            the file is not UTF-8.
    """
    try:
        with open(path, newline="", encoding="utf-8-sig") as f:
            reader = csv.DictReader(f)
            fieldnames = [name.strip() for name in reader.fieldnames or []]
            for column in REQUIRED_COLUMNS:
                if column not in fieldnames:
                    raise TrackMasterError.from_code("E-1001", column=column)
            reader.fieldnames = fieldnames
            return [OrderRow.from_csv_row(row) for row in reader]
    except UnicodeDecodeError as e:
        raise TrackMasterError.from_code(
            "E-1004", source=Path(path).name, reason=e.reason
        ) from e


def _select(
    results: list[TrackingResult],
    orders: list[str] | None,
    select_all: bool,
    predicate: Callable[[TrackingResult], bool],
) -> list[str]:
    if select_all:
        return [r.order_number for r in results if predicate(r)]
    return list(orders or [])


def _can_buy(r: TrackingResult) -> bool:
    return r.status == TrackingStatus.PROCESSED and not r.has_full_tracking_number


def _can_fulfill(r: TrackingResult) -> bool:
    return r.status == TrackingStatus.PROCESSED and r.has_full_tracking_number


# --- Version ---


@app.command()
def version():
    """Show TrackMaster version."""
    from importlib.metadata import PackageNotFoundError
    from importlib.metadata import version as pkg_version
    try:
        v = pkg_version("trackmaster")
    except PackageNotFoundError:
        v = __version__
    console.print(f"[bold]TrackMaster[/bold] v{v}")


# --- Batch resolution ---


@app.command()
def process(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Shopify orders CSV"),
    max_orders: Optional[int] = typer.Option(
        None, "--max-orders", min=1, help="Only process the first N unique orders"
    ),
    limit: Optional[int] = typer.Option(
        None, "--limit", min=1, help="Provider result limit per search (overrides provider.limit)"
    ),
    as_json: bool = typer.Option(False, "--json", help="Output results as JSON"),
):
    """Resolve tracking numbers for every order in a CSV export."""
    cfg = _load_settings()
    try:
        orders = normalize_orders(read_order_csv(file))
        if max_orders:
            orders = orders[:max_orders]
        if not orders:
            raise TrackMasterError.from_code("E-1002", source=file.name)
    except TrackMasterError as e:
        _fail(e)

    resolver = TrackingResolver(
        _provider(cfg),
        limit=limit or cfg.provider.limit,
        days_for_queue=cfg.rules.days_for_queue,
        days_for_warning=cfg.rules.days_for_warning,
    )
    with _open_store(cfg) as store:
        pipeline = BatchPipeline(
            resolver=resolver,
            store=store,
            failure_ledger=FailureLedger(store),
            chunk_size=cfg.pacing.chunk_size,
            chunk_delay=cfg.pacing.chunk_delay,
            queue_flush=cfg.pacing.queue_flush,
        )
        if not as_json:
            pipeline.events.add_observer(ProgressReporter())
        result = asyncio.run(pipeline.run(orders))

    if as_json:
        console.print_json(format_results_table(result.results, as_json=True))
        return
    console.print(format_results_table(result.visible_results))
    console.print(format_batch_summary(result))
    if result.failures:
        console.print(f"[yellow]{format_failure_summary(result.failures)}[/yellow]")


# --- Purchase / fulfillment ---


@app.command()
def buy(
    orders: Optional[list[str]] = typer.Argument(None, help="Order numbers to buy"),
    select_all: bool = typer.Option(
        False, "--all", help="Buy every PROCESSED result without a full tracking number"
    ),
):
    """Buy full tracking numbers for selected orders."""
    if not orders and not select_all:
        console.print("[red]Give order numbers or --all.[/red]")
        raise typer.Exit(1)

    cfg = _load_settings()
    with _open_store(cfg) as store:
        results = store.load_session_results()
        selection = _select(results, orders, select_all, _can_buy)
        workflow = PurchaseWorkflow(
            _provider(cfg),
            store,
            FailureLedger(store),
            delay=cfg.pacing.purchase_delay,
        )
        try:
            summary = asyncio.run(workflow.run(selection, results))
        except TrackMasterError as e:
            _fail(e)

    console.print(format_workflow_summary("Purchase", summary))
    if summary.failures:
        console.print(f"[yellow]{format_failure_summary(summary.failures)}[/yellow]")


@app.command()
def fulfill(
    orders: Optional[list[str]] = typer.Argument(None, help="Order numbers to fulfill"),
    select_all: bool = typer.Option(
        False, "--all", help="Fulfill every PROCESSED result with a full tracking number"
    ),
):
    """Mark selected orders fulfilled on Shopify."""
    if not orders and not select_all:
        console.print("[red]Give order numbers or --all.[/red]")
        raise typer.Exit(1)

    cfg = _load_settings()
    with _open_store(cfg) as store:
        results = store.load_session_results()
        selection = _select(results, orders, select_all, _can_fulfill)
        workflow = FulfillmentWorkflow(
            _shopify(cfg),
            store,
            FailureLedger(store),
            delay=cfg.pacing.fulfillment_delay,
        )
        try:
            summary = asyncio.run(workflow.run(selection, results))
        except TrackMasterError as e:
            _fail(e)

    console.print(format_workflow_summary("Fulfillment", summary))
    if summary.failures:
        console.print(f"[yellow]{format_failure_summary(summary.failures)}[/yellow]")


# --- Inspection ---


@app.command()
def results(
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
    include_queued: bool = typer.Option(
        False, "--include-queued", help="Also show QUEUED results"
    ),
):
    """Show the results of the last processed batch."""
    cfg = _load_settings()
    with _open_store(cfg) as store:
        items = store.load_session_results()
    if not include_queued:
        items = [r for r in items if r.status != TrackingStatus.QUEUED]
    if as_json:
        console.print_json(format_results_table(items, as_json=True))
    else:
        console.print(format_results_table(items))


@queue_app.command("list")
def queue_list(as_json: bool = typer.Option(False, "--json", help="Output as JSON")):
    """List held-back orders."""
    cfg = _load_settings()
    with _open_store(cfg) as store:
        items = store.load_queue()
    if as_json:
        console.print_json(format_queue_table(items, as_json=True))
    else:
        console.print(format_queue_table(items))


@purchased_app.command("list")
def purchased_list(as_json: bool = typer.Option(False, "--json", help="Output as JSON")):
    """List purchased tracking numbers."""
    cfg = _load_settings()
    with _open_store(cfg) as store:
        items = store.load_purchased()
    if as_json:
        console.print_json(format_purchased_table(items, as_json=True))
    else:
        console.print(format_purchased_table(items))


@failed_app.command("list")
def failed_list(as_json: bool = typer.Option(False, "--json", help="Output as JSON")):
    """List failure ledger entries."""
    cfg = _load_settings()
    with _open_store(cfg) as store:
        items = store.load_failures()
    if as_json:
        console.print_json(format_failures_table(items, as_json=True))
    else:
        console.print(format_failures_table(items))


@failed_app.command("clear")
def failed_clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete every failure ledger entry."""
    if not yes:
        typer.confirm("Clear all failure records?", abort=True)
    cfg = _load_settings()
    with _open_store(cfg) as store:
        removed = store.clear_failures()
    console.print(f"Cleared {removed} failure record(s).")


# --- Config ---


@config_app.command("show")
def config_show():
    """Display resolved configuration (secrets masked)."""
    cfg = _load_settings()
    source = _config_path or find_config_file()
    console.print(f"[bold]Source:[/bold] {source or 'defaults (no config file found)'}")
    console.print(
        yaml.safe_dump(redact_for_logging(cfg.model_dump()), sort_keys=False),
        markup=False,
    )
