# price_tracker/cli/runner.py

"""Headless CLI commands built on the tracking and sweep services."""

import json
import logging
import sys
from dataclasses import dataclass

from rich.console import Console
from rich.table import Table

from price_tracker.config.settings import Settings
from price_tracker.errors import TrackerError
from price_tracker.models.tracked_item import TrackedItem
from price_tracker.notifications.email_sender import build_sender, format_rupees
from price_tracker.scrapers.cashify_scraper import CashifyScraper
from price_tracker.services.price_updater import PriceUpdater
from price_tracker.services.tracking_service import TrackingService
from price_tracker.storage.tracker_store import TrackerStore

logger = logging.getLogger("price_tracker.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


@dataclass
class Services:
    """Wired-up collaborators for one CLI invocation."""

    store: TrackerStore
    tracking: TrackingService
    updater: PriceUpdater

    def close(self) -> None:
        self.store.close()


def build_services(settings: Settings | None = None) -> Services:
    """Wire store, scraper and sender from one settings object."""
    active = settings or Settings()
    store = TrackerStore(active.DB_PATH)
    scraper = CashifyScraper(active)
    sender = build_sender(active)
    return Services(
        store=store,
        tracking=TrackingService(store, scraper, sender, active),
        updater=PriceUpdater(store, scraper, sender, active),
    )


def _item_to_dict(item: TrackedItem) -> dict[str, object]:
    """Serialise an item to a plain dict for JSON output."""
    return {
        "id": item.id,
        "owner": item.owner,
        "url": item.url,
        "title": item.title,
        "list_price": item.list_price,
        "sale_price": item.sale_price,
        "discount": item.discount,
        "condition": item.condition,
        "storage": item.capacity,
        "color": item.color,
        "image_url": item.image_url,
        "out_of_stock": item.out_of_stock,
        "last_checked_at": (
            item.last_checked_at.isoformat()
            if item.last_checked_at else None
        ),
        "price_history": [
            {"price": e.price, "observed_at": e.observed_at.isoformat()}
            for e in item.price_history
        ],
    }


def _print_items_table(items: list[TrackedItem]) -> None:
    """Render a Rich table of tracked items to stdout."""
    table = Table(
        title="Tracked Products",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("ID", style="dim", width=5)
    table.add_column("Title", max_width=50)
    table.add_column("Price", justify="right", style="green")
    table.add_column("List", justify="right", style="dim")
    table.add_column("Off", justify="right")
    table.add_column("Condition")
    table.add_column("Storage")
    table.add_column("Stock", justify="center")

    for item in items:
        table.add_row(
            str(item.id),
            item.title[:50],
            format_rupees(item.sale_price),
            format_rupees(item.list_price),
            item.discount,
            item.condition,
            item.capacity,
            "[red]Out[/red]" if item.out_of_stock else "[green]In[/green]",
        )

    Console().print(table)


def run_track(services: Services, owner: str, url: str) -> int:
    """Start tracking a product URL."""
    try:
        item = services.tracking.track(owner, url)
    except TrackerError as exc:
        logger.error("Could not track %s for %s: %s", url, owner, exc)
        _err.print(f"[red]Could not track product: {exc}[/red]")
        return 1
    _err.print(
        f"[green]✓ Tracking #{item.id}: {item.title} at "
        f"{format_rupees(item.sale_price)}[/green]"
    )
    return 0


def run_untrack(services: Services, owner: str, item_id: int) -> int:
    try:
        services.tracking.untrack(owner, item_id)
    except TrackerError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1
    _err.print(f"[green]✓ Stopped tracking #{item_id}[/green]")
    return 0


def run_list(
    services: Services, owner: str | None, output_format: str,
) -> int:
    """List tracked items as JSON (stdout) or a table."""
    items = services.tracking.list_items(owner)
    if not items:
        _err.print("[yellow]No tracked products.[/yellow]")
        return 0
    if output_format == "table":
        _print_items_table(items)
    else:
        json.dump(
            [_item_to_dict(i) for i in items],
            sys.stdout,
            ensure_ascii=False,
            indent=2,
        )
        sys.stdout.write("\n")
    return 0


def run_alert(
    services: Services, owner: str, item_id: int, target_price: int,
) -> int:
    try:
        alert = services.tracking.create_alert(owner, item_id, target_price)
    except TrackerError as exc:
        _err.print(f"[red]Could not set alert: {exc}[/red]")
        return 1
    _err.print(
        f"[green]✓ Alert #{alert.id} set at "
        f"{format_rupees(alert.target_price)}[/green]"
    )
    return 0


def run_alerts(services: Services, owner: str) -> int:
    """Show an owner's alerts."""
    alerts = services.tracking.list_alerts(owner)
    table = Table(title="Price Alerts", title_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Item")
    table.add_column("Target", justify="right", style="green")
    table.add_column("Status", justify="center")
    for alert in alerts:
        table.add_row(
            str(alert.id),
            str(alert.item_id),
            format_rupees(alert.target_price),
            "Active" if alert.active else "[dim]Triggered[/dim]",
        )
    Console().print(table)
    return 0


async def run_sweep(services: Services) -> int:
    """Run one sweep; exit code 1 if any item failed."""
    result = await services.updater.run_sweep()
    for error in result.errors:
        _err.print(f"[red]Error: {error}[/red]")
    colour = "yellow" if result.skipped or result.errors else "green"
    _err.print(f"[{colour}]{result.message}[/{colour}]")
    return 1 if result.errors else 0


async def run_watch(services: Services, interval: float | None) -> int:
    """Sweep forever at *interval* seconds."""
    _err.print("[bold]Watching tracked products (Ctrl+C to stop)...[/bold]")
    await services.updater.watch(interval)
    return 0


def run_history(
    services: Services, item_id: int, chart: bool,
) -> int:
    """Print an item's price history and optionally export a chart."""
    item = services.store.get_item(item_id)
    if item is None:
        _err.print(f"[red]No item {item_id}[/red]")
        return 1

    table = Table(title=item.title, title_style="bold cyan")
    table.add_column("Observed", style="dim")
    table.add_column("Price", justify="right", style="green")
    for entry in item.price_history:
        table.add_row(
            entry.observed_at.strftime("%Y-%m-%d %H:%M"),
            format_rupees(entry.price),
        )
    Console().print(table)

    summary = services.store.get_trend_summary(item_id)
    if summary:
        _err.print(
            f"[dim]min {summary['min']} · max {summary['max']} · "
            f"avg {summary['avg']} · {summary['count']} points[/dim]"
        )

    if chart:
        from price_tracker.storage.chart_exporter import export_price_chart

        path = export_price_chart(item)
        if path is None:
            _err.print("[yellow]Not enough history for a chart.[/yellow]")
        else:
            _err.print(f"[green]✓ Chart saved to {path}[/green]")
    return 0
