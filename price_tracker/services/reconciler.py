# price_tracker/services/reconciler.py

"""Fold a fresh extraction into a tracked item's stored snapshot."""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime

from price_tracker.models.events import (
    Event,
    PriceChanged,
    StockDepleted,
    StockRestored,
)
from price_tracker.models.extraction import ExtractionResult
from price_tracker.models.tracked_item import PriceHistoryEntry, TrackedItem

logger = logging.getLogger("price_tracker.reconciler")


@dataclass
class Reconciliation:
    """Updated item plus what changed during one reconciliation."""

    item: TrackedItem
    events: list[Event] = field(
        default_factory=lambda: list[Event]()
    )
    history_entry: PriceHistoryEntry | None = None


class Reconciler:
    """Compare extraction results with stored snapshots."""

    @staticmethod
    def reconcile(
        item: TrackedItem,
        result: ExtractionResult,
        now: datetime,
    ) -> Reconciliation:
        """Return an updated copy of *item* and the events it produced.

        A history entry (and ``PriceChanged``) is only produced for an
        in-stock item whose sale price differs from the last recorded
        price. Stock transitions produce ``StockRestored`` or
        ``StockDepleted``. ``last_checked_at`` always moves to *now*.
        """
        events: list[Event] = []
        history = list(item.price_history)
        entry: PriceHistoryEntry | None = None

        previous = item.last_recorded_price
        if not result.out_of_stock and result.sale_price != previous:
            entry = PriceHistoryEntry(result.sale_price, now)
            history.append(entry)
            events.append(PriceChanged(previous, result.sale_price))
            logger.info(
                "Price changed for %s: %s -> %d",
                item.title or item.url,
                previous,
                result.sale_price,
            )

        if item.out_of_stock and not result.out_of_stock:
            events.append(StockRestored())
        elif not item.out_of_stock and result.out_of_stock:
            events.append(StockDepleted())
        if item.out_of_stock != result.out_of_stock:
            logger.info(
                "Stock status changed for %s: %s -> %s",
                item.title or item.url,
                "out of stock" if item.out_of_stock else "in stock",
                "out of stock" if result.out_of_stock else "in stock",
            )

        updated = replace(
            item,
            title=result.title,
            list_price=result.list_price,
            sale_price=result.sale_price,
            discount=result.discount,
            condition=result.condition,
            capacity=result.capacity,
            ram=result.ram,
            color=result.color,
            image_url=result.image_url,
            out_of_stock=result.out_of_stock,
            price_history=history,
            last_checked_at=now,
            updated_at=now,
        )
        return Reconciliation(updated, events, entry)

    @staticmethod
    def mark_checked(item: TrackedItem, now: datetime) -> TrackedItem:
        """Failure path: record the check without touching the snapshot."""
        return replace(item, last_checked_at=now)
