# price_tracker/services/notifier.py

"""Decide who gets notified after a reconciliation."""

import logging
from datetime import datetime
from typing import Protocol

from price_tracker.models.alert import Alert
from price_tracker.models.events import (
    NotificationIntent,
    NotificationKind,
    PriceChanged,
    StockRestored,
)
from price_tracker.models.tracked_item import TrackedItem
from price_tracker.services.reconciler import Reconciliation

logger = logging.getLogger("price_tracker.notifier")


class NotificationSender(Protocol):
    """Delivery collaborator; see ``price_tracker.notifications``."""

    def send(self, intent: NotificationIntent) -> None: ...


class Notifier:
    """Queue notification intents; delivery happens in :meth:`dispatch`."""

    def __init__(self) -> None:
        self._queue: list[NotificationIntent] = []

    @property
    def pending(self) -> list[NotificationIntent]:
        return list(self._queue)

    def on_price_changed(
        self,
        item: TrackedItem,
        new_price: int,
        alerts: list[Alert],
        now: datetime | None = None,
    ) -> list[Alert]:
        """Trigger every active alert on *item* with target >= *new_price*.

        Triggered alerts are deactivated in place and returned so the
        caller can persist them.
        """
        when = now or datetime.now()
        triggered: list[Alert] = []
        for alert in alerts:
            if alert.item_id != item.id or not alert.matches(new_price):
                continue
            alert.trigger(when)
            triggered.append(alert)
            self._queue.append(NotificationIntent(
                kind=NotificationKind.PRICE_TARGET_REACHED,
                recipient=alert.owner,
                item=item,
                alert=alert,
                new_price=new_price,
            ))
        if triggered:
            logger.info(
                "%d alert(s) triggered for %s at %d",
                len(triggered),
                item.title,
                new_price,
            )
        return triggered

    def on_stock_restored(self, item: TrackedItem) -> None:
        """Queue a single back-in-stock notice for the item owner."""
        self._queue.append(NotificationIntent(
            kind=NotificationKind.BACK_IN_STOCK,
            recipient=item.owner,
            item=item,
            new_price=item.sale_price,
        ))

    def on_alert_created(self, item: TrackedItem, alert: Alert) -> None:
        """Queue the confirmation sent when an alert is set up."""
        self._queue.append(NotificationIntent(
            kind=NotificationKind.ALERT_CREATED,
            recipient=alert.owner,
            item=item,
            alert=alert,
        ))

    def handle(
        self,
        reconciliation: Reconciliation,
        alerts: list[Alert],
        now: datetime | None = None,
    ) -> list[Alert]:
        """Route a reconciliation's events; returns triggered alerts."""
        triggered: list[Alert] = []
        for event in reconciliation.events:
            if isinstance(event, PriceChanged):
                triggered.extend(self.on_price_changed(
                    reconciliation.item, event.new_price, alerts, now,
                ))
            elif isinstance(event, StockRestored):
                self.on_stock_restored(reconciliation.item)
        return triggered

    def drain(self) -> list[NotificationIntent]:
        """Return and clear the queued intents."""
        intents, self._queue = self._queue, []
        return intents

    def dispatch(self, sender: NotificationSender) -> int:
        """Hand queued intents to *sender*; returns how many were sent.

        Delivery errors are logged and dropped. Alert and history state
        has already been persisted and is never rolled back.
        """
        sent = 0
        for intent in self.drain():
            try:
                sender.send(intent)
                sent += 1
            except Exception as exc:
                logger.error(
                    "Failed to deliver %s notification to %s: %s",
                    intent.kind.value,
                    intent.recipient,
                    exc,
                    exc_info=True,
                )
        return sent
