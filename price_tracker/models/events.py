# price_tracker/models/events.py

"""Reconciliation events and notification intents."""

from dataclasses import dataclass
from enum import Enum

from price_tracker.models.alert import Alert
from price_tracker.models.tracked_item import TrackedItem


@dataclass(frozen=True)
class PriceChanged:
    """The in-stock sale price moved away from the last recorded price."""

    old_price: int | None
    new_price: int


@dataclass(frozen=True)
class StockRestored:
    """The item went from out of stock to in stock."""


@dataclass(frozen=True)
class StockDepleted:
    """The item went from in stock to out of stock."""


Event = PriceChanged | StockRestored | StockDepleted


class NotificationKind(str, Enum):
    """What a notification is about."""

    PRICE_TARGET_REACHED = "price_target_reached"
    BACK_IN_STOCK = "back_in_stock"
    ALERT_CREATED = "alert_created"


@dataclass
class NotificationIntent:
    """A request for the delivery layer to notify one recipient."""

    kind: NotificationKind
    recipient: str
    item: TrackedItem
    alert: Alert | None = None
    new_price: int | None = None
