# price_tracker/models/tracked_item.py

"""Tracked product model and its append-only price history."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class PriceHistoryEntry:
    """A single sale-price observation."""

    price: int
    observed_at: datetime


@dataclass
class TrackedItem:
    """One owner's subscription to a product URL plus its last snapshot."""

    owner: str
    url: str
    title: str = ""
    list_price: int = 0
    sale_price: int = 0
    discount: str = "0%"
    condition: str = "Good"
    capacity: str = ""
    ram: str = ""
    color: str = ""
    image_url: str = ""
    out_of_stock: bool = False
    price_history: list[PriceHistoryEntry] = field(
        default_factory=lambda: list[PriceHistoryEntry]()
    )
    last_checked_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    id: int | None = None

    @property
    def last_recorded_price(self) -> int | None:
        """Price of the newest history entry, or None without history."""
        if not self.price_history:
            return None
        return self.price_history[-1].price

    @property
    def in_stock(self) -> bool:
        return not self.out_of_stock
