# price_tracker/models/alert.py

"""Price alert model."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Alert:
    """A user-defined price threshold that fires at most once.

    ``active`` is the whole state machine: True is *Active*, False is
    *Triggered*. There is no way back; a new alert must be created.
    """

    item_id: int
    owner: str
    target_price: int
    active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None
    id: int | None = None

    def matches(self, price: int) -> bool:
        """Return True if *price* satisfies this alert's target."""
        return self.active and self.target_price >= price

    def trigger(self, when: datetime) -> None:
        """Move the alert to its terminal Triggered state."""
        self.active = False
        self.updated_at = when
