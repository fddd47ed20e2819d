# price_tracker/services/tracking_service.py

"""User-facing operations: track, untrack, list, and set alerts."""

import logging
from datetime import datetime
from urllib.parse import urlparse

from price_tracker.config.settings import Settings
from price_tracker.errors import (
    DuplicateItem,
    InvalidAlert,
    InvalidProductURL,
    ItemNotFound,
)
from price_tracker.models.alert import Alert
from price_tracker.models.tracked_item import PriceHistoryEntry, TrackedItem
from price_tracker.scrapers.base_scraper import BaseScraper
from price_tracker.services.notifier import NotificationSender, Notifier
from price_tracker.storage.tracker_store import TrackerStore, normalize_url

logger = logging.getLogger("price_tracker.tracking")


def validate_product_url(url: str, settings: Settings | None = None) -> str:
    """Check *url* points at a supported product page; return it normalised.

    Raises:
        InvalidProductURL: wrong scheme, host, or path shape.
    """
    active = settings or Settings()
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https"):
        raise InvalidProductURL(f"not an http(s) URL: {url!r}")
    if parsed.netloc.lower() != active.SOURCE_HOST:
        raise InvalidProductURL(
            f"only {active.SOURCE_HOST} product URLs are supported"
        )
    if active.SOURCE_PATH_MARKER not in parsed.path:
        raise InvalidProductURL(
            f"not a product page (path must contain "
            f"'{active.SOURCE_PATH_MARKER}'): {url!r}"
        )
    return normalize_url(url)


class TrackingService:
    """Create and manage tracked items and alerts for one store."""

    def __init__(
        self,
        store: TrackerStore,
        scraper: BaseScraper,
        sender: NotificationSender,
        settings: Settings | None = None,
    ) -> None:
        self.store = store
        self.scraper = scraper
        self.sender = sender
        self.settings = settings or Settings()

    def track(self, owner: str, url: str) -> TrackedItem:
        """Start tracking *url* for *owner*.

        The page is fetched and extracted synchronously; any
        ``FetchFailure`` or ``ExtractionFailure`` propagates and no
        record is created.
        """
        clean_url = validate_product_url(url, self.settings)
        if self.store.find_item(owner, clean_url) is not None:
            raise DuplicateItem(f"{owner} already tracks {clean_url}")

        result = self.scraper.scrape(clean_url)
        now = datetime.now()
        history: list[PriceHistoryEntry] = []
        if not result.out_of_stock:
            history.append(PriceHistoryEntry(result.sale_price, now))

        item = self.store.add_item(TrackedItem(
            owner=owner,
            url=clean_url,
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
            created_at=now,
            updated_at=now,
        ))
        logger.info("Product tracking started for: %s", item.title)
        return item

    def untrack(self, owner: str, item_id: int) -> None:
        """Stop tracking; history and alerts are removed with the item."""
        if not self.store.delete_item(item_id, owner):
            raise ItemNotFound(f"no item {item_id} for {owner}")

    def get_item(self, owner: str, item_id: int) -> TrackedItem:
        item = self.store.get_item(item_id, owner)
        if item is None:
            raise ItemNotFound(f"no item {item_id} for {owner}")
        return item

    def list_items(self, owner: str | None = None) -> list[TrackedItem]:
        return self.store.list_items(owner)

    def create_alert(
        self, owner: str, item_id: int, target_price: int,
    ) -> Alert:
        """Set a price alert and send the set-up confirmation.

        Raises:
            InvalidAlert: target not positive or not below the current
                sale price.
            ItemNotFound: no such item for *owner*.
        """
        if target_price <= 0:
            raise InvalidAlert("target price must be positive")
        item = self.get_item(owner, item_id)
        if target_price >= item.sale_price:
            raise InvalidAlert(
                "target price should be lower than the current price "
                f"({item.sale_price})"
            )
        alert = self.store.add_alert(Alert(
            item_id=item_id,
            owner=owner,
            target_price=target_price,
        ))
        notifier = Notifier()
        notifier.on_alert_created(item, alert)
        notifier.dispatch(self.sender)
        logger.info(
            "Alert %d set on item %d at %d", alert.id, item_id, target_price,
        )
        return alert

    def list_alerts(self, owner: str) -> list[Alert]:
        return self.store.list_alerts(owner=owner)
