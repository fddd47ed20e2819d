# price_tracker/services/price_updater.py

"""Periodic sweep: re-check every stale item, one at a time."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime

from price_tracker.config.settings import Settings
from price_tracker.errors import ExtractionFailure, FetchFailure, PersistenceFailure
from price_tracker.models.alert import Alert
from price_tracker.models.events import PriceChanged
from price_tracker.models.tracked_item import TrackedItem
from price_tracker.scrapers.base_scraper import BaseScraper
from price_tracker.services.notifier import NotificationSender, Notifier
from price_tracker.services.reconciler import Reconciler
from price_tracker.storage.tracker_store import TrackerStore

logger = logging.getLogger("price_tracker.updater")

SleepFn = Callable[[float], Awaitable[None]]


@dataclass
class SweepResult:
    """Summary of one sweep over the stale items."""

    total: int = 0
    updated: int = 0
    errors: list[str] = field(
        default_factory=lambda: list[str]()
    )
    events: int = 0
    notifications_sent: int = 0
    skipped: bool = False

    @property
    def message(self) -> str:
        if self.skipped:
            return "Price update skipped: a sweep is already running"
        return (
            "Automatic price update completed: "
            f"{self.updated}/{self.total} products updated"
        )


class PriceUpdater:
    """Fetch → extract → reconcile → notify for each stale item.

    Items are processed sequentially with ``SWEEP_ITEM_DELAY`` between
    them; the pause goes through the injected *sleep* coroutine so tests
    run without wall-clock waits. Only one sweep runs at a time per
    updater.
    """

    def __init__(
        self,
        store: TrackerStore,
        scraper: BaseScraper,
        sender: NotificationSender,
        settings: Settings | None = None,
        sleep: SleepFn = asyncio.sleep,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.scraper = scraper
        self.sender = sender
        self.settings = settings or Settings()
        self._sleep = sleep
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def run_sweep(self, now: datetime | None = None) -> SweepResult:
        """Run one sweep; returns immediately if one is in flight."""
        if self._lock.locked():
            logger.warning("Sweep requested while another is running")
            return SweepResult(skipped=True)
        async with self._lock:
            return await self._sweep(now or self._clock())

    async def _sweep(self, started: datetime) -> SweepResult:
        cutoff = started - self.settings.STALE_AFTER
        items = self.store.list_stale_items(cutoff)
        result = SweepResult(total=len(items))
        if not items:
            logger.info("No products need updating at this time")
            return result

        logger.info("Found %d products to update", len(items))
        for index, item in enumerate(items):
            if index:
                await self._sleep(self.settings.SWEEP_ITEM_DELAY)
            try:
                await self._update_item(item, result)
                result.updated += 1
            except FetchFailure as exc:
                # Snapshot and last_checked_at stay put; retried next sweep
                self._record_error(result, item, exc)
            except ExtractionFailure as exc:
                self._record_error(result, item, exc)
                self._mark_checked(item)
            except Exception as exc:
                self._record_error(result, item, exc)

        logger.info(result.message)
        return result

    async def _update_item(
        self, item: TrackedItem, result: SweepResult,
    ) -> None:
        logger.debug("Updating product %s: %s", item.id, item.title)
        html = await asyncio.to_thread(self.scraper.fetch_html, item.url)
        extraction = self.scraper.parse(html, item.url)

        checked_at = self._clock()
        reconciliation = Reconciler.reconcile(item, extraction, checked_at)

        alerts: list[Alert] = []
        if any(isinstance(e, PriceChanged) for e in reconciliation.events):
            alerts = self.store.list_alerts(
                item_id=item.id, active_only=True,
            )
        notifier = Notifier()
        triggered = notifier.handle(reconciliation, alerts, checked_at)
        # History entry and alert deactivation commit together
        self.store.save_item(
            reconciliation.item, reconciliation.history_entry, triggered,
        )
        result.events += len(reconciliation.events)
        result.notifications_sent += notifier.dispatch(self.sender)

    def _mark_checked(self, item: TrackedItem) -> None:
        checked = Reconciler.mark_checked(item, self._clock())
        if checked.id is None or checked.last_checked_at is None:
            return
        try:
            self.store.touch_item(checked.id, checked.last_checked_at)
        except PersistenceFailure as exc:
            logger.error("Could not mark item %s checked: %s", item.id, exc)

    @staticmethod
    def _record_error(
        result: SweepResult, item: TrackedItem, exc: Exception,
    ) -> None:
        result.errors.append(f"{item.id}: {exc}")
        logger.error(
            "Failed to update product %s (%s): %s",
            item.id,
            item.url,
            exc,
            exc_info=not isinstance(exc, FetchFailure | ExtractionFailure),
        )

    async def watch(
        self,
        interval: float | None = None,
        iterations: int | None = None,
    ) -> int:
        """Run sweeps forever (or *iterations* times), *interval* apart.

        Returns the number of sweeps run.
        """
        pause = (
            interval if interval is not None
            else self.settings.SWEEP_INTERVAL
        )
        count = 0
        while iterations is None or count < iterations:
            await self.run_sweep()
            count += 1
            if iterations is None or count < iterations:
                await self._sleep(pause)
        return count
