# price_tracker/storage/tracker_store.py

"""SQLite-backed store for tracked items, price history and alerts."""

import logging
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from price_tracker.config.settings import Settings
from price_tracker.errors import PersistenceFailure
from price_tracker.models.alert import Alert
from price_tracker.models.tracked_item import PriceHistoryEntry, TrackedItem

logger = logging.getLogger("price_tracker.storage")

# Marketing/session params that vary per visit
_TRACKING_PARAMS: frozenset[str] = frozenset({
    "utm_source", "utm_medium", "utm_campaign", "utm_term",
    "utm_content", "gclid", "fbclid", "ref", "srsltid",
})

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS items (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    owner           TEXT    NOT NULL,
    url             TEXT    NOT NULL,
    title           TEXT    NOT NULL DEFAULT '',
    list_price      INTEGER NOT NULL DEFAULT 0,
    sale_price      INTEGER NOT NULL DEFAULT 0,
    discount        TEXT    NOT NULL DEFAULT '0%',
    condition       TEXT    NOT NULL DEFAULT 'Good',
    capacity        TEXT    NOT NULL DEFAULT '',
    ram             TEXT    NOT NULL DEFAULT '',
    color           TEXT    NOT NULL DEFAULT '',
    image_url       TEXT    NOT NULL DEFAULT '',
    out_of_stock    INTEGER NOT NULL DEFAULT 0,
    last_checked_at TEXT,
    created_at      TEXT    NOT NULL,
    updated_at      TEXT    NOT NULL,
    UNIQUE (owner, url)
);

CREATE TABLE IF NOT EXISTS price_history (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    item_id     INTEGER NOT NULL
                REFERENCES items(id) ON DELETE CASCADE,
    price       INTEGER NOT NULL,
    observed_at TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS alerts (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    item_id      INTEGER NOT NULL
                 REFERENCES items(id) ON DELETE CASCADE,
    owner        TEXT    NOT NULL,
    target_price INTEGER NOT NULL,
    active       INTEGER NOT NULL DEFAULT 1,
    created_at   TEXT    NOT NULL,
    updated_at   TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_items_last_checked
    ON items(last_checked_at);
CREATE INDEX IF NOT EXISTS idx_history_item_date
    ON price_history(item_id, observed_at);
CREATE INDEX IF NOT EXISTS idx_alerts_item_active
    ON alerts(item_id, active);
"""

_ITEM_COLUMNS = (
    "id, owner, url, title, list_price, sale_price, discount, "
    "condition, capacity, ram, color, image_url, out_of_stock, "
    "last_checked_at, created_at, updated_at"
)

_ALERT_COLUMNS = (
    "id, item_id, owner, target_price, active, created_at, updated_at"
)


def normalize_url(raw_url: str) -> str:
    """Strip tracking query params and the fragment from a product URL."""
    parsed = urlparse(raw_url.strip())
    params = parse_qs(parsed.query, keep_blank_values=True)
    cleaned = {
        k: v for k, v in params.items()
        if k.lower() not in _TRACKING_PARAMS
    }
    new_query = urlencode(cleaned, doseq=True) if cleaned else ""
    return urlunparse((
        parsed.scheme,
        parsed.netloc.lower(),
        parsed.path,
        parsed.params,
        new_query,
        "",  # drop fragment
    ))


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class TrackerStore:
    """Persistence for items, their price history and alerts."""

    def __init__(
        self, db_path: Path | None = None,
    ) -> None:
        path = db_path or Settings.DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.executescript(_SCHEMA)
        logger.debug("TrackerStore opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    @contextmanager
    def _write(self, action: str) -> Iterator[sqlite3.Cursor]:
        """Run a write in one transaction, mapping driver errors."""
        try:
            with self._conn:
                yield self._conn.cursor()
        except sqlite3.Error as exc:
            logger.error("Failed to %s: %s", action, exc)
            raise PersistenceFailure(f"failed to {action}: {exc}") from exc

    # ── Items ────────────────────────────────────────────

    def add_item(self, item: TrackedItem) -> TrackedItem:
        """Insert a new item with its initial history; returns it with an id."""
        now = item.created_at or datetime.now()
        url = normalize_url(item.url)
        with self._write("add item") as cur:
            cur.execute(
                "INSERT INTO items (owner, url, title, list_price, "
                "sale_price, discount, condition, capacity, ram, color, "
                "image_url, out_of_stock, last_checked_at, created_at, "
                "updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    item.owner, url, item.title, item.list_price,
                    item.sale_price, item.discount, item.condition,
                    item.capacity, item.ram, item.color, item.image_url,
                    int(item.out_of_stock), _ts(item.last_checked_at),
                    now.isoformat(), _ts(item.updated_at or now),
                ),
            )
            item_id = cur.lastrowid
            cur.executemany(
                "INSERT INTO price_history (item_id, price, observed_at) "
                "VALUES (?, ?, ?)",
                [
                    (item_id, e.price, e.observed_at.isoformat())
                    for e in item.price_history
                ],
            )
        logger.info("Tracking item %d for %s: %s", item_id, item.owner, url)
        return replace(
            item, id=item_id, url=url, created_at=now,
            updated_at=item.updated_at or now,
        )

    def save_item(
        self,
        item: TrackedItem,
        history_entry: PriceHistoryEntry | None = None,
        triggered_alerts: Iterable[Alert] = (),
    ) -> None:
        """Persist snapshot fields and append *history_entry* if given.

        *triggered_alerts* are deactivated in the same transaction, so a
        recorded price change never leaves its alerts active.
        """
        with self._write(f"save item {item.id}") as cur:
            cur.execute(
                "UPDATE items SET title = ?, list_price = ?, "
                "sale_price = ?, discount = ?, condition = ?, "
                "capacity = ?, ram = ?, color = ?, image_url = ?, "
                "out_of_stock = ?, last_checked_at = ?, updated_at = ? "
                "WHERE id = ?",
                (
                    item.title, item.list_price, item.sale_price,
                    item.discount, item.condition, item.capacity,
                    item.ram, item.color, item.image_url,
                    int(item.out_of_stock), _ts(item.last_checked_at),
                    _ts(item.updated_at or datetime.now()), item.id,
                ),
            )
            if cur.rowcount == 0:
                raise PersistenceFailure(f"item {item.id} does not exist")
            if history_entry is not None:
                cur.execute(
                    "INSERT INTO price_history "
                    "(item_id, price, observed_at) VALUES (?, ?, ?)",
                    (
                        item.id,
                        history_entry.price,
                        history_entry.observed_at.isoformat(),
                    ),
                )
            for alert in triggered_alerts:
                cur.execute(
                    "UPDATE alerts SET active = 0, updated_at = ? "
                    "WHERE id = ?",
                    (_ts(alert.updated_at or datetime.now()), alert.id),
                )

    def touch_item(self, item_id: int, checked_at: datetime) -> None:
        """Only move ``last_checked_at``."""
        with self._write(f"touch item {item_id}") as cur:
            cur.execute(
                "UPDATE items SET last_checked_at = ? WHERE id = ?",
                (checked_at.isoformat(), item_id),
            )

    def delete_item(self, item_id: int, owner: str) -> bool:
        """Delete an owner's item with its history and alerts."""
        with self._write(f"delete item {item_id}") as cur:
            cur.execute(
                "DELETE FROM items WHERE id = ? AND owner = ?",
                (item_id, owner),
            )
            deleted = cur.rowcount > 0
        if deleted:
            logger.info("Deleted item %d for %s", item_id, owner)
        return deleted

    # ── Item queries ─────────────────────────────────────

    def _history(self, item_id: int) -> list[PriceHistoryEntry]:
        rows = self._conn.execute(
            "SELECT price, observed_at FROM price_history "
            "WHERE item_id = ? ORDER BY observed_at ASC, id ASC",
            (item_id,),
        ).fetchall()
        return [
            PriceHistoryEntry(price=r[0], observed_at=datetime.fromisoformat(r[1]))
            for r in rows
        ]

    def _row_to_item(self, r: tuple[Any, ...]) -> TrackedItem:
        item_id: int = r[0]
        return TrackedItem(
            id=item_id,
            owner=r[1],
            url=r[2],
            title=r[3],
            list_price=r[4],
            sale_price=r[5],
            discount=r[6],
            condition=r[7],
            capacity=r[8],
            ram=r[9],
            color=r[10],
            image_url=r[11],
            out_of_stock=bool(r[12]),
            last_checked_at=_dt(r[13]),
            created_at=_dt(r[14]),
            updated_at=_dt(r[15]),
            price_history=self._history(item_id),
        )

    def get_item(
        self, item_id: int, owner: str | None = None,
    ) -> TrackedItem | None:
        """Fetch one item, optionally scoped to *owner*."""
        sql = f"SELECT {_ITEM_COLUMNS} FROM items WHERE id = ?"
        params: tuple[object, ...] = (item_id,)
        if owner is not None:
            sql += " AND owner = ?"
            params = (item_id, owner)
        row = self._conn.execute(sql, params).fetchone()
        return self._row_to_item(row) if row else None

    def find_item(self, owner: str, url: str) -> TrackedItem | None:
        """Return the owner's item for *url*, if already tracked."""
        row = self._conn.execute(
            f"SELECT {_ITEM_COLUMNS} FROM items "
            "WHERE owner = ? AND url = ?",
            (owner, normalize_url(url)),
        ).fetchone()
        return self._row_to_item(row) if row else None

    def list_items(self, owner: str | None = None) -> list[TrackedItem]:
        """All items, or only *owner*'s, newest first."""
        if owner is None:
            rows = self._conn.execute(
                f"SELECT {_ITEM_COLUMNS} FROM items "
                "ORDER BY created_at DESC, id DESC",
            ).fetchall()
        else:
            rows = self._conn.execute(
                f"SELECT {_ITEM_COLUMNS} FROM items WHERE owner = ? "
                "ORDER BY created_at DESC, id DESC",
                (owner,),
            ).fetchall()
        return [self._row_to_item(r) for r in rows]

    def list_stale_items(self, cutoff: datetime) -> list[TrackedItem]:
        """Items never checked or last checked before *cutoff*."""
        rows = self._conn.execute(
            f"SELECT {_ITEM_COLUMNS} FROM items "
            "WHERE last_checked_at IS NULL OR last_checked_at < ? "
            "ORDER BY id ASC",
            (cutoff.isoformat(),),
        ).fetchall()
        return [self._row_to_item(r) for r in rows]

    def get_trend_summary(
        self, item_id: int,
    ) -> dict[str, object] | None:
        """Compute min / max / avg / latest price for an item."""
        row = self._conn.execute(
            "SELECT MIN(price), MAX(price), AVG(price), COUNT(id) "
            "FROM price_history WHERE item_id = ?",
            (item_id,),
        ).fetchone()
        if row is None or row[3] == 0:
            return None
        latest_row = self._conn.execute(
            "SELECT price FROM price_history WHERE item_id = ? "
            "ORDER BY observed_at DESC, id DESC LIMIT 1",
            (item_id,),
        ).fetchone()
        return {
            "min": row[0],
            "max": row[1],
            "avg": round(row[2], 2),
            "count": row[3],
            "latest": latest_row[0] if latest_row else 0,
        }

    # ── Alerts ───────────────────────────────────────────

    def add_alert(self, alert: Alert) -> Alert:
        """Insert a new alert; returns it with an id."""
        now = alert.created_at or datetime.now()
        with self._write("add alert") as cur:
            cur.execute(
                "INSERT INTO alerts (item_id, owner, target_price, "
                "active, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    alert.item_id, alert.owner, alert.target_price,
                    int(alert.active), now.isoformat(), now.isoformat(),
                ),
            )
            alert_id = cur.lastrowid
        return replace(alert, id=alert_id, created_at=now, updated_at=now)

    def get_alert(self, alert_id: int) -> Alert | None:
        row = self._conn.execute(
            f"SELECT {_ALERT_COLUMNS} FROM alerts WHERE id = ?",
            (alert_id,),
        ).fetchone()
        return self._row_to_alert(row) if row else None

    def list_alerts(
        self,
        owner: str | None = None,
        item_id: int | None = None,
        active_only: bool = False,
    ) -> list[Alert]:
        """Alerts filtered by owner, item and/or active flag."""
        clauses: list[str] = []
        params: list[object] = []
        if owner is not None:
            clauses.append("owner = ?")
            params.append(owner)
        if item_id is not None:
            clauses.append("item_id = ?")
            params.append(item_id)
        if active_only:
            clauses.append("active = 1")
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self._conn.execute(
            f"SELECT {_ALERT_COLUMNS} FROM alerts{where} ORDER BY id ASC",
            params,
        ).fetchall()
        return [self._row_to_alert(r) for r in rows]

    def deactivate_alert(self, alert: Alert) -> None:
        """Persist an alert's move to the Triggered state."""
        with self._write(f"deactivate alert {alert.id}") as cur:
            cur.execute(
                "UPDATE alerts SET active = 0, updated_at = ? WHERE id = ?",
                (_ts(alert.updated_at or datetime.now()), alert.id),
            )

    @staticmethod
    def _row_to_alert(r: tuple[Any, ...]) -> Alert:
        return Alert(
            id=r[0],
            item_id=r[1],
            owner=r[2],
            target_price=r[3],
            active=bool(r[4]),
            created_at=_dt(r[5]),
            updated_at=_dt(r[6]),
        )
