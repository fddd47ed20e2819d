# tests/test_runner.py

"""Tests for the headless CLI commands and argument parsing."""

import asyncio
import io
import json
import unittest
from datetime import datetime
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

from main import _build_parser
from price_tracker.cli import runner
from price_tracker.errors import InvalidProductURL
from price_tracker.models.tracked_item import PriceHistoryEntry, TrackedItem
from price_tracker.services.price_updater import SweepResult
from price_tracker.storage.tracker_store import TrackerStore


def _item() -> TrackedItem:
    return TrackedItem(
        owner="a@example.com",
        url="https://www.cashify.in/buy-refurbished-mobile-phones/x",
        title="Apple iPhone 12",
        list_price=49999,
        sale_price=29499,
        price_history=[PriceHistoryEntry(29499, datetime(2024, 5, 1, 9))],
        id=1,
    )


class TestCommands(unittest.TestCase):

    def setUp(self) -> None:
        self.store = TrackerStore(db_path=Path(":memory:"))
        self.tracking = MagicMock()
        self.updater = MagicMock()
        self.services = runner.Services(
            store=self.store, tracking=self.tracking, updater=self.updater,
        )

    def tearDown(self) -> None:
        self.services.close()

    def test_track_failure_returns_1(self) -> None:
        self.tracking.track.side_effect = InvalidProductURL("bad")
        self.assertEqual(
            runner.run_track(self.services, "a@example.com", "x"), 1,
        )

    def test_track_success(self) -> None:
        self.tracking.track.return_value = _item()
        self.assertEqual(
            runner.run_track(self.services, "a@example.com", "x"), 0,
        )

    @patch("sys.stdout", new_callable=io.StringIO)
    def test_list_json(self, mock_stdout: io.StringIO) -> None:
        self.tracking.list_items.return_value = [_item()]

        code = runner.run_list(self.services, None, "json")

        self.assertEqual(code, 0)
        payload = json.loads(mock_stdout.getvalue())
        self.assertEqual(payload[0]["sale_price"], 29499)
        self.assertEqual(payload[0]["price_history"][0]["price"], 29499)

    def test_sweep_exit_code_reflects_errors(self) -> None:
        self.updater.run_sweep = AsyncMock(
            return_value=SweepResult(total=2, updated=1, errors=["2: boom"]),
        )
        self.assertEqual(asyncio.run(runner.run_sweep(self.services)), 1)

        self.updater.run_sweep = AsyncMock(
            return_value=SweepResult(total=1, updated=1),
        )
        self.assertEqual(asyncio.run(runner.run_sweep(self.services)), 0)

    def test_history_unknown_item(self) -> None:
        self.assertEqual(runner.run_history(self.services, 42, False), 1)

    def test_history_prints_table(self) -> None:
        added = self.store.add_item(_item())
        assert added.id is not None
        self.assertEqual(runner.run_history(self.services, added.id, False), 0)


class TestParser(unittest.TestCase):

    def test_track_requires_owner(self) -> None:
        parser = _build_parser()
        with self.assertRaises(SystemExit):
            parser.parse_args(["track", "https://www.cashify.in/x"])

    def test_alert_arguments(self) -> None:
        args = _build_parser().parse_args(
            ["alert", "3", "25000", "--owner", "a@example.com"],
        )
        self.assertEqual(args.command, "alert")
        self.assertEqual(args.item_id, 3)
        self.assertEqual(args.target_price, 25000)

    def test_list_defaults_to_table(self) -> None:
        args = _build_parser().parse_args(["list"])
        self.assertEqual(args.output_format, "table")
        self.assertIsNone(args.owner)


if __name__ == "__main__":
    unittest.main()
