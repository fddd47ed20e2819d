# main.py

"""Entry point for the refurbished-phone price tracker CLI."""

import argparse
import asyncio
import logging
import sys

from price_tracker.config.logging_config import setup_logging

logger = logging.getLogger("price_tracker.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="price_tracker",
        description="Track Cashify refurbished phone prices and alerts.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    track = sub.add_parser("track", help="Start tracking a product URL.")
    track.add_argument("url")
    track.add_argument("--owner", required=True, help="Owner e-mail.")

    untrack = sub.add_parser("untrack", help="Stop tracking an item.")
    untrack.add_argument("item_id", type=int)
    untrack.add_argument("--owner", required=True)

    listing = sub.add_parser("list", help="List tracked products.")
    listing.add_argument("--owner", default=None)
    listing.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="table",
        dest="output_format",
        help="Output format (default: table).",
    )

    alert = sub.add_parser("alert", help="Set a target-price alert.")
    alert.add_argument("item_id", type=int)
    alert.add_argument("target_price", type=int)
    alert.add_argument("--owner", required=True)

    alerts = sub.add_parser("alerts", help="Show an owner's alerts.")
    alerts.add_argument("--owner", required=True)

    sub.add_parser("sweep", help="Re-check every stale product once.")

    watch = sub.add_parser("watch", help="Sweep on a fixed interval.")
    watch.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between sweeps (default: hourly).",
    )

    history = sub.add_parser("history", help="Show an item's price history.")
    history.add_argument("item_id", type=int)
    history.add_argument(
        "--chart",
        action="store_true",
        default=False,
        help="Export an interactive HTML chart.",
    )
    return parser


def _dispatch(args: argparse.Namespace) -> int:
    """Run the selected command and return its exit code."""
    from price_tracker.cli import runner

    services = runner.build_services()
    try:
        if args.command == "track":
            return runner.run_track(services, args.owner, args.url)
        if args.command == "untrack":
            return runner.run_untrack(services, args.owner, args.item_id)
        if args.command == "list":
            return runner.run_list(services, args.owner, args.output_format)
        if args.command == "alert":
            return runner.run_alert(
                services, args.owner, args.item_id, args.target_price,
            )
        if args.command == "alerts":
            return runner.run_alerts(services, args.owner)
        if args.command == "sweep":
            return asyncio.run(runner.run_sweep(services))
        if args.command == "watch":
            return asyncio.run(runner.run_watch(services, args.interval))
        return runner.run_history(services, args.item_id, args.chart)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    finally:
        services.close()


def main() -> None:
    """Parse arguments and run one command."""
    log_file = setup_logging()
    logger.info("price_tracker starting, log file: %s", log_file)

    args = _build_parser().parse_args()
    sys.exit(_dispatch(args))


if __name__ == "__main__":
    main()
