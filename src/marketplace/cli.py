"""Marketplace maintenance CLI.

Meant to be run by an external scheduler (cron, K8s CronJob) for the
periodic reservation sweep, and by operators for a quick stock report.

Usage:
    marketplace sweep-reservations        # Reclaim lapsed holds
    marketplace low-stock --seller s-42   # Low-stock report for one seller
"""

import argparse
import json
import sys

from marketplace.bootstrap import Marketplace, build_marketplace, initialize
from marketplace.domain import marketplace
from marketplace.utils.logging import add_context, clear_context


def sweep_reservations(app: Marketplace) -> int:
    """Remove every reservation entry whose TTL has lapsed."""
    removed = app.reservations.sweep_expired()
    print(f"Removed {removed} expired reservation entries.")
    return removed


def print_low_stock(app: Marketplace, seller_id=None, page=1, limit=20) -> dict:
    report = app.reservations.low_stock_report(seller_id, page, limit)
    print(json.dumps(report, indent=2, default=str))
    return report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="marketplace", description="Marketplace maintenance")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("sweep-reservations", help="Remove expired stock reservations")

    report_parser = subparsers.add_parser("low-stock", help="Print products at or below their threshold")
    report_parser.add_argument("--seller", help="Only this seller's products")
    report_parser.add_argument("--page", type=int, default=1)
    report_parser.add_argument("--limit", type=int, default=20)
    return parser


def run(args, app: Marketplace):
    if args.command == "sweep-reservations":
        return sweep_reservations(app)
    if args.command == "low-stock":
        return print_low_stock(app, args.seller, args.page, args.limit)
    raise ValueError(f"Unknown command: {args.command}")


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    initialize()
    add_context(command=args.command)
    with marketplace.domain_context():
        try:
            run(args, build_marketplace())
        except ValueError:
            parser.print_help()
            sys.exit(1)
        finally:
            clear_context()


if __name__ == "__main__":
    main()
