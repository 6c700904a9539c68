"""Storefront database management CLI.

Creates and drops the database schema for the storefront domain. Only SQL
providers are touched; the default in-memory provider needs no schema. Also
runs the stale payment sweep for schedulers that prefer a CLI over HTTP.

Usage:
    python src/manage.py setup-db                 # Create all tables
    python src/manage.py drop-db                  # Drop all tables
    python src/manage.py cancel-stale --hours 48  # Cancel unpaid online orders
"""

import argparse
import sys


def setup_database():
    from storefront.domain import logger, storefront
    from storefront.utils.db import setup_db

    storefront.init()
    logger.info("creating_schema", domain=storefront.name)
    setup_db(storefront)
    logger.info("schema_ready", domain=storefront.name)


def drop_database():
    from storefront.domain import logger, storefront
    from storefront.utils.db import drop_db

    storefront.init()
    logger.info("dropping_schema", domain=storefront.name)
    drop_db(storefront)
    logger.info("schema_dropped", domain=storefront.name)


def cancel_stale_orders(hours=None):
    from storefront.domain import logger, storefront
    from storefront.order.expiry import CancelStalePendingOrders

    storefront.init()
    with storefront.domain_context():
        cancelled = storefront.process(CancelStalePendingOrders(older_than_hours=hours), asynchronous=False)
    logger.info("stale_orders_cancelled", cancelled=cancelled or 0)


def main():
    parser = argparse.ArgumentParser(description="Storefront database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    stale = subparsers.add_parser("cancel-stale", help="Cancel online orders still awaiting payment")
    stale.add_argument("--hours", type=int, default=None, help="Age threshold; defaults to STALE_PAYMENT_HOURS")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "cancel-stale":
        cancel_stale_orders(args.hours)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
