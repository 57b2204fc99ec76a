"""DishDash database management CLI.

Creates or drops the marketplace tables on the configured SQL provider
(SQLite in development, PostgreSQL in staging and production). The memory
provider used by the test suite needs neither.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys

from marketplace.domain import marketplace
from marketplace.utils.db import drop_db, setup_db


def setup_database():
    print("Initializing marketplace domain...")
    marketplace.init()
    providers = setup_db(marketplace)
    if not providers:
        print("  No SQL provider configured, nothing to create.")
    for name in providers:
        print(f"  {name} schema ready.")
    print("Done.")


def drop_database():
    print("Initializing marketplace domain...")
    marketplace.init()
    for name in drop_db(marketplace):
        print(f"  {name} schema dropped.")
    print("Done.")


def main(argv=None):
    parser = argparse.ArgumentParser(description="DishDash database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args(argv)

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
