"""Storefront database management CLI.

Creates and drops the ordering database schema (orders, order items,
restock attempts and variant stock) for the configured provider.

Usage:
    PROTEAN_ENV=production python src/manage.py setup-db   # Create all tables
    PROTEAN_ENV=production python src/manage.py drop-db    # Drop all tables
"""

import argparse


def _ordering_domain():
    from ordering.domain import ordering

    print("Initializing ordering domain...")
    ordering.init()
    return ordering


def setup_database(domain):
    """Create the ordering schema on every configured provider."""
    with domain.domain_context():
        print("Creating ordering database schema...")
        domain.setup_database()
    print("  ordering schema ready.")
    print("Done.")


def drop_database(domain):
    """Drop the ordering schema from every configured provider."""
    with domain.domain_context():
        print("Dropping ordering database schema...")
        domain.drop_database()
    print("  ordering schema dropped.")
    print("Done.")


COMMANDS = {
    "setup-db": setup_database,
    "drop-db": drop_database,
}


def main(argv=None):
    parser = argparse.ArgumentParser(description="Storefront database management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args(argv)
    COMMANDS[args.command](_ordering_domain())


if __name__ == "__main__":
    main()
