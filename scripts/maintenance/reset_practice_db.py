"""
Drop and recreate every practice table.

DANGEROUS: users, materials, plans and practice history are all lost.
Point TEST_MODE=true at the test database unless you really mean production.

Usage:
    python -m scripts.maintenance.reset_practice_db

    # Skip the prompt (CI / throwaway databases)
    python -m scripts.maintenance.reset_practice_db --yes
"""

import argparse
import sys

from sqlalchemy import func, inspect

from shadowing.config import is_test_mode
from shadowing.db import Base, get_engine, reset_db, session_scope


def count_rows() -> dict:
    """Row count per existing table."""
    existing = set(inspect(get_engine()).get_table_names())
    counts = {}
    with session_scope() as session:
        for table in Base.metadata.sorted_tables:
            if table.name in existing:
                counts[table.name] = session.query(func.count()).select_from(table).scalar()
    return counts


def main() -> int:
    parser = argparse.ArgumentParser(description="Reset the practice database")
    parser.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    args = parser.parse_args()

    target = "TEST" if is_test_mode() else "PRODUCTION"
    print(f"Resetting the {target} practice database. Current contents:")
    for table, count in count_rows().items():
        print(f"  {table:<18} {count:>8} rows")

    if not args.yes:
        response = input("\nType 'yes' to drop and recreate all tables: ")
        if response.strip().lower() != "yes":
            print("Cancelled. No changes made.")
            return 1

    reset_db()
    print("Practice database reset; all tables are empty.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
