"""
Audit practice data for invariant violations.

Prints the integrity report as JSON. Read-only: nothing is repaired.

Usage:
    # Default sample size (30 ids per issue)
    python -m scripts.maintenance.check_integrity

    # Fewer samples
    python -m scripts.maintenance.check_integrity --limit 5
"""

import argparse
import json
import logging
import sys

from shadowing.db import init_db, session_scope
from shadowing.integrity import build_integrity_report


def main() -> int:
    parser = argparse.ArgumentParser(description="Check practice data integrity")
    parser.add_argument("--limit", type=int, default=30, help="Sample ids per issue (1-50)")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    init_db()
    with session_scope() as session:
        report = build_integrity_report(session, sample_limit=args.limit)

    print(json.dumps(report, indent=2, ensure_ascii=False))
    return 1 if report["issueCount"] else 0


if __name__ == "__main__":
    sys.exit(main())
