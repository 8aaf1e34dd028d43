"""
Generate today's practice plan for every onboarded user.

Meant to run once a day shortly after the practice-day boundary
(UTC 20:00 is 04:00 of the next practice day). Users who already have a plan
are skipped.

Usage:
    # Today's practice day
    python -m scripts.generate_daily_plans

    # A specific day, 4 users at a time
    python -m scripts.generate_daily_plans --date 2025-03-01 --concurrency 4
"""

import argparse
import logging
import sys
from datetime import date

from shadowing.db import get_session_factory, init_db
from shadowing.planning import generate_plans_for_all_users


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate daily practice plans")
    parser.add_argument("--date", type=date.fromisoformat, default=None, help="Plan date (YYYY-MM-DD)")
    parser.add_argument("--concurrency", type=int, default=None, help="Users processed in parallel")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    init_db()
    result = generate_plans_for_all_users(
        get_session_factory(),
        plan_date=args.date,
        concurrency=args.concurrency,
    )

    print(f"Plans for {result.plan_date}: generated={result.generated} "
          f"skipped={result.skipped} failed={result.failed}")
    return 1 if result.failed else 0


if __name__ == "__main__":
    sys.exit(main())
