import sys

from core.database import init_db
from core.log_setup import setup_logging
from services.analytics_service import generate_daily_brief
from services.attendance_service import audit_consistency
from services.visitors_service import occupancy

"""
Entry point for the Gym & Spa Front Desk core.
Run this file to load the seed data and print today's briefing.
"""


def main() -> int:
    setup_logging()

    # Load customers, employees and the visit ledger from the JSON seed files
    store = init_db()

    # Repair any drift between the inside flags and the ledger before reporting
    audit_consistency(store, repair=True)

    capacity = occupancy(store)
    print(f"Inside now: {capacity.current}/{capacity.maximum} ({capacity.percentage}%)")
    print()
    print(generate_daily_brief(store))
    return 0


if __name__ == "__main__":
    sys.exit(main())
