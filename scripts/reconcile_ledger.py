#!/usr/bin/env python3
"""Report (and optionally repair) bookings with missing ledger entries."""

import argparse

from app.core.database import SessionLocal
from app.core.logging import configure_logging
from app.services.reconciliation import find_ledger_gaps, repair_ledger_gaps


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Find bookings whose booking/refund transactions were never written.")
    parser.add_argument("--repair", action="store_true", help="Insert the missing transactions")
    return parser


def main() -> None:
    args = build_parser().parse_args()
    configure_logging()
    db = SessionLocal()
    try:
        gaps = find_ledger_gaps(db)
        if not gaps:
            print("OK: ledger matches bookings.")
            return
        for gap in gaps:
            print(
                f"MISSING {gap.tx_type.value:<8} ref={gap.reference} booking={gap.booking_id} "
                f"user={gap.user_id} amount={gap.amount}"
            )
        if args.repair:
            inserted = repair_ledger_gaps(db, gaps)
            print(f"Repaired {inserted} entr{'y' if inserted == 1 else 'ies'}.")
        else:
            print(f"{len(gaps)} gap(s) found. Re-run with --repair to insert them.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
