"""
Give imported leave rows their real kind (allotment / deduction / penalty).
Run once after importing data from the old system, then recalculate balances.

Usage:
  python scripts/backfill_leave_kinds.py
  python scripts/backfill_leave_kinds.py --dry-run
"""
import argparse
import sys
from pathlib import Path

# Add project root so app is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy.orm import Session
from app.core.logging import setup_logging
from app.db import session as db_session
from app.services.leave_kind_backfill import backfill_leave_kinds


def main():
    parser = argparse.ArgumentParser(description="Classify imported leave rows by kind")
    parser.add_argument("--dry-run", action="store_true", help="Do not commit")
    args = parser.parse_args()

    setup_logging()
    db: Session = db_session.SessionLocal()
    try:
        counts = backfill_leave_kinds(db, dry_run=args.dry_run)
        for kind, count in counts.items():
            print(f"  {kind}: {count}")
        print("Dry run: rolled back." if args.dry_run else "Done.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
