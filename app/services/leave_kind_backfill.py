"""
One-off classification of leave rows imported from the old system

The old data had no ``kind`` column: deduction history and penalty entries
were only recognisable by their reason text, and allotments by having an
allotter. Imported rows arrive as REQUEST; this pass gives each row its real
kind once so nothing at read time ever has to look at the reason again.
"""
import logging
import re
from typing import Dict, Optional

from sqlalchemy.orm import Session

from app.constants import DEDUCTION_REASON_PREFIX
from app.models.leave import Leave, LeaveKind

logger = logging.getLogger(__name__)

DEDUCTION_PATTERN = re.compile(r"^\s*" + re.escape(DEDUCTION_REASON_PREFIX.strip()), re.IGNORECASE)
PENALTY_PATTERN = re.compile(r"penalty|late\s*clock[\s-]*in|exceeded\s+max(imum)?\s+late", re.IGNORECASE)


def classify_legacy_leave(reason: Optional[str], allotted_by_id: Optional[int]) -> LeaveKind:
    """Kind of an imported leave row, from its reason text and allotter"""
    text = reason or ""
    if DEDUCTION_PATTERN.search(text):
        return LeaveKind.DEDUCTION
    if PENALTY_PATTERN.search(text):
        return LeaveKind.PENALTY
    if allotted_by_id is not None:
        return LeaveKind.ALLOTMENT
    return LeaveKind.REQUEST


def backfill_leave_kinds(db: Session, dry_run: bool = False) -> Dict[str, int]:
    """
    Reclassify every REQUEST row

    Returns:
        Count of rows moved to each kind
    """
    counts: Dict[str, int] = {kind.value: 0 for kind in LeaveKind if kind != LeaveKind.REQUEST}
    rows = db.query(Leave).filter(Leave.kind == LeaveKind.REQUEST).all()
    for row in rows:
        kind = classify_legacy_leave(row.reason, row.allotted_by_id)
        if kind != LeaveKind.REQUEST:
            row.kind = kind
            counts[kind.value] += 1

    if dry_run:
        db.rollback()
    else:
        db.commit()
    logger.info("leave kind backfill (dry_run=%s): %s", dry_run, counts)
    return counts
