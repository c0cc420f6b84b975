"""
Leave balance calculator

Pure functions shared by every path that needs a remaining balance: listing,
request validation, status transitions, allotment edits, deletes and the bulk
recalculation pass. Nothing here touches the database.

Day-granular types are measured in (possibly fractional) days; short-day types
in hours + minutes, which are always summed as whole minutes so no precision is
lost to day conversions.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, NamedTuple, Optional

from app.models.leave import LeaveKind, LeaveStatus

DAYS_QUANTUM = Decimal("0.0001")
ZERO = Decimal("0")


class LeaveQuantity(NamedTuple):
    """A leave amount: ``days`` for day types, ``hours``/``minutes`` for short-day types"""
    days: Decimal = ZERO
    hours: int = 0
    minutes: int = 0

    @property
    def total_minutes(self) -> int:
        return self.hours * 60 + self.minutes


def to_days(value: Any) -> Decimal:
    """Coerce a stored day value to Decimal; absent or malformed values count as 0"""
    if value is None:
        return ZERO
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return ZERO
    if not result.is_finite():
        return ZERO
    return result.quantize(DAYS_QUANTUM, rounding=ROUND_HALF_UP)


def to_int(value: Any) -> int:
    if value is None:
        return 0
    try:
        return int(value)
    except (ValueError, TypeError):
        return 0


def to_minutes(hours: Any, minutes: Any) -> int:
    return to_int(hours) * 60 + to_int(minutes)


def from_minutes(total_minutes: int) -> LeaveQuantity:
    """
    Split minutes into hours + minutes.

    Uses floor division, so a negative total (an over-approved cache) still
    satisfies ``hours * 60 + minutes == total_minutes``.
    """
    hours, minutes = divmod(total_minutes, 60)
    return LeaveQuantity(days=ZERO, hours=hours, minutes=minutes)


def quantity_of(record: Any, is_short_day: bool) -> LeaveQuantity:
    """Quantity carried by a leave record (allotment total or request usage)"""
    if is_short_day:
        return from_minutes(to_minutes(getattr(record, "hours", None), getattr(record, "minutes", None)))
    return LeaveQuantity(days=to_days(getattr(record, "days", None)))


def is_countable_usage(record: Any, allotment: Any, exclude_id: Optional[int] = None) -> bool:
    """
    True when ``record`` consumes balance from ``allotment``.

    Only approved REQUEST records of the same (employee, leave type) pair count.
    Allotments, deduction history and penalty entries never do.
    """
    if record.kind != LeaveKind.REQUEST or record.status != LeaveStatus.APPROVED:
        return False
    if record.employee_id != allotment.employee_id or record.leave_type_id != allotment.leave_type_id:
        return False
    if exclude_id is not None and record.id == exclude_id:
        return False
    return True


def used_quantity(
    allotment: Any,
    records: Iterable[Any],
    is_short_day: bool,
    exclude_id: Optional[int] = None,
) -> LeaveQuantity:
    """Sum of countable usage against ``allotment``"""
    counted = [r for r in records if is_countable_usage(r, allotment, exclude_id)]
    if is_short_day:
        return from_minutes(sum(quantity_of(r, True).total_minutes for r in counted))
    return LeaveQuantity(days=sum((quantity_of(r, False).days for r in counted), ZERO))


def calculate_remaining(
    allotment: Any,
    records: Iterable[Any],
    is_short_day: bool,
    exclude_id: Optional[int] = None,
) -> LeaveQuantity:
    """
    Remaining balance of ``allotment`` given its sibling records.

    Never negative and never raises: records that do not count (other pairs,
    non-approved, non-request kinds, the excluded id) are ignored.
    """
    total = quantity_of(allotment, is_short_day)
    used = used_quantity(allotment, records, is_short_day, exclude_id)
    if is_short_day:
        return from_minutes(max(0, total.total_minutes - used.total_minutes))
    return LeaveQuantity(days=max(ZERO, total.days - used.days))


def subtract(remaining: LeaveQuantity, requested: LeaveQuantity, is_short_day: bool) -> LeaveQuantity:
    """``remaining - requested`` without clamping (the result may go negative)"""
    if is_short_day:
        return from_minutes(remaining.total_minutes - requested.total_minutes)
    return LeaveQuantity(days=remaining.days - requested.days)


def exceeds(requested: LeaveQuantity, remaining: LeaveQuantity, is_short_day: bool) -> bool:
    """True when ``requested`` is more than ``remaining`` (minutes for short-day, days otherwise)"""
    if is_short_day:
        return requested.total_minutes > remaining.total_minutes
    return requested.days > remaining.days


def format_days(days: Decimal) -> str:
    """Whole numbers render as integers, everything else with 2 decimals"""
    if days == days.to_integral_value():
        return str(int(days))
    return f"{days:.2f}"


def format_hours_minutes(quantity: LeaveQuantity) -> str:
    """e.g. ``1h``, ``0h 15m``"""
    if quantity.minutes > 0:
        return f"{quantity.hours}h {quantity.minutes}m"
    return f"{quantity.hours}h"


def format_quantity(quantity: LeaveQuantity, is_short_day: bool) -> str:
    if is_short_day:
        return format_hours_minutes(quantity)
    return f"{format_days(quantity.days)} days"
