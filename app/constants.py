"""
Constants for leave quantities and generated leave text
"""
from decimal import Decimal

# A half-day request always counts as half a day
HALF_DAY_DAYS = Decimal("0.5")

# Time-window requests on day-granular types with an empty window
LEGACY_SHORT_DAY_DEFAULT_DAYS = Decimal("0.25")

# Reason stored on an allotment when the allotter gives none
DEFAULT_ALLOT_REASON = "Allotted by admin/HR"

# Every deduction history entry's reason starts with this
DEDUCTION_REASON_PREFIX = "Leave deduction: "
