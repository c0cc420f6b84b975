"""
Leave type model
"""
import re
from sqlalchemy import Column, Integer, String, Text, Numeric, Boolean, DateTime
from sqlalchemy.sql import text
from app.db.base import Base

SHORT_DAY_NAME_PATTERN = re.compile(r"shortday|short-day|short\s*day", re.IGNORECASE)


def looks_like_short_day(name: str) -> bool:
    """Legacy naming convention for sub-day (hours/minutes) leave types"""
    return bool(SHORT_DAY_NAME_PATTERN.search(name or ""))


class LeaveType(Base):
    __tablename__ = "leave_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    max_days = Column(Numeric(8, 2), nullable=True)
    # Short-day types are measured in hours/minutes instead of days
    is_short_day = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )
