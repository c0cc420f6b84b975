"""
Audit log model
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from app.db.base import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    actor_id = Column(Integer, ForeignKey("employees.id"), nullable=False)
    action = Column(String, nullable=False)  # e.g., "LEAVE_APPLY", "LEAVE_APPROVE", "LEAVE_ALLOT"
    entity_type = Column(String, nullable=False)  # e.g., "leaves", "leave_types"
    entity_id = Column(Integer, nullable=True)  # ID of the affected entity
    meta_json = Column(JSON, nullable=True)  # Additional metadata as JSON
    # Set explicitly by the audit service; SQLite server defaults are unreliable here
    created_at = Column(DateTime(timezone=True), nullable=False)
