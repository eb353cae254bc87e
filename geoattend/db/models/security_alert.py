# geoattend/db/models/security_alert.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text, JSON
from geoattend.db.base import Base
from geoattend.core import clock


ALERT_TYPES = (
    "new_device",
    "multiple_devices_attendance",
    "account_sharing_attempt",
    "unauthorized_device_access",
    "device_ownership_violation",
)
SEVERITIES = ("low", "medium", "high", "critical")


class SecurityAlert(Base):
    """Audit trail entry. Content is write-once; only is_read / is_resolved change."""

    __tablename__ = "security_alerts"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String, nullable=False)
    severity = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    device_id = Column(String, nullable=True)
    # "metadata" is reserved on declarative classes
    details = Column("metadata", JSON, nullable=True)

    is_read = Column(Boolean, default=False, nullable=False)
    is_resolved = Column(Boolean, default=False, nullable=False)
    resolved_by_teacher_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=clock.utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True)
