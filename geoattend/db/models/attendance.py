# geoattend/db/models/attendance.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from geoattend.db.base import Base
from geoattend.core import clock


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("sessions.id"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # "present" | "absent"
    status = Column(String, nullable=False)
    # "direct" | "qr" | "manual" | "sweep"
    method = Column(String, nullable=False, default="direct")
    marked_at = Column(DateTime, default=clock.utcnow, nullable=False)

    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    location_accuracy = Column(Float, nullable=True)
    distance_meters = Column(Float, nullable=True)

    is_manually_set = Column(Boolean, default=False, nullable=False)
    marked_by_teacher_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    note = Column(Text, nullable=True)
    last_modified = Column(DateTime, default=clock.utcnow, nullable=False)

    session = relationship("AttendanceSession", back_populates="records")
    student = relationship("User", back_populates="attendance_records", foreign_keys=[student_id])

    __table_args__ = (
        UniqueConstraint("session_id", "student_id", name="uq_session_student"),
    )
